from sop_compiler.graph.validator import validate
from sop_compiler.models.procedure import Condition, ProcedureDocument, Step, Trigger


def _make_document(steps, **kwargs):
    fields = {"title": "Refund request", "description": "Handle refunds", "version": "1.0.0"}
    fields.update(kwargs)
    return ProcedureDocument(steps=steps, **fields)


def _fields(issues):
    return [i.field for i in issues]


def test_valid_linear_document():
    doc = _make_document([
        Step(id="s1", order=1, title="Receive", next_steps=["s2"]),
        Step(id="s2", order=2, title="Refund"),
    ])
    result = validate(doc)
    assert result.valid
    assert result.errors == []
    assert result.warnings == []


def test_duplicate_step_id_mentions_id():
    doc = _make_document([
        Step(id="s1", order=1, title="A"),
        Step(id="s1", order=2, title="B"),
    ])
    result = validate(doc)
    assert not result.valid
    assert any("s1" in m for m in result.error_messages())


def test_each_duplicate_reported():
    doc = _make_document([
        Step(id="s1", order=1, title="A"),
        Step(id="s1", order=2, title="B"),
        Step(id="s1", order=3, title="C"),
    ])
    result = validate(doc)
    assert len([e for e in result.errors if e.message == "Duplicate step ID: s1"]) == 2


def test_missing_reference_mentions_ghost():
    doc = _make_document([Step(id="s1", order=1, title="A", next_steps=["ghost"])])
    result = validate(doc)
    assert not result.valid
    assert any("ghost" in m for m in result.error_messages())


def test_missing_condition_target_reported_once():
    doc = _make_document([
        Step(
            id="s1", order=1, title="Check", type="decision",
            conditions=[Condition(field="x", value=1, next_step="ghost")],
            next_steps=["ghost"],
        ),
    ])
    result = validate(doc)
    assert result.error_messages() == ["Referenced step not found: ghost"]


def test_missing_title_is_error():
    result = validate(_make_document([Step(id="s1", order=1, title="A")], title="  "))
    assert not result.valid
    assert "title" in _fields(result.errors)


def test_all_violations_reported_together():
    doc = ProcedureDocument(title="", description="", version="", steps=[])
    result = validate(doc)
    assert _fields(result.errors) == ["title", "steps"]
    assert _fields(result.warnings) == ["description", "version"]


def test_missing_description_and_version_are_warnings():
    result = validate(_make_document([Step(id="s1", order=1, title="A")], description="", version=""))
    assert result.valid
    assert _fields(result.warnings) == ["description", "version"]


def test_step_missing_fields():
    doc = _make_document([Step(id="", order=1, title="", type="")])
    result = validate(doc)
    assert _fields(result.errors) == ["step.id", "step.title", "step.type"]


def test_invalid_step_type():
    result = validate(_make_document([Step(id="s1", order=1, title="A", type="loop")]))
    assert not result.valid
    assert result.errors[0].message == "Invalid step type: loop"
    assert result.errors[0].step_id == "s1"


def test_decision_without_conditions_warns():
    result = validate(_make_document([Step(id="s1", order=1, title="Check", type="decision")]))
    assert result.valid
    assert result.warnings[0].field == "step.conditions"
    assert result.warnings[0].step_id == "s1"


def test_condition_without_target_warns():
    doc = _make_document([
        Step(id="s1", order=1, title="Check", type="decision", conditions=[Condition(field="x", value=1)]),
    ])
    result = validate(doc)
    assert result.valid
    assert "no target step" in result.warnings[0].message


def test_invalid_trigger_type():
    doc = _make_document([Step(id="s1", order=1, title="A")], triggers=[Trigger(type="cron")])
    result = validate(doc)
    assert not result.valid
    assert result.error_messages() == ["Invalid trigger type: cron"]


def test_extra_triggers_warn():
    doc = _make_document(
        [Step(id="s1", order=1, title="A")],
        triggers=[Trigger(type="manual"), Trigger(type="webhook")],
    )
    result = validate(doc)
    assert result.valid
    assert _fields(result.warnings) == ["triggers"]
