from sop_compiler.models.procedure import ProcedureDocument, StepType, TriggerType
from sop_compiler.models.validation import ValidationIssue, ValidationResult

_STEP_TYPES = {t.value for t in StepType}
_TRIGGER_TYPES = {t.value for t in TriggerType}


def validate(document: ProcedureDocument) -> ValidationResult:
    """Check a procedure document for structural consistency.

    Every rule runs independently so all violations are reported together.
    Never raises; callers decide what to do with warnings.
    """
    result = ValidationResult()
    _check_header(document, result)
    _check_steps(document, result)
    _check_references(document, result)
    _check_triggers(document, result)
    result.valid = not result.errors
    return result


def _error(result: ValidationResult, field: str, message: str, step_id: str | None = None) -> None:
    result.errors.append(ValidationIssue(field=field, message=message, step_id=step_id))


def _warn(result: ValidationResult, field: str, message: str, step_id: str | None = None) -> None:
    result.warnings.append(ValidationIssue(field=field, message=message, step_id=step_id))


def _check_header(document: ProcedureDocument, result: ValidationResult) -> None:
    if not document.title.strip():
        _error(result, "title", "Title is required")
    if not document.description.strip():
        _warn(result, "description", "Description is recommended")
    if not document.version.strip():
        _warn(result, "version", "Version is recommended")


def _check_steps(document: ProcedureDocument, result: ValidationResult) -> None:
    if not document.steps:
        _error(result, "steps", "At least one step is required")
        return

    seen: set[str] = set()
    for step in document.steps:
        step_id = step.id or None
        if not step.id.strip():
            _error(result, "step.id", "Step ID is required", step_id)
        elif step.id in seen:
            _error(result, "step.id", f"Duplicate step ID: {step.id}", step_id)
        else:
            seen.add(step.id)

        if not step.title.strip():
            _error(result, "step.title", "Step title is required", step_id)

        if not step.type:
            _error(result, "step.type", "Step type is required", step_id)
        elif step.type not in _STEP_TYPES:
            _error(result, "step.type", f"Invalid step type: {step.type}", step_id)

        if step.type == StepType.DECISION and not step.conditions:
            _warn(result, "step.conditions", "Decision step should have conditions", step_id)

        for condition in step.conditions:
            if not condition.next_step.strip():
                _warn(
                    result,
                    "step.conditions",
                    f"Condition on '{condition.field}' has no target step",
                    step_id,
                )


def _check_references(document: ProcedureDocument, result: ValidationResult) -> None:
    step_ids = {s.id for s in document.steps}
    missing: list[str] = []
    for step in document.steps:
        refs = list(step.next_steps) + [c.next_step for c in step.conditions if c.next_step.strip()]
        for ref in refs:
            if ref not in step_ids and ref not in missing:
                missing.append(ref)
    for ref in missing:
        _error(result, "nextSteps", f"Referenced step not found: {ref}")


def _check_triggers(document: ProcedureDocument, result: ValidationResult) -> None:
    for trigger in document.triggers:
        if trigger.type not in _TRIGGER_TYPES:
            _error(result, "trigger.type", f"Invalid trigger type: {trigger.type}")
    if len(document.triggers) > 1:
        _warn(result, "triggers", "Only the first trigger is compiled into the workflow")
