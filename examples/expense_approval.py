"""
Procedure: Expense approval

Graph:
    Manual Trigger
      └──→ submit (Submit expense)
             └──→ check (Check amount)
                    ├──true──→ manager (Manager review)
                    └──false─→ approve (Auto approve)

Builds the procedure in Python, compiles it to workflow JSON, decompiles the
JSON again and prints the recovered procedure as markup.
"""

import json

from sop_compiler import (
    Condition,
    ConditionOperator,
    ProcedureDocument,
    Step,
    Trigger,
    compile,
    decompile,
    serialize_to_markup,
    validate,
)


def build_procedure() -> ProcedureDocument:
    return ProcedureDocument(
        title="Expense approval",
        description="Route expense claims to the right approver",
        author="Finance Ops",
        triggers=[Trigger(type="manual")],
        steps=[
            Step(
                id="submit",
                order=1,
                title="Submit expense",
                action_type="http_request",
                parameters={"url": "https://finance.example.com/claims", "method": "POST"},
                next_steps=["check"],
            ),
            Step(
                id="check",
                order=2,
                title="Check amount",
                type="decision",
                conditions=[
                    Condition(field="amount", operator=ConditionOperator.GREATER, value=1000, next_step="manager"),
                ],
                next_steps=["approve"],
            ),
            Step(id="manager", order=3, title="Manager review", action_type="send_email"),
            Step(id="approve", order=4, title="Auto approve", action_type="set_variable"),
        ],
    )


def main():
    procedure = build_procedure()

    result = validate(procedure)
    print(f"=== Validation: {'ok' if result.valid else 'failed'} ===")
    for w in result.warnings:
        print(f"  warning: {w.message}")
    print()

    workflow = compile(procedure)
    print(f"=== Workflow: {workflow.name} ({len(workflow.nodes)} nodes) ===")
    print(json.dumps(workflow.to_engine_json()["connections"], indent=2))
    print()

    recovered = decompile(workflow)
    print("=== Recovered procedure ===")
    print(serialize_to_markup(recovered))


if __name__ == "__main__":
    main()
