from pydantic import BaseModel, ConfigDict, Field


class ValidationIssue(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field: str
    message: str
    step_id: str | None = Field(None, alias="stepId")


class ValidationResult(BaseModel):
    valid: bool = True
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []

    def error_messages(self) -> list[str]:
        return [e.message for e in self.errors]
