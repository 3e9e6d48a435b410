from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class StepType(str, Enum):
    ACTION = "action"
    DECISION = "decision"
    SUBPROCESS = "subprocess"
    WAIT = "wait"


class TriggerType(str, Enum):
    MANUAL = "manual"
    SCHEDULE = "schedule"
    WEBHOOK = "webhook"
    EVENT = "event"


class ConditionOperator(str, Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    GREATER = "greater"
    LESS = "less"


class Condition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    field: str
    operator: ConditionOperator = ConditionOperator.EQUALS
    value: Any = None
    next_step: str = Field("", alias="nextStep")


class Step(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    order: int = 0
    title: str = ""
    description: str = ""
    type: str = StepType.ACTION.value
    action_type: str | None = Field(None, alias="actionType")
    parameters: dict[str, Any] = {}
    next_steps: list[str] = Field([], alias="nextSteps")
    conditions: list[Condition] = []


class Trigger(BaseModel):
    type: str = TriggerType.MANUAL.value
    config: dict[str, Any] = {}


class ProcedureDocument(BaseModel):
    title: str = ""
    description: str = ""
    version: str = "1.0.0"
    author: str | None = None
    steps: list[Step] = []
    triggers: list[Trigger] = []

    def sorted_steps(self) -> list[Step]:
        return sorted(self.steps, key=lambda s: s.order)
