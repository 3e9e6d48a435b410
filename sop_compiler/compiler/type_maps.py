"""Static lookup tables between procedure vocabulary and engine node types."""

from typing import NamedTuple

from sop_compiler.models.procedure import ConditionOperator, StepType, TriggerType


class NodeKind(NamedTuple):
    type: str
    type_version: int


ACTION_TYPE_MAP: dict[str, NodeKind] = {
    "http_request": NodeKind("n8n-nodes-base.httpRequest", 4),
    "send_email": NodeKind("n8n-nodes-base.emailSend", 2),
    "slack_message": NodeKind("n8n-nodes-base.slack", 2),
    "set_variable": NodeKind("n8n-nodes-base.set", 3),
    "code": NodeKind("n8n-nodes-base.code", 2),
    "filter": NodeKind("n8n-nodes-base.filter", 2),
    "merge": NodeKind("n8n-nodes-base.merge", 3),
    "split": NodeKind("n8n-nodes-base.splitInBatches", 3),
    "function": NodeKind("n8n-nodes-base.function", 2),
    "webhook_response": NodeKind("n8n-nodes-base.respondToWebhook", 1),
}

NODE_TYPE_TO_ACTION: dict[str, str] = {kind.type: action for action, kind in ACTION_TYPE_MAP.items()}

DEFAULT_ACTION_TYPE = "code"
NOOP_NODE = NodeKind("n8n-nodes-base.noOp", 1)

# Node kinds for the non-action step types.
IF_NODE = NodeKind("n8n-nodes-base.if", 2)
SUBPROCESS_NODE = NodeKind("n8n-nodes-base.executeWorkflow", 1)
WAIT_NODE = NodeKind("n8n-nodes-base.wait", 1)

NODE_TYPE_TO_STEP_TYPE: dict[str, StepType] = {
    IF_NODE.type: StepType.DECISION,
    SUBPROCESS_NODE.type: StepType.SUBPROCESS,
    WAIT_NODE.type: StepType.WAIT,
}

TRIGGER_TYPE_MAP: dict[TriggerType, NodeKind] = {
    TriggerType.MANUAL: NodeKind("n8n-nodes-base.manualTrigger", 1),
    TriggerType.SCHEDULE: NodeKind("n8n-nodes-base.scheduleTrigger", 1),
    TriggerType.WEBHOOK: NodeKind("n8n-nodes-base.webhook", 2),
    TriggerType.EVENT: NodeKind("n8n-nodes-base.n8nTrigger", 1),
}

KNOWN_TRIGGER_NODE_TYPES: frozenset[str] = frozenset(
    [kind.type for kind in TRIGGER_TYPE_MAP.values()] + ["n8n-nodes-base.cronTrigger"]
)

OPERATOR_MAP: dict[ConditionOperator, str] = {
    ConditionOperator.EQUALS: "equal",
    ConditionOperator.CONTAINS: "contains",
    ConditionOperator.GREATER: "larger",
    ConditionOperator.LESS: "smaller",
}

ENGINE_OPERATOR_TO_OPERATOR: dict[str, ConditionOperator] = {v: k for k, v in OPERATOR_MAP.items()}

NODE_DESCRIPTIONS: dict[str, str] = {
    "n8n-nodes-base.httpRequest": "Makes an HTTP request",
    "n8n-nodes-base.emailSend": "Sends an email",
    "n8n-nodes-base.slack": "Sends a Slack message",
    "n8n-nodes-base.set": "Sets variables",
    "n8n-nodes-base.code": "Executes custom code",
    "n8n-nodes-base.if": "Evaluates a condition",
    "n8n-nodes-base.wait": "Waits for a specified duration",
    "n8n-nodes-base.executeWorkflow": "Executes another workflow",
}


def node_kind_for_action(action_type: str | None) -> NodeKind | None:
    """Return the node kind for an action type, or None if it is unknown."""
    return ACTION_TYPE_MAP.get(action_type or DEFAULT_ACTION_TYPE)


def is_trigger_type(node_type: str) -> bool:
    return node_type in KNOWN_TRIGGER_NODE_TYPES or node_type.endswith("Trigger")


def trigger_type_for_node(node_type: str) -> TriggerType:
    lowered = node_type.lower()
    if "schedule" in lowered or "cron" in lowered:
        return TriggerType.SCHEDULE
    if "webhook" in lowered:
        return TriggerType.WEBHOOK
    if "n8ntrigger" in lowered:
        return TriggerType.EVENT
    return TriggerType.MANUAL


def describe_node_type(node_type: str) -> str:
    return NODE_DESCRIPTIONS.get(node_type, f"Executes {node_type}")
