"""Procedure document -> workflow graph."""

import logging
import re
from typing import Any, assert_never

from sop_compiler.compiler import type_maps
from sop_compiler.compiler.layout import Layout, Position
from sop_compiler.config.settings import Settings
from sop_compiler.graph.validator import validate
from sop_compiler.models.graph import MAIN, Connection, Node, Port, WorkflowGraph
from sop_compiler.models.procedure import (
    Condition,
    ConditionOperator,
    ProcedureDocument,
    Step,
    StepType,
    Trigger,
    TriggerType,
)
from sop_compiler.utils.exceptions import CompilationError

logger = logging.getLogger(__name__)

METADATA_KEY = "_sopMetadata"

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9\s_-]")


class _CompileContext:
    """State owned by a single compile() call."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.layout = Layout(settings.layout)
        self._counter = 0
        self._names: set[str] = set()

    def next_node_id(self) -> str:
        self._counter += 1
        return f"{self.settings.compiler.node_id_prefix}-{self._counter}"

    def unique_name(self, base: str) -> str:
        name = base
        suffix = 2
        while name in self._names:
            name = f"{base} {suffix}"
            suffix += 1
        self._names.add(name)
        return name


def compile(document: ProcedureDocument, settings: Settings | None = None) -> WorkflowGraph:
    """Compile a procedure document into a workflow graph.

    Raises CompilationError if the document fails validation.
    """
    settings = settings or Settings()
    logger.info(f"Compiling procedure '{document.title}' ({len(document.steps)} steps)")

    result = validate(document)
    if not result.valid:
        messages = ", ".join(result.error_messages())
        raise CompilationError(f"Invalid procedure document: {messages}", errors=result.errors)

    ctx = _CompileContext(settings)
    nodes: list[Node] = []

    trigger_node: Node | None = None
    if document.triggers:
        if len(document.triggers) > 1:
            logger.warning(
                f"Procedure '{document.title}' declares {len(document.triggers)} triggers; "
                "only the first is compiled"
            )
        trigger_node = _trigger_node(document.triggers[0], ctx)
        nodes.append(trigger_node)

    step_nodes: dict[str, Node] = {}
    for step in document.sorted_steps():
        position = ctx.layout.place_step(step.id)
        node = _step_node(step, position, ctx)
        if step.type == StepType.DECISION:
            ctx.layout.open_branches(position, _decision_targets(step))
        step_nodes[step.id] = node
        nodes.append(node)

    connections = _build_connections(document, step_nodes, trigger_node)

    graph = WorkflowGraph(
        name=document.title,
        nodes=nodes,
        connections=connections,
        settings=dict(settings.compiler.workflow_settings),
        active=False,
    )
    logger.info(f"Compiled procedure '{document.title}' into {len(nodes)} nodes")
    return graph


def sanitize_node_name(title: str) -> str:
    return _UNSAFE_NAME_CHARS.sub("", title).strip()


def _trigger_node(trigger: Trigger, ctx: _CompileContext) -> Node:
    trigger_type = TriggerType(trigger.type)
    kind = type_maps.TRIGGER_TYPE_MAP[trigger_type]
    parameters = dict(trigger.config)
    parameters[METADATA_KEY] = {"type": trigger_type.value, "config": dict(trigger.config)}
    return Node(
        id=ctx.next_node_id(),
        name=ctx.unique_name(f"{trigger_type.value.capitalize()} Trigger"),
        type=kind.type,
        type_version=kind.type_version,
        position=ctx.layout.place_trigger(),
        parameters=parameters,
    )


def _step_node(step: Step, position: Position, ctx: _CompileContext) -> Node:
    step_type = StepType(step.type)
    params = dict(step.parameters)

    if step_type is StepType.ACTION:
        kind = type_maps.node_kind_for_action(step.action_type)
        if kind is None:
            logger.warning(
                f"Step '{step.id}' has unknown action type '{step.action_type}'; "
                f"compiling as {type_maps.NOOP_NODE.type}"
            )
            kind = type_maps.NOOP_NODE
    elif step_type is StepType.DECISION:
        kind = type_maps.IF_NODE
        params.update(build_if_parameters(step.conditions))
    elif step_type is StepType.SUBPROCESS:
        kind = type_maps.SUBPROCESS_NODE
        params = {"workflowId": step.parameters.get("workflowId", ""), **step.parameters}
    elif step_type is StepType.WAIT:
        kind = type_maps.WAIT_NODE
        params = {
            "unit": step.parameters.get("unit", "seconds"),
            "amount": step.parameters.get("duration", 1),
            **step.parameters,
        }
    else:
        assert_never(step_type)

    params[METADATA_KEY] = _step_metadata(step)
    name = sanitize_node_name(step.title) or f"Step {step.order}"
    return Node(
        id=ctx.next_node_id(),
        name=ctx.unique_name(name),
        type=kind.type,
        type_version=kind.type_version,
        position=position,
        parameters=params,
        notes=step.description or None,
    )


def _step_metadata(step: Step) -> dict[str, Any]:
    return {
        "id": step.id,
        "order": step.order,
        "title": step.title,
        "description": step.description,
        "type": step.type,
        "config": {
            "actionType": step.action_type,
            "parameters": dict(step.parameters),
            "conditions": [c.model_dump(mode="json", by_alias=True) for c in step.conditions],
        },
    }


def build_if_parameters(conditions: list[Condition]) -> dict[str, Any]:
    """Encode conditions as the engine's IF-node comparisons."""
    if not conditions:
        return {"conditions": {"boolean": [{"leftValue": "", "rightValue": ""}]}}

    families: dict[str, list[dict[str, Any]]] = {}
    for condition in conditions:
        family, value2 = _comparison_value(condition)
        families.setdefault(family, []).append(
            {
                "value1": f'={{{{ $json["{condition.field}"] }}}}',
                "operation": type_maps.OPERATOR_MAP[condition.operator],
                "value2": value2,
            }
        )
    return {"conditions": families, "combineOperation": "any"}


def _comparison_value(condition: Condition) -> tuple[str, Any]:
    value = condition.value
    if isinstance(value, bool):
        return "boolean", value
    if isinstance(value, (int, float)) and condition.operator is not ConditionOperator.CONTAINS:
        return "number", value
    return "string", "" if value is None else str(value)


def _decision_targets(step: Step) -> list[str]:
    targets = [c.next_step for c in step.conditions if c.next_step]
    targets += [n for n in step.next_steps if n not in targets]
    return targets


def _edge(node: Node) -> Connection:
    return Connection(node=node.name, type=MAIN, index=0)


def _build_connections(
    document: ProcedureDocument,
    step_nodes: dict[str, Node],
    trigger_node: Node | None,
) -> dict[str, dict[str, list[Port]]]:
    connections: dict[str, dict[str, list[Port]]] = {}

    ordered = document.sorted_steps()
    if trigger_node is not None and ordered:
        connections[trigger_node.name] = {MAIN: [[_edge(step_nodes[ordered[0].id])]]}

    for step in document.steps:
        source = step_nodes[step.id]

        if step.type == StepType.DECISION:
            condition_targets = [c.next_step for c in step.conditions]
            true_port = [_edge(step_nodes[t]) for t in condition_targets if t in step_nodes]
            false_port = [
                _edge(step_nodes[n])
                for n in step.next_steps
                if n not in condition_targets and n in step_nodes
            ]
            connections[source.name] = {MAIN: [true_port, false_port]}
        elif step.next_steps:
            port = [_edge(step_nodes[n]) for n in step.next_steps if n in step_nodes]
            if port:
                connections[source.name] = {MAIN: [port]}

    return connections
