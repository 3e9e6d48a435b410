"""Workflow graph -> procedure document.

Nodes compiled by this package carry their original step under
``forward.METADATA_KEY`` and are restored from it. Other nodes are mapped
back through the type tables, which loses whatever the engine format cannot
express.
"""

import logging
import re
from typing import Any

from pydantic import ValidationError

from sop_compiler.compiler import type_maps
from sop_compiler.compiler.forward import METADATA_KEY
from sop_compiler.config.settings import Settings
from sop_compiler.graph.connections import build_next_steps_map, port_targets
from sop_compiler.graph.topological_sort import sort as topo_sort
from sop_compiler.models.graph import Node, WorkflowGraph
from sop_compiler.models.procedure import (
    Condition,
    ConditionOperator,
    ProcedureDocument,
    Step,
    StepType,
    Trigger,
)
from sop_compiler.utils.exceptions import CompilationError

logger = logging.getLogger(__name__)

_JSON_FIELD_RE = re.compile(r"""^=?\{\{\s*\$json(?:\[\s*["']?(.*?)["']?\s*\]|\.([\w.]+))\s*\}\}$""")

# Engine keys that hold the IF-node encoding rather than step parameters.
_IF_ENCODING_KEYS = ("conditions", "combineOperation")


def decompile(graph: WorkflowGraph, settings: Settings | None = None) -> ProcedureDocument:
    """Recover a procedure document from a workflow graph.

    Raises CompilationError when the graph has no step nodes or its steps
    form a cycle.
    """
    settings = settings or Settings()
    logger.info(f"Decompiling workflow '{graph.name}' ({len(graph.nodes)} nodes)")

    trigger_nodes = [n for n in graph.nodes if type_maps.is_trigger_type(n.type)]
    step_nodes = [n for n in graph.nodes if not type_maps.is_trigger_type(n.type)]

    if not trigger_nodes:
        logger.warning(f"Workflow '{graph.name}' has no trigger node; treating every node as a step")
    if not step_nodes:
        raise CompilationError(f"Workflow '{graph.name}' has no step nodes")

    branching = frozenset({type_maps.IF_NODE.type, *(n.type for n in trigger_nodes)})
    next_map = build_next_steps_map(graph, branching)
    step_ids = _assign_step_ids(step_nodes)

    steps_by_name: dict[str, Step] = {}
    for position, node in enumerate(step_nodes, start=1):
        steps_by_name[node.name] = _node_to_step(graph, node, position, next_map, step_ids)

    ordered = topo_sort([n.name for n in step_nodes], next_map)
    steps: list[Step] = []
    for order, name in enumerate(ordered, start=1):
        step = steps_by_name[name]
        step.order = order
        steps.append(step)

    document = ProcedureDocument(
        title=graph.name,
        description=_extract_description(graph, step_nodes),
        version=settings.compiler.default_version,
        steps=steps,
        triggers=[_node_to_trigger(n) for n in trigger_nodes],
    )
    logger.info(f"Decompiled workflow '{graph.name}' into {len(steps)} steps")
    return document


def extract_conditions(parameters: dict[str, Any]) -> list[Condition]:
    """Read conditions back out of an IF node's engine comparisons."""
    raw = parameters.get("conditions")
    if not isinstance(raw, dict):
        return []

    conditions: list[Condition] = []
    for comparisons in raw.values():
        if not isinstance(comparisons, list):
            continue
        for comparison in comparisons:
            if not isinstance(comparison, dict):
                continue
            field = _field_from_expression(comparison.get("value1") or comparison.get("leftValue") or "")
            if not field:
                continue
            operation = str(comparison.get("operation", ""))
            operator = type_maps.ENGINE_OPERATOR_TO_OPERATOR.get(operation, ConditionOperator.EQUALS)
            value = comparison["value2"] if "value2" in comparison else comparison.get("rightValue")
            conditions.append(Condition(field=field, operator=operator, value=value))
    return conditions


def _field_from_expression(expression: Any) -> str:
    text = str(expression).strip()
    m = _JSON_FIELD_RE.match(text)
    if m:
        return m.group(1) if m.group(1) is not None else m.group(2)
    return text.lstrip("=")


def _assign_step_ids(step_nodes: list[Node]) -> dict[str, str]:
    """Map node names to step ids, preferring the id kept in step metadata.

    Copied nodes carry the same metadata id; later copies fall back to their
    node id.
    """
    ids: dict[str, str] = {}
    taken: set[str] = set()
    for node in step_nodes:
        step_id = _metadata(node).get("id") or node.id
        if step_id in taken:
            fallback = node.id if node.id not in taken else node.name
            logger.warning(
                f"Node '{node.name}' repeats step id '{step_id}'; using '{fallback}' instead"
            )
            step_id = fallback
        ids[node.name] = step_id
        taken.add(step_id)
    return ids


def _metadata(node: Node) -> dict[str, Any]:
    meta = node.parameters.get(METADATA_KEY)
    return meta if isinstance(meta, dict) else {}


def _engine_parameters(node: Node) -> dict[str, Any]:
    return {k: v for k, v in node.parameters.items() if k != METADATA_KEY}


def _node_to_step(
    graph: WorkflowGraph,
    node: Node,
    position: int,
    next_map: dict[str, list[str]],
    step_ids: dict[str, str],
) -> Step:
    meta = _metadata(node)
    step = _step_from_metadata(node, meta, position) if meta else None
    if step is None:
        step = _step_from_node(node, position)
    step.id = step_ids[node.name]

    if node.type == type_maps.IF_NODE.type:
        true_targets = [step_ids[t] for t in port_targets(graph, node.name, 0) if t in step_ids]
        false_targets = [step_ids[t] for t in port_targets(graph, node.name, 1) if t in step_ids]
        if not meta:
            for condition, target in zip(step.conditions, true_targets):
                condition.next_step = target
        step.next_steps = list(dict.fromkeys(false_targets))
    else:
        step.next_steps = [step_ids[t] for t in next_map.get(node.name, []) if t in step_ids]

    return step


def _step_from_metadata(node: Node, meta: dict[str, Any], position: int) -> Step | None:
    config = meta.get("config") or {}
    try:
        return Step.model_validate(
            {
                "id": meta.get("id") or node.id,
                "order": position,
                "title": meta.get("title") or node.name,
                "description": meta.get("description", ""),
                "type": meta.get("type") or StepType.ACTION.value,
                "actionType": config.get("actionType"),
                "parameters": config.get("parameters") or {},
                "conditions": config.get("conditions") or [],
            }
        )
    except ValidationError as e:
        logger.warning(f"Node '{node.name}' carries unreadable step metadata ({e.error_count()} errors); ignoring it")
        return None


def _step_from_node(node: Node, position: int) -> Step:
    step_type = type_maps.NODE_TYPE_TO_STEP_TYPE.get(node.type, StepType.ACTION)
    parameters = _engine_parameters(node)
    action_type: str | None = None
    conditions: list[Condition] = []

    if step_type is StepType.ACTION:
        action_type = type_maps.NODE_TYPE_TO_ACTION.get(node.type)
        if action_type is None:
            logger.warning(f"Node '{node.name}' has unmapped type '{node.type}'; treating it as a generic action")
    elif step_type is StepType.DECISION:
        conditions = extract_conditions(parameters)
        for key in _IF_ENCODING_KEYS:
            parameters.pop(key, None)

    return Step(
        id=node.id,
        order=position,
        title=node.name,
        description=node.notes or type_maps.describe_node_type(node.type),
        type=step_type.value,
        action_type=action_type,
        parameters=parameters,
        conditions=conditions,
    )


def _node_to_trigger(node: Node) -> Trigger:
    meta = _metadata(node)
    if meta.get("type"):
        return Trigger(type=meta["type"], config=meta.get("config") or {})
    return Trigger(
        type=type_maps.trigger_type_for_node(node.type).value,
        config=_engine_parameters(node),
    )


def _extract_description(graph: WorkflowGraph, step_nodes: list[Node]) -> str:
    if graph.static_data and graph.static_data.get("description"):
        return str(graph.static_data["description"])
    if step_nodes and step_nodes[0].notes:
        return step_nodes[0].notes
    return f"Workflow: {graph.name}"
