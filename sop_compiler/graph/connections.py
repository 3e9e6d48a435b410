"""Read-only views over a workflow graph's connection table."""

import logging

from sop_compiler.models.graph import MAIN, Port, WorkflowGraph

logger = logging.getLogger(__name__)


def ports(graph: WorkflowGraph, source: str) -> list[Port]:
    return graph.connections.get(source, {}).get(MAIN, [])


def port_targets(graph: WorkflowGraph, source: str, index: int) -> list[str]:
    """Target node names on one output port, in declaration order."""
    outputs = ports(graph, source)
    if index >= len(outputs):
        return []
    return [c.node for c in outputs[index]]


def build_next_steps_map(
    graph: WorkflowGraph,
    branching_types: frozenset[str] = frozenset(),
) -> dict[str, list[str]]:
    """Flatten every source's ports into a deduplicated list of target names.

    Port distinction is dropped. For sources whose node type is not in
    *branching_types*, a port carrying several edges keeps only its first edge.
    Edges to names absent from the node list are dropped.
    """
    known = {n.name: n for n in graph.nodes}
    result: dict[str, list[str]] = {}

    for source, outputs in graph.connections.items():
        source_node = known.get(source)
        if source_node is None:
            logger.warning(f"Connections declared for unknown node '{source}'; ignoring")
            continue

        targets: list[str] = []
        for port_index, port in enumerate(outputs.get(MAIN, [])):
            edges = list(port)
            if len(edges) > 1 and source_node.type not in branching_types:
                logger.warning(
                    f"Node '{source}' fans out to {len(edges)} nodes on port {port_index}; "
                    f"only '{edges[0].node}' is kept"
                )
                edges = edges[:1]
            for conn in edges:
                if conn.node not in known:
                    logger.warning(f"Node '{source}' connects to unknown node '{conn.node}'; ignoring")
                    continue
                if conn.node not in targets:
                    targets.append(conn.node)

        if targets:
            result[source] = targets

    return result
