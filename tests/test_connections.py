import logging

from sop_compiler.graph.connections import build_next_steps_map, port_targets, ports
from sop_compiler.models.graph import Connection, Node, WorkflowGraph

IF_TYPE = "n8n-nodes-base.if"


def _make_workflow(node_types, connections):
    nodes = [Node(id=name.lower(), name=name, type=node_type) for name, node_type in node_types.items()]
    return WorkflowGraph(
        name="wf",
        nodes=nodes,
        connections={
            source: {"main": [[Connection(node=t) for t in port] for port in outputs]}
            for source, outputs in connections.items()
        },
    )


def test_port_targets():
    graph = _make_workflow(
        {"Check": IF_TYPE, "Yes": "code", "No": "code"},
        {"Check": [["Yes"], ["No"]]},
    )
    assert len(ports(graph, "Check")) == 2
    assert port_targets(graph, "Check", 0) == ["Yes"]
    assert port_targets(graph, "Check", 1) == ["No"]
    assert port_targets(graph, "Check", 2) == []
    assert port_targets(graph, "Yes", 0) == []


def test_branching_node_keeps_all_ports_flattened():
    graph = _make_workflow(
        {"Check": IF_TYPE, "A": "code", "B": "code", "C": "code"},
        {"Check": [["A", "B"], ["C", "A"]]},
    )
    assert build_next_steps_map(graph, frozenset({IF_TYPE})) == {"Check": ["A", "B", "C"]}


def test_plain_node_fan_out_truncated(caplog):
    graph = _make_workflow({"A": "code", "B": "code", "C": "code"}, {"A": [["B", "C"]]})
    with caplog.at_level(logging.WARNING):
        result = build_next_steps_map(graph)
    assert result == {"A": ["B"]}
    assert "only 'B' is kept" in caplog.text


def test_unknown_source_and_target_skipped(caplog):
    graph = _make_workflow({"A": "code"}, {"A": [["Nowhere"]], "Ghost": [["A"]]})
    with caplog.at_level(logging.WARNING):
        result = build_next_steps_map(graph)
    assert result == {}
    assert "Ghost" in caplog.text
    assert "Nowhere" in caplog.text
