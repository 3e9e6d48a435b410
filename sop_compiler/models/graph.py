"""Workflow graph in the shape the execution engine imports and exports."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

MAIN = "main"


class Connection(BaseModel):
    node: str
    type: str = MAIN
    index: int = 0


# One output port is a list of edges; a node's outputs are keyed by kind ("main").
Port = list[Connection]


class Node(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    name: str
    type: str
    type_version: int | float = Field(1, alias="typeVersion")
    position: tuple[int | float, int | float] = (0, 0)
    parameters: dict[str, Any] = {}
    notes: str | None = None
    credentials: dict[str, Any] | None = None


class WorkflowGraph(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    name: str
    nodes: list[Node] = []
    connections: dict[str, dict[str, list[Port]]] = {}
    settings: dict[str, Any] = {}
    active: bool = False
    static_data: dict[str, Any] | None = Field(None, alias="staticData")

    def to_engine_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def node_by_name(self, name: str) -> Node | None:
        for node in self.nodes:
            if node.name == name:
                return node
        return None
