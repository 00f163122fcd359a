"""Node/edge graph used for visual rule editing.

The graph is a derived view of a Rule: an arena of nodes keyed by id plus
an edge list. It owns nothing and is regenerated on every projection.
"""
from collections import defaultdict
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..rules.models import Position, RuleLayout

HEADER_NODE_ID = "rule-header"
EVENT_NODE_ID = "event-node"


class NodeKind(str, Enum):
    HEADER = "header"
    LOGICAL = "logical"
    FACT_TEST = "factTest"
    EVENT = "event"


CONDITION_KINDS = frozenset({NodeKind.LOGICAL, NodeKind.FACT_TEST})


class Node(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    kind: NodeKind = Field(..., alias="type")
    data: dict[str, Any] = Field(default_factory=dict)
    position: Position = Field(default_factory=lambda: Position(x=0, y=0))


class Edge(BaseModel):
    id: str
    source: str
    target: str


class FlowGraph(BaseModel):
    """Nodes and edges of one rule."""

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    def node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def nodes_of_kind(self, kind: NodeKind) -> list[Node]:
        return [n for n in self.nodes if n.kind == kind]

    def node_map(self) -> dict[str, Node]:
        return {n.id: n for n in self.nodes}

    def adjacency(self) -> dict[str, list[str]]:
        """Outgoing targets per source, in edge order."""
        children: dict[str, list[str]] = defaultdict(list)
        for edge in self.edges:
            children[edge.source].append(edge.target)
        return dict(children)

    def incoming(self) -> dict[str, list[str]]:
        parents: dict[str, list[str]] = defaultdict(list)
        for edge in self.edges:
            parents[edge.target].append(edge.source)
        return dict(parents)

    def layout(self) -> RuleLayout:
        """Current node positions, suitable for persisting with the rule."""
        return RuleLayout(nodes={n.id: n.position.model_copy() for n in self.nodes})


def find_cycle(graph: FlowGraph, start_id: str) -> list[str] | None:
    """
    First cycle reachable from ``start_id``, found by DFS with a recursion stack.

    Returns:
        The node ids along the cycle (first id repeated at the end), or None
    """
    adjacency = graph.adjacency()
    visited: set[str] = set()
    stack: list[str] = []
    on_stack: set[str] = set()

    def visit(node_id: str) -> list[str] | None:
        visited.add(node_id)
        stack.append(node_id)
        on_stack.add(node_id)
        for child in adjacency.get(node_id, []):
            if child in on_stack:
                return stack[stack.index(child):] + [child]
            if child not in visited:
                cycle = visit(child)
                if cycle:
                    return cycle
        stack.pop()
        on_stack.discard(node_id)
        return None

    return visit(start_id)


def edge_between(source: str, target: str) -> Edge:
    return Edge(id=f"{source}-{target}", source=source, target=target)
