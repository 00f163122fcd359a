"""
Tree to graph projection.

Lays out a Rule's condition tree as nodes and edges for visual editing:

    rule-header
        |
    root condition ----+
      /     \\          |
   child   child       |
                       v
                   event-node

Ids for condition nodes come from a counter local to each call, so the
function is pure. Saved positions from the rule's layout win over the
computed level-based layout.
"""
import itertools
from collections import defaultdict
from typing import Any, Literal

import structlog
from pydantic import BaseModel

from ..rules.models import (
    AllCondition,
    AnyCondition,
    Condition,
    FactCondition,
    NotCondition,
    Position,
    ReferenceCondition,
    Rule,
    RuleLayout,
    children_of,
)
from .models import (
    EVENT_NODE_ID,
    HEADER_NODE_ID,
    Edge,
    FlowGraph,
    Node,
    NodeKind,
    edge_between,
)

log = structlog.get_logger()

CENTER_X = 400
TOP_Y = 50
NODE_WIDTH = 280
NODE_HEIGHT = 120
HORIZONTAL_SPACING = NODE_WIDTH + 50
VERTICAL_SPACING = NODE_HEIGHT + 80
DISCONNECTED_OFFSET_X = 500

REFERENCE_FACT = "condition"
REFERENCE_OPERATOR = "reference"


def band_position(level: int, index: int, total: int) -> Position:
    """
    Position of the ``index``-th of ``total`` nodes in band ``level``.

    Band 0 is the header. Nodes in a band are centred on CENTER_X and spaced
    by at least one node width.
    """
    left = CENTER_X - NODE_WIDTH / 2
    span = (total - 1) * HORIZONTAL_SPACING
    return Position(x=left - span / 2 + index * HORIZONTAL_SPACING, y=TOP_Y + level * VERTICAL_SPACING)


def condition_node_data(condition: Condition) -> tuple[NodeKind, dict[str, Any]]:
    """Node kind and data for a single condition (children excluded)."""
    if isinstance(condition, AllCondition):
        return NodeKind.LOGICAL, {"type": "all"}
    if isinstance(condition, AnyCondition):
        return NodeKind.LOGICAL, {"type": "any"}
    if isinstance(condition, NotCondition):
        return NodeKind.LOGICAL, {"type": "not"}
    if isinstance(condition, ReferenceCondition):
        return NodeKind.FACT_TEST, {
            "fact": REFERENCE_FACT,
            "operator": REFERENCE_OPERATOR,
            "value": condition.condition,
        }
    if isinstance(condition, FactCondition):
        data: dict[str, Any] = {
            "fact": condition.fact,
            "operator": condition.operator,
            "value": condition.value,
        }
        if condition.params:
            data["params"] = dict(condition.params)
        return NodeKind.FACT_TEST, data
    raise TypeError(f"Unsupported condition type: {type(condition).__name__}")


def rule_to_graph(rule: Rule, layout: RuleLayout | None = None) -> FlowGraph:
    """
    Project a rule into a graph.

    Args:
        rule: Rule to project
        layout: Saved positions; defaults to ``rule.layout``

    Returns:
        FlowGraph with header, condition and event nodes
    """
    saved = (layout or rule.layout or RuleLayout()).nodes
    counter = itertools.count()

    # (id, kind, data, level) in depth-first order
    placed: list[tuple[str, NodeKind, dict[str, Any], int]] = []
    edges: list[Edge] = []

    def visit(condition: Condition, parent_id: str, level: int) -> str:
        node_id = f"node-{next(counter)}"
        kind, data = condition_node_data(condition)
        placed.append((node_id, kind, data, level))
        edges.append(edge_between(parent_id, node_id))
        for child in children_of(condition):
            visit(child, node_id, level + 1)
        return node_id

    root_id = visit(rule.conditions, HEADER_NODE_ID, 1)
    edges.append(edge_between(root_id, EVENT_NODE_ID))

    bands: dict[int, list[str]] = defaultdict(list)
    for node_id, _, _, level in placed:
        bands[level].append(node_id)
    event_level = max(bands) + 1

    def position_for(node_id: str, level: int) -> Position:
        if node_id in saved:
            return saved[node_id].model_copy()
        band = bands.get(level, [node_id])
        return band_position(level, band.index(node_id), len(band))

    nodes = [
        Node(
            id=HEADER_NODE_ID,
            kind=NodeKind.HEADER,
            data={
                "name": rule.name,
                "priority": rule.priority,
                "description": rule.description,
                "defaultDestination": rule.default_destination,
            },
            position=position_for(HEADER_NODE_ID, 0),
        )
    ]
    nodes.extend(
        Node(id=node_id, kind=kind, data=data, position=position_for(node_id, level))
        for node_id, kind, data, level in placed
    )
    params = rule.event.params
    nodes.append(
        Node(
            id=EVENT_NODE_ID,
            kind=NodeKind.EVENT,
            data={
                "destination": params.destination,
                "priority": params.priority,
                "reason": params.reason,
            },
            position=position_for(EVENT_NODE_ID, event_level),
        )
    )

    log.debug("graph.projected", rule_name=rule.name, nodes=len(nodes), edges=len(edges))
    return FlowGraph(nodes=nodes, edges=edges)


def auto_layout(graph: FlowGraph) -> FlowGraph:
    """
    Recompute every position from the graph structure.

    Levels come from a breadth-first walk from the header; the event node
    goes below the deepest level and nodes the walk never reaches are parked
    to the right. The input graph is left untouched.
    """
    laid_out = graph.model_copy(deep=True)
    nodes = laid_out.node_map()
    header = nodes.get(HEADER_NODE_ID) or next(iter(laid_out.nodes_of_kind(NodeKind.HEADER)), None)
    if header is None:
        return laid_out

    adjacency = laid_out.adjacency()
    bands: dict[int, list[str]] = defaultdict(list)
    visited: set[str] = set()
    queue: list[tuple[str, int]] = [(header.id, 0)]

    while queue:
        node_id, level = queue.pop(0)
        if node_id in visited or node_id not in nodes:
            continue
        visited.add(node_id)
        if nodes[node_id].kind == NodeKind.EVENT:
            continue
        bands[level].append(node_id)
        queue.extend((child, level + 1) for child in adjacency.get(node_id, []) if child not in visited)

    for level, band in bands.items():
        for index, node_id in enumerate(band):
            nodes[node_id].position = band_position(level, index, len(band))

    event_level = max(bands) + 1
    for event in laid_out.nodes_of_kind(NodeKind.EVENT):
        event.position = band_position(event_level, 0, 1)

    stray = [n for n in laid_out.nodes if n.id not in visited and n.kind != NodeKind.EVENT]
    for index, node in enumerate(stray):
        base = band_position(index + 1, 0, 1)
        node.position = Position(x=base.x + DISCONNECTED_OFFSET_X, y=base.y)

    return laid_out


class RuleComplexity(BaseModel):
    node_count: int
    edge_count: int
    max_depth: int
    complexity: Literal["simple", "moderate", "complex", "very-complex"]


def measure_rule_complexity(rule: Rule) -> RuleComplexity:
    """Size and depth of the graph a rule projects to."""
    condition_nodes = 0
    max_depth = 0

    def count(condition: Condition, depth: int):
        nonlocal condition_nodes, max_depth
        condition_nodes += 1
        max_depth = max(max_depth, depth)
        for child in children_of(condition):
            count(child, depth + 1)

    count(rule.conditions, 0)
    node_count = condition_nodes + 2
    # one incoming edge per condition node, plus the edge into the event node
    edge_count = condition_nodes + 1

    if node_count <= 10 and max_depth <= 2:
        grade = "simple"
    elif node_count <= 25 and max_depth <= 4:
        grade = "moderate"
    elif node_count <= 50 and max_depth <= 6:
        grade = "complex"
    else:
        grade = "very-complex"

    return RuleComplexity(node_count=node_count, edge_count=edge_count, max_depth=max_depth, complexity=grade)
