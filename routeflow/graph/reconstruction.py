"""Graph to tree reconstruction."""
from typing import Any

import structlog
from pydantic import ValidationError

from ..errors import (
    CircularDependency,
    InvalidGraphStructure,
    MissingRequiredNode,
    UnresolvableCondition,
)
from ..rules.models import (
    AllCondition,
    AnyCondition,
    Condition,
    EventParams,
    FactCondition,
    NotCondition,
    ReferenceCondition,
    Rule,
    RuleEvent,
)
from .models import FlowGraph, Node, NodeKind, find_cycle
from .projection import REFERENCE_FACT, REFERENCE_OPERATOR

log = structlog.get_logger()


def _single(graph: FlowGraph, kind: NodeKind, label: str) -> Node:
    found = graph.nodes_of_kind(kind)
    if not found:
        raise MissingRequiredNode(f"Invalid graph structure: missing {label} node", {"kind": kind.value})
    if len(found) > 1:
        raise InvalidGraphStructure(
            f"Invalid graph structure: {len(found)} {label} nodes, expected one",
            {"kind": kind.value, "node_ids": [n.id for n in found]},
        )
    return found[0]


def _fact_condition(node: Node) -> Condition:
    data = node.data
    fact, operator, value = data.get("fact"), data.get("operator"), data.get("value")

    if fact == REFERENCE_FACT and operator == REFERENCE_OPERATOR:
        if not isinstance(value, str) or not value:
            raise InvalidGraphStructure(f"Reference node \"{node.id}\" has no condition name", {"node_id": node.id})
        return ReferenceCondition(condition=value)

    if not isinstance(fact, str) or not fact or not isinstance(operator, str) or not operator:
        raise InvalidGraphStructure(
            f"Fact condition node \"{node.id}\" is missing fact or operator",
            {"node_id": node.id},
        )
    try:
        return FactCondition(fact=fact, operator=operator, value=value, params=data.get("params") or None)
    except ValidationError as e:
        raise InvalidGraphStructure(
            f"Fact condition node \"{node.id}\" has invalid data",
            {"node_id": node.id, "errors": e.errors(include_url=False, include_context=False)},
        ) from e


def build_condition(graph: FlowGraph, root_id: str) -> Condition | None:
    """
    Rebuild the condition rooted at ``root_id``.

    Event nodes are skipped; logical nodes whose children all resolve to
    nothing resolve to None themselves.

    Raises:
        CircularDependency: a node is reachable from itself
        InvalidGraphStructure: a `not` node without exactly one child, or a
            malformed node
    """
    nodes = graph.node_map()
    adjacency = graph.adjacency()

    def build(node_id: str, path: tuple[str, ...]) -> Condition | None:
        if node_id in path:
            raise CircularDependency(
                "Rule contains a circular dependency",
                {"cycle": [*path[path.index(node_id):], node_id]},
            )
        node = nodes.get(node_id)
        if node is None or node.kind == NodeKind.EVENT:
            return None
        if node.kind == NodeKind.HEADER:
            raise CircularDependency("Rule contains a circular dependency", {"cycle": [*path, node_id]})

        if node.kind == NodeKind.FACT_TEST:
            return _fact_condition(node)

        child_ids = [
            child for child in adjacency.get(node_id, [])
            if child in nodes and nodes[child].kind != NodeKind.EVENT
        ]
        children = [c for c in (build(child, path + (node_id,)) for child in child_ids) if c is not None]

        op_type = node.data.get("type")
        if op_type == "not":
            if not children:
                raise InvalidGraphStructure(
                    f"NOT operator \"{node_id}\" has no child condition",
                    {"node_id": node_id},
                )
            if len(children) > 1:
                raise InvalidGraphStructure(
                    f"NOT operator \"{node_id}\" can only have one child condition",
                    {"node_id": node_id, "children": len(children)},
                )
            return NotCondition(not_=children[0])

        if not children:
            log.debug("graph.branch_pruned", node_id=node_id)
            return None
        if op_type == "all":
            return AllCondition(all=children)
        if op_type == "any":
            return AnyCondition(any=children)
        raise InvalidGraphStructure(
            f"Logical operator \"{node_id}\" has unknown type {op_type!r}",
            {"node_id": node_id},
        )

    header_ids = tuple(n.id for n in graph.nodes_of_kind(NodeKind.HEADER))
    return build(root_id, header_ids)


def graph_to_rule(graph: FlowGraph, original: Rule) -> Rule:
    """
    Rebuild a Rule from an edited graph.

    Header and event node data override the original rule's metadata; the
    event type comes from the original. Current node positions are captured
    into the rule's layout.

    Raises:
        MissingRequiredNode: header or event node absent
        UnresolvableCondition: no root condition, or it resolves to nothing
        CircularDependency: cycle among condition nodes
        InvalidGraphStructure: any other structural fault
    """
    header = _single(graph, NodeKind.HEADER, "rule header")
    event = _single(graph, NodeKind.EVENT, "event")
    nodes = graph.node_map()

    cycle = find_cycle(graph, header.id)
    if cycle:
        raise CircularDependency("Rule contains a circular dependency", {"cycle": cycle})

    root_ids = [
        target for target in graph.adjacency().get(header.id, [])
        if target in nodes and nodes[target].kind != NodeKind.EVENT
    ]
    if not root_ids:
        raise UnresolvableCondition("No root condition found", {"header_id": header.id})
    if len(root_ids) > 1:
        log.warning("graph.multiple_roots", roots=root_ids, used=root_ids[0])

    conditions = build_condition(graph, root_ids[0])
    if conditions is None:
        raise UnresolvableCondition("Failed to build conditions from graph", {"root_id": root_ids[0]})

    header_data: dict[str, Any] = header.data
    event_data: dict[str, Any] = event.data
    priority = header_data.get("priority")

    try:
        rule = Rule(
            name=header_data.get("name") or original.name,
            description=header_data.get("description") or original.description,
            priority=original.priority if priority is None else priority,
            default_destination=header_data.get("defaultDestination") or original.default_destination,
            conditions=conditions,
            event=RuleEvent(
                type=original.event.type or "route_determined",
                params=EventParams(
                    destination=event_data.get("destination") or "",
                    priority=event_data.get("priority") or None,
                    reason=event_data.get("reason") or None,
                ),
            ),
            layout=graph.layout(),
        )
    except ValidationError as e:
        raise InvalidGraphStructure(
            "Header or event node data is invalid",
            {"errors": e.errors(include_url=False, include_context=False)},
        ) from e

    log.info("graph.reconstructed", rule_name=rule.name, nodes=len(graph.nodes))
    return rule
