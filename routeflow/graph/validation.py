"""Structural validation of rule graphs."""
from collections.abc import Mapping
from typing import Any

from ..rules.facts import INPUT_VALUE_FACT
from ..rules.models import EXISTENCE_OPERATORS
from ..rules.operators import is_known_operator
from ..rules.validation import MAX_PRIORITY, MIN_PRIORITY, ValidationResult
from .models import CONDITION_KINDS, FlowGraph, NodeKind, find_cycle
from .projection import REFERENCE_FACT, REFERENCE_OPERATOR


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _needs_value(operator: Any) -> bool:
    return not isinstance(operator, str) or operator not in EXISTENCE_OPERATORS


def _is_reference(data: dict[str, Any]) -> bool:
    return data.get("fact") == REFERENCE_FACT and data.get("operator") == REFERENCE_OPERATOR


def validate_graph(graph: FlowGraph) -> ValidationResult:
    """
    Check that a graph can be turned back into a rule.

    Never mutates the graph. Disconnected nodes, unknown operators and empty
    values are warnings; everything else is an error.
    """
    errors: list[str] = []
    warnings: list[str] = []

    headers = graph.nodes_of_kind(NodeKind.HEADER)
    events = graph.nodes_of_kind(NodeKind.EVENT)
    if not headers:
        errors.append("Missing rule header node")
    elif len(headers) > 1:
        errors.append(f"Graph has {len(headers)} rule header nodes, expected exactly one")
    if not events:
        errors.append("Missing event node")
    elif len(events) > 1:
        errors.append(f"Graph has {len(events)} event nodes, expected exactly one")
    if not any(n.kind in CONDITION_KINDS for n in graph.nodes):
        errors.append("Rule must have at least one condition")

    nodes = graph.node_map()
    if len(nodes) < len(graph.nodes):
        errors.append("Node ids must be unique")
    for edge in graph.edges:
        for end in (edge.source, edge.target):
            if end not in nodes:
                errors.append(f"Edge \"{edge.id}\" references unknown node \"{end}\"")

    outgoing = graph.adjacency()
    incoming = graph.incoming()

    for node in graph.nodes:
        children = [c for c in outgoing.get(node.id, []) if c in nodes]
        parents = incoming.get(node.id, [])
        data = node.data

        if node.kind != NodeKind.HEADER and not parents:
            warnings.append(f"Node \"{node.id}\" is disconnected (no incoming connections)")

        if node.kind == NodeKind.HEADER:
            if parents:
                errors.append("Rule header node cannot have incoming connections")
            if not children:
                errors.append("Rule header node must connect to a condition")

        elif node.kind == NodeKind.LOGICAL:
            condition_children = [c for c in children if nodes[c].kind != NodeKind.EVENT]
            op_type = data.get("type")
            if op_type not in ("all", "any", "not"):
                errors.append(f"Logical operator node \"{node.id}\" has unknown type {op_type!r}")
            if not condition_children:
                errors.append(f"Logical operator node \"{node.id}\" must have at least one child")
            elif op_type == "not" and len(condition_children) != 1:
                errors.append(f"NOT operator \"{node.id}\" can only have one child condition")

        elif node.kind == NodeKind.FACT_TEST:
            _check_fact_data(node.id, data, errors, warnings)

        elif node.kind == NodeKind.EVENT:
            if not _is_text(data.get("destination")):
                errors.append("Event node is missing destination")
            if not parents:
                errors.append("Event node must be connected to conditions")
            if children:
                errors.append("Event node cannot have outgoing connections")

    if len(headers) == 1:
        cycle = find_cycle(graph, headers[0].id)
        if cycle:
            errors.append(f"Rule contains a circular dependency: {' -> '.join(cycle)}")

    return ValidationResult.build(errors, warnings)


def _check_fact_data(node_id: str, data: dict[str, Any], errors: list[str], warnings: list[str]):
    if _is_reference(data):
        if not _is_text(data.get("value")):
            errors.append(f"Reference node \"{node_id}\" is missing a condition name")
        return

    fact, operator = data.get("fact"), data.get("operator")
    if not _is_text(fact):
        errors.append(f"Fact condition \"{node_id}\" is missing fact field")
    if not _is_text(operator):
        errors.append(f"Fact condition \"{node_id}\" is missing operator")
    elif not is_known_operator(operator):
        warnings.append(f"Unknown operator \"{operator}\"")

    if _is_empty(data.get("value")) and _needs_value(operator):
        warnings.append(f"Fact condition \"{node_id}\" is missing value")

    params = data.get("params")
    if params is not None and not isinstance(params, Mapping):
        errors.append(f"Fact condition \"{node_id}\": params must be an object")
    elif fact == INPUT_VALUE_FACT and not _is_text((params or {}).get("key")):
        errors.append(f"Fact condition \"{node_id}\": inputValue fact requires a key parameter")


def validate_node_data(kind: NodeKind | str, data: dict[str, Any]) -> ValidationResult:
    """Validate a single node's data before an edit is applied."""
    kind = NodeKind(kind)
    errors: list[str] = []
    warnings: list[str] = []

    if kind == NodeKind.HEADER:
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            errors.append("Rule name is required")
        priority = data.get("priority")
        if isinstance(priority, bool) or not isinstance(priority, int) or not MIN_PRIORITY <= priority <= MAX_PRIORITY:
            errors.append(f"Priority must be a number between {MIN_PRIORITY} and {MAX_PRIORITY}")
        default = data.get("defaultDestination")
        if not isinstance(default, str) or not default.strip():
            errors.append("Default destination is required")

    elif kind == NodeKind.LOGICAL:
        if data.get("type") not in ("all", "any", "not"):
            errors.append("Logical operator type must be all, any or not")

    elif kind == NodeKind.FACT_TEST:
        if not _is_text(data.get("fact")):
            errors.append("Fact is required")
        if not _is_text(data.get("operator")):
            errors.append("Operator is required")
        params = data.get("params")
        if params is not None and not isinstance(params, Mapping):
            errors.append("Params must be an object")
        if _is_empty(data.get("value")) and _needs_value(data.get("operator")):
            warnings.append("Value is empty")

    elif kind == NodeKind.EVENT:
        if not _is_text(data.get("destination")):
            errors.append("Destination is required")

    return ValidationResult.build(errors, warnings)
