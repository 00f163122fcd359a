"""
Graph view of routing rules.

Provides:
- Tree to graph projection with level-based auto layout
- Graph to tree reconstruction
- Structural validation of edited graphs
"""

from .models import EVENT_NODE_ID, HEADER_NODE_ID, Edge, FlowGraph, Node, NodeKind, find_cycle
from .projection import RuleComplexity, auto_layout, measure_rule_complexity, rule_to_graph
from .reconstruction import build_condition, graph_to_rule
from .validation import validate_graph, validate_node_data

__all__ = [
    "EVENT_NODE_ID",
    "HEADER_NODE_ID",
    "Edge",
    "FlowGraph",
    "Node",
    "NodeKind",
    "find_cycle",
    "RuleComplexity",
    "auto_layout",
    "measure_rule_complexity",
    "rule_to_graph",
    "build_condition",
    "graph_to_rule",
    "validate_graph",
    "validate_node_data",
]
