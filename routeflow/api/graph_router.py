"""API routes for converting rules to and from their graph view."""
from fastapi import APIRouter, HTTPException

from ..errors import RuleStructureError
from ..graph.models import FlowGraph
from ..graph.projection import auto_layout, measure_rule_complexity, rule_to_graph
from ..graph.reconstruction import graph_to_rule
from ..graph.validation import validate_graph
from ..metrics import get_metrics
from ..rules.models import Rule
from ..rules.validation import ValidationResult
from .schemas import ProjectRequest, ProjectResponse, ReconstructRequest

router = APIRouter(prefix="/v1/graph", tags=["graph"])


def _record(direction: str, ok: bool):
    metrics = get_metrics()
    if metrics:
        metrics.record_conversion(direction, ok)


@router.post("/project", response_model=ProjectResponse)
async def project_rule(req: ProjectRequest):
    """Lay a rule out as nodes and edges."""
    graph = rule_to_graph(req.rule, req.layout)
    _record("to_graph", True)
    return ProjectResponse(graph=graph, complexity=measure_rule_complexity(req.rule))


@router.post("/reconstruct", response_model=Rule)
async def reconstruct_rule(req: ReconstructRequest):
    """
    Rebuild a rule from an edited graph.

    Structural faults answer 422 with {code, message, details}; the caller
    keeps its previous rule.
    """
    try:
        rule = graph_to_rule(req.graph, req.original)
    except RuleStructureError as e:
        _record("to_rule", False)
        raise HTTPException(422, detail=e.to_response().model_dump()) from e
    _record("to_rule", True)
    return rule


@router.post("/validate", response_model=ValidationResult)
async def validate_flow_graph(graph: FlowGraph):
    return validate_graph(graph)


@router.post("/layout", response_model=FlowGraph)
async def layout_graph(graph: FlowGraph):
    """Recompute node positions from the graph structure."""
    return auto_layout(graph)
