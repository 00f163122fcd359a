"""API routes for rule evaluation and validation."""
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Body, HTTPException

from ..config import get_settings
from ..metrics import get_metrics
from ..rules.engine import RulesEngine
from ..rules.trace import EvaluationResult
from ..rules.validation import ValidationResult, validate_document
from .schemas import EvaluateRequest

router = APIRouter(prefix="/v1/rules", tags=["rules"])
log = structlog.get_logger()


@router.post("/evaluate", response_model=EvaluationResult)
async def evaluate_rules(req: EvaluateRequest):
    """Preview where an input routes, with the full evaluation trace."""
    max_keys = get_settings().MAX_INPUT_KEYS
    if len(req.input) > max_keys:
        raise HTTPException(422, detail=f"Input has {len(req.input)} keys, at most {max_keys} are allowed")

    result = RulesEngine(req.rule_set).evaluate(req.input)

    metrics = get_metrics()
    if metrics:
        metrics.record_evaluation(
            matched=result.matched,
            duration_seconds=result.execution_time_ms / 1000,
            rule_errors=sum(1 for step in result.trace if step.error),
        )
    return result


@router.post("/validate", response_model=ValidationResult)
async def validate_rules(document: Dict[str, Any] = Body(...)):
    """
    Validate an unparsed rule-set document.

    Always answers 200; problems are reported in the body.
    """
    result = validate_document(document)
    log.info("rules.validated", is_valid=result.is_valid, errors=len(result.errors), warnings=len(result.warnings))
    return result
