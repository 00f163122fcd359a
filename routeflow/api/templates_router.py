"""API routes for the rule template catalogue."""
from typing import List, Optional

from fastapi import APIRouter, HTTPException

from ..errors import TemplateVariableError
from ..rules.models import Rule
from ..rules.templates import (
    RULE_TEMPLATES,
    apply_template,
    get_template,
    get_template_categories,
    get_templates_by_category,
    search_templates,
)
from .schemas import ApplyTemplateRequest, TemplateListResponse

router = APIRouter(prefix="/v1/templates", tags=["templates"])


@router.get("", response_model=TemplateListResponse)
async def list_templates(category: Optional[str] = None, q: Optional[str] = None):
    """List templates, optionally narrowed by category and a search string."""
    templates = get_templates_by_category(category) if category else list(RULE_TEMPLATES)
    if q:
        matching = {t.id for t in search_templates(q)}
        templates = [t for t in templates if t.id in matching]
    return TemplateListResponse(total=len(templates), templates=templates)


@router.get("/categories", response_model=List[str])
async def list_categories():
    return get_template_categories()


@router.post("/{template_id}/apply", response_model=Rule)
async def apply(template_id: str, req: ApplyTemplateRequest):
    template = get_template(template_id)
    if template is None:
        raise HTTPException(404, detail=f"Template {template_id} not found")
    try:
        return apply_template(template, req.variables)
    except TemplateVariableError as e:
        raise HTTPException(422, detail=e.to_response().model_dump()) from e
