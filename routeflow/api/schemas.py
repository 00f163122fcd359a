from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..graph.models import FlowGraph
from ..graph.projection import RuleComplexity
from ..rules.models import Rule, RuleLayout, RuleSet
from ..rules.templates import RuleTemplate


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EvaluateRequest(_ApiModel):
    rule_set: RuleSet
    input: Dict[str, Any] = Field(default_factory=dict)


class ProjectRequest(_ApiModel):
    rule: Rule
    layout: Optional[RuleLayout] = None


class ProjectResponse(_ApiModel):
    graph: FlowGraph
    complexity: RuleComplexity


class ReconstructRequest(_ApiModel):
    graph: FlowGraph
    original: Rule


class ApplyTemplateRequest(_ApiModel):
    variables: Dict[str, Any] = Field(default_factory=dict)


class TemplateListResponse(_ApiModel):
    total: int
    templates: List[RuleTemplate]
