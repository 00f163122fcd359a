"""
Routing rule model and evaluation.

Provides:
- The Condition tagged union and Rule/RuleSet envelopes
- The priority-ordered evaluation engine with per-rule traces
- Rule templates and rule-set document loading
- Validation of rules, rule sets and raw documents
"""

from .models import (
    AllCondition,
    AnyCondition,
    Condition,
    DynamicFactSpec,
    EngineOptions,
    EventParams,
    FactCondition,
    NotCondition,
    OperatorKind,
    Position,
    ReferenceCondition,
    Rule,
    RuleEvent,
    RuleLayout,
    RuleSet,
    parse_condition,
    validate_condition_shape,
)
from .engine import RulesEngine, evaluate
from .facts import UNDEFINED, FactRegistry
from .trace import ConditionCheck, EvaluationResult, EvaluationStep
from .templates import RULE_TEMPLATES, RuleTemplate, TemplateVariable, apply_template
from .document import dump_rule_set, load_rule_set
from .validation import ValidationResult, validate_document, validate_rule, validate_rule_set

__all__ = [
    "AllCondition",
    "AnyCondition",
    "Condition",
    "DynamicFactSpec",
    "EngineOptions",
    "EventParams",
    "FactCondition",
    "NotCondition",
    "OperatorKind",
    "Position",
    "ReferenceCondition",
    "Rule",
    "RuleEvent",
    "RuleLayout",
    "RuleSet",
    "parse_condition",
    "validate_condition_shape",
    "RulesEngine",
    "evaluate",
    "UNDEFINED",
    "FactRegistry",
    "ConditionCheck",
    "EvaluationResult",
    "EvaluationStep",
    "RULE_TEMPLATES",
    "RuleTemplate",
    "TemplateVariable",
    "apply_template",
    "dump_rule_set",
    "load_rule_set",
    "ValidationResult",
    "validate_document",
    "validate_rule",
    "validate_rule_set",
]
