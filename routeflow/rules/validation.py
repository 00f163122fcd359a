"""Validation of rules, rule sets and raw rule-set documents.

Validators never raise and never mutate; they return a ValidationResult
with errors (blocking) and warnings (advisory).
"""
from collections.abc import Mapping
from typing import Any, Iterator

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..errors import RuleDocumentError
from .document import load_rule_set
from .facts import INPUT_VALUE_FACT
from .models import (
    Condition,
    FactCondition,
    ReferenceCondition,
    RoutePriority,
    Rule,
    RuleSet,
    children_of,
    validate_condition_shape,
)
from .operators import is_known_operator

MIN_PRIORITY = 1
MAX_PRIORITY = 999


class ValidationResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    is_valid: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def build(cls, errors: list[str], warnings: list[str] | None = None) -> "ValidationResult":
        return cls(is_valid=not errors, errors=errors, warnings=warnings or [])

    def merge(self, other: "ValidationResult", prefix: str = "") -> "ValidationResult":
        return ValidationResult.build(
            self.errors + [f"{prefix}{e}" for e in other.errors],
            self.warnings + [f"{prefix}{w}" for w in other.warnings],
        )

    def summary(self) -> str:
        if self.is_valid and not self.warnings:
            return "Validation passed"
        parts = []
        if self.errors:
            parts.append(f"{len(self.errors)} error(s)")
        if self.warnings:
            parts.append(f"{len(self.warnings)} warning(s)")
        return ", ".join(parts)


def iter_conditions(condition: Condition) -> Iterator[Condition]:
    """Every node of a condition tree, depth-first."""
    yield condition
    for child in children_of(condition):
        yield from iter_conditions(child)


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def validate_rule(rule: Rule) -> ValidationResult:
    """Validate a parsed rule."""
    errors: list[str] = []
    warnings: list[str] = []

    if _is_blank(rule.name):
        errors.append("Rule name is required")

    if not MIN_PRIORITY <= rule.priority <= MAX_PRIORITY:
        errors.append(f"Rule priority must be a number between {MIN_PRIORITY} and {MAX_PRIORITY}")

    if _is_blank(rule.default_destination):
        errors.append("Rule default destination cannot be empty or whitespace only")

    errors.extend(issue.message for issue in validate_condition_shape(rule.conditions))

    for node in iter_conditions(rule.conditions):
        if isinstance(node, FactCondition):
            if node.operator and not is_known_operator(node.operator):
                warnings.append(f"Unknown operator \"{node.operator}\"")
            if node.fact == INPUT_VALUE_FACT and not (node.params or {}).get("key"):
                errors.append("inputValue fact requires a key parameter")
        elif isinstance(node, ReferenceCondition):
            warnings.append(f"Reference condition \"{node.condition}\" is not evaluated by the engine")

    if _is_blank(rule.event.type):
        errors.append("Event type is required")
    if _is_blank(rule.event.params.destination):
        errors.append("Event destination is required")

    priority = rule.event.params.priority
    if priority and priority not in {p.value for p in RoutePriority}:
        errors.append(f"Event priority must be one of high, medium, low (got \"{priority}\")")

    return ValidationResult.build(errors, warnings)


def validate_rule_set(rule_set: RuleSet) -> ValidationResult:
    """Validate every rule plus set-wide constraints (non-empty, unique names)."""
    result = ValidationResult()

    if not rule_set.rules:
        return ValidationResult.build(["Rules array cannot be empty - at least one rule is required"])

    seen: set[str] = set()
    duplicates: list[str] = []
    for rule in rule_set.rules:
        if rule.name in seen and rule.name not in duplicates:
            duplicates.append(rule.name)
        seen.add(rule.name)
    if duplicates:
        result = result.merge(ValidationResult.build(
            [f"Duplicate rule name \"{name}\"" for name in duplicates]
        ))

    for index, rule in enumerate(rule_set.rules):
        result = result.merge(validate_rule(rule), prefix=_rule_prefix(index, rule.name))

    return result


def _rule_prefix(index: int, name: Any) -> str:
    label = f" ({name})" if isinstance(name, str) and name else ""
    return f"Rule {index + 1}{label}: "


def validate_document(raw: Any) -> ValidationResult:
    """
    Validate an unparsed rule-set document.

    Structural problems are reported from the raw data so a document that
    cannot be parsed still gets precise messages; a structurally sound
    document is then parsed and checked with validate_rule_set.
    """
    if not isinstance(raw, Mapping):
        return ValidationResult.build(["Rule-set document must be an object"])

    rules = raw.get("rules")
    if not isinstance(rules, list):
        return ValidationResult.build(["Missing or invalid field: rules (must be an array)"])
    if not rules:
        return ValidationResult.build(["Rules array cannot be empty - at least one rule is required"])

    errors: list[str] = []
    for index, rule in enumerate(rules):
        if not isinstance(rule, Mapping):
            errors.append(f"Rule {index + 1}: Rule must be an object")
            continue
        prefix = _rule_prefix(index, rule.get("name"))

        if not rule.get("name"):
            errors.append(f"{prefix}Missing required field 'name'")
        priority = rule.get("priority")
        if isinstance(priority, bool) or not isinstance(priority, (int, float)):
            errors.append(f"{prefix}Priority must be a number")
        if not rule.get("defaultDestination"):
            errors.append(f"{prefix}Missing required field 'defaultDestination'")

        if "conditions" not in rule or rule["conditions"] is None:
            errors.append(f"{prefix}Missing required field 'conditions'")
        else:
            errors.extend(
                f"{prefix}{issue.message}"
                for issue in validate_condition_shape(rule["conditions"])
            )

        event = rule.get("event")
        if not isinstance(event, Mapping):
            errors.append(f"{prefix}Missing required field 'event'")
        else:
            if not event.get("type"):
                errors.append(f"{prefix}Missing event.type")
            params = event.get("params")
            if not isinstance(params, Mapping) or not params.get("destination"):
                errors.append(f"{prefix}Missing event.params.destination")

    if errors:
        return ValidationResult.build(errors)

    try:
        rule_set = load_rule_set(dict(raw))
    except RuleDocumentError as e:
        details = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.details.get("errors", [])
        ]
        return ValidationResult.build(details or [e.message])

    return validate_rule_set(rule_set)
