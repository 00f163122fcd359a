"""
Rule templates.

A template is a skeleton Rule whose strings may contain ``{{key}}``
placeholders, plus the variables it declares. ``apply_template`` walks the
typed rule (including its condition tree) and substitutes values; it never
round-trips through serialized text.
"""
import re
from typing import Any, Callable, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..errors import TemplateVariableError
from .models import (
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

log = structlog.get_logger()

PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


class _TemplateModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TemplateOption(_TemplateModel):
    label: str
    value: Any


class TemplateVariable(_TemplateModel):
    key: str
    label: str
    type: Literal["string", "number", "boolean", "array", "select"] = "string"
    default_value: Any = None
    options: list[TemplateOption] = Field(default_factory=list)
    required: bool = False


class RuleTemplate(_TemplateModel):
    id: str
    name: str
    description: str
    category: str
    rule: Rule
    variables: list[TemplateVariable] = Field(default_factory=list)

    def placeholders(self) -> set[str]:
        """Every placeholder key used anywhere in the skeleton."""
        found: set[str] = set()

        def collect(text: str) -> str:
            found.update(PLACEHOLDER.findall(text))
            return text

        _substitute_rule(self.rule, collect)
        return found


def apply_template(template: RuleTemplate, variables: dict[str, Any] | None = None) -> Rule:
    """
    Build a Rule from a template.

    A string that is exactly one placeholder takes the variable's raw value
    (so lists and numbers keep their type); placeholders embedded in longer
    strings are interpolated.

    Raises:
        TemplateVariableError: a required variable has no value or default,
            or the skeleton uses a placeholder no variable declares
    """
    variables = variables or {}
    declared = {v.key: v for v in template.variables}

    undeclared = sorted(template.placeholders() - declared.keys())
    if undeclared:
        raise TemplateVariableError(
            f"Template '{template.id}' uses undeclared variables: {', '.join(undeclared)}",
            {"template_id": template.id, "undeclared": undeclared},
        )

    values: dict[str, Any] = {}
    missing: list[str] = []
    for key, var in declared.items():
        value = variables.get(key, var.default_value)
        if _is_blank(value):
            if var.required:
                missing.append(key)
                continue
            value = ""
        values[key] = value

    if missing:
        raise TemplateVariableError(
            f"Missing required template variables: {', '.join(missing)}",
            {"template_id": template.id, "missing": missing},
        )

    def render(text: str) -> Any:
        whole = PLACEHOLDER.fullmatch(text)
        if whole:
            return values[whole.group(1)]
        return PLACEHOLDER.sub(lambda m: _as_text(values[m.group(1)]), text)

    rule = _substitute_rule(template.rule, render)
    log.info("template.applied", template_id=template.id, rule_name=rule.name)
    return rule


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _substitute_value(value: Any, render: Callable[[str], Any]) -> Any:
    if isinstance(value, str):
        return render(value)
    if isinstance(value, list):
        return [_substitute_value(item, render) for item in value]
    if isinstance(value, dict):
        return {k: _substitute_value(v, render) for k, v in value.items()}
    return value


def _substitute_text(value: str | None, render: Callable[[str], Any]) -> str | None:
    if value is None:
        return None
    return _as_text(render(value))


def _substitute_condition(condition: Condition, render: Callable[[str], Any]) -> Condition:
    if isinstance(condition, AllCondition):
        return AllCondition(all=[_substitute_condition(c, render) for c in condition.all])
    if isinstance(condition, AnyCondition):
        return AnyCondition(any=[_substitute_condition(c, render) for c in condition.any])
    if isinstance(condition, NotCondition):
        return NotCondition(not_=_substitute_condition(condition.not_, render))
    if isinstance(condition, ReferenceCondition):
        return ReferenceCondition(condition=_substitute_text(condition.condition, render))
    if isinstance(condition, FactCondition):
        return FactCondition(
            fact=_substitute_text(condition.fact, render),
            operator=_substitute_text(condition.operator, render),
            value=_substitute_value(condition.value, render),
            params=_substitute_value(condition.params, render),
        )
    raise TypeError(f"Unsupported condition type: {type(condition).__name__}")


def _substitute_rule(rule: Rule, render: Callable[[str], Any]) -> Rule:
    params = rule.event.params
    extra = _substitute_value(dict(params.model_extra or {}), render)
    return Rule(
        name=_substitute_text(rule.name, render),
        description=_substitute_text(rule.description, render),
        priority=rule.priority,
        default_destination=_substitute_text(rule.default_destination, render),
        conditions=_substitute_condition(rule.conditions, render),
        event=RuleEvent(
            type=_substitute_text(rule.event.type, render),
            params=EventParams(
                destination=_substitute_text(params.destination, render),
                priority=_substitute_text(params.priority, render),
                reason=_substitute_text(params.reason, render),
                **extra,
            ),
        ),
        layout=rule.layout.model_copy(deep=True) if rule.layout else None,
    )


def _input_test(key: str, operator: str, value: Any) -> FactCondition:
    return FactCondition(fact="inputValue", params={"key": key}, operator=operator, value=value)


def _route(destination: str, reason: str, priority: str | None = None) -> RuleEvent:
    return RuleEvent(
        type="route_determined",
        params=EventParams(destination=destination, priority=priority, reason=reason),
    )


RULE_TEMPLATES: list[RuleTemplate] = [
    RuleTemplate(
        id="simple-equal",
        name="Simple Equality Check",
        description="Route based on a single field matching a value",
        category="Basic",
        rule=Rule(
            name="simpleRule",
            description="Routes when {{fieldName}} equals {{value}}",
            priority=50,
            default_destination="{{defaultDestination}}",
            conditions=AllCondition(all=[_input_test("{{fieldName}}", "equal", "{{value}}")]),
            event=_route("{{destination}}", "{{fieldName}} matched expected value"),
        ),
        variables=[
            TemplateVariable(key="fieldName", label="Field Name", default_value="intent", required=True),
            TemplateVariable(key="value", label="Expected Value", default_value="support", required=True),
            TemplateVariable(key="destination", label="Destination Queue", default_value="Support_Queue", required=True),
            TemplateVariable(key="defaultDestination", label="Default Destination (if no match)",
                             default_value="Default_Queue", required=True),
        ],
    ),
    RuleTemplate(
        id="vip-routing",
        name="VIP Customer Routing",
        description="Priority routing for VIP customers",
        category="Customer Type",
        rule=Rule(
            name="vipRouting",
            description="VIP customers get priority service",
            priority=95,
            default_destination="{{defaultDestination}}",
            conditions=AllCondition(all=[
                _input_test("customerType", "equal", "vip"),
                _input_test("{{additionalField}}", "equal", "{{additionalValue}}"),
            ]),
            event=_route("{{vipQueue}}", "VIP customer identified", priority="high"),
        ),
        variables=[
            TemplateVariable(
                key="additionalField",
                label="Additional Check Field",
                type="select",
                default_value="intent",
                options=[
                    TemplateOption(label="Intent", value="intent"),
                    TemplateOption(label="Brand", value="brand"),
                    TemplateOption(label="Language", value="language"),
                ],
            ),
            TemplateVariable(key="additionalValue", label="Additional Check Value", default_value="support"),
            TemplateVariable(key="vipQueue", label="VIP Queue Name", default_value="VIP_Support_Queue", required=True),
            TemplateVariable(key="defaultDestination", label="Default Destination (if no match)",
                             default_value="Standard_Queue", required=True),
        ],
    ),
    RuleTemplate(
        id="multi-intent",
        name="Multiple Intent Routing",
        description="Route based on multiple possible intents",
        category="Intent",
        rule=Rule(
            name="multiIntentRouting",
            description="Routes multiple intents to same queue",
            priority=70,
            default_destination="{{defaultDestination}}",
            conditions=AnyCondition(any=[
                _input_test("intent", "equal", "{{intent1}}"),
                _input_test("intent", "equal", "{{intent2}}"),
                _input_test("intent", "equal", "{{intent3}}"),
            ]),
            event=_route("{{destination}}", "Matched one of the specified intents", priority="{{priority}}"),
        ),
        variables=[
            TemplateVariable(key="intent1", label="Intent 1", default_value="billing", required=True),
            TemplateVariable(key="intent2", label="Intent 2", default_value="payment", required=True),
            TemplateVariable(key="intent3", label="Intent 3", default_value="invoice"),
            TemplateVariable(key="destination", label="Destination", default_value="Billing_Queue", required=True),
            TemplateVariable(
                key="priority",
                label="Priority",
                type="select",
                default_value="medium",
                options=[
                    TemplateOption(label="High", value="high"),
                    TemplateOption(label="Medium", value="medium"),
                    TemplateOption(label="Low", value="low"),
                ],
            ),
            TemplateVariable(key="defaultDestination", label="Default Destination (if no match)",
                             default_value="General_Queue", required=True),
        ],
    ),
    RuleTemplate(
        id="business-hours",
        name="Business Hours Routing",
        description="Different routing during/outside business hours",
        category="Time-Based",
        rule=Rule(
            name="businessHoursRouting",
            description="Routes based on business hours",
            priority=60,
            default_destination="{{defaultDestination}}",
            conditions=AllCondition(all=[
                FactCondition(fact="isBusinessHours", operator="equal", value=True),
                _input_test("{{checkField}}", "equal", "{{checkValue}}"),
            ]),
            event=_route("{{businessHoursQueue}}", "Business hours routing"),
        ),
        variables=[
            TemplateVariable(key="checkField", label="Additional Check Field", default_value="intent"),
            TemplateVariable(key="checkValue", label="Additional Check Value", default_value="support"),
            TemplateVariable(key="businessHoursQueue", label="Business Hours Queue",
                             default_value="Standard_Queue", required=True),
            TemplateVariable(key="defaultDestination", label="Default Destination (if no match)",
                             default_value="After_Hours_Queue", required=True),
        ],
    ),
    RuleTemplate(
        id="tiered-support",
        name="Tiered Support Routing",
        description="Route based on customer tier and issue complexity",
        category="Complex",
        rule=Rule(
            name="tieredSupport",
            description="Tiered support routing based on customer and issue",
            priority=85,
            default_destination="{{defaultDestination}}",
            conditions=AllCondition(all=[
                AnyCondition(any=[
                    _input_test("customerTier", "equal", "platinum"),
                    AllCondition(all=[
                        _input_test("customerTier", "equal", "gold"),
                        _input_test("issueComplexity", "greaterThan", 3),
                    ]),
                ]),
                _input_test("intent", "equal", "{{intent}}"),
            ]),
            event=_route("{{premiumQueue}}", "Premium tier customer or complex issue", priority="high"),
        ),
        variables=[
            TemplateVariable(key="intent", label="Intent", default_value="support", required=True),
            TemplateVariable(key="premiumQueue", label="Premium Support Queue",
                             default_value="Premium_Support_Queue", required=True),
            TemplateVariable(key="defaultDestination", label="Default Destination (if no match)",
                             default_value="Standard_Support_Queue", required=True),
        ],
    ),
    RuleTemplate(
        id="language-routing",
        name="Language-Based Routing",
        description="Route to language-specific queues",
        category="Language",
        rule=Rule(
            name="languageRouting",
            description="Routes based on customer language preference",
            priority=75,
            default_destination="{{defaultDestination}}",
            conditions=AllCondition(all=[
                _input_test("language", "in", ["{{lang1}}", "{{lang2}}", "{{lang3}}"]),
            ]),
            event=_route("{{languageQueue}}", "Language-specific routing"),
        ),
        variables=[
            TemplateVariable(key="lang1", label="Language 1", default_value="spanish", required=True),
            TemplateVariable(key="lang2", label="Language 2", default_value="french"),
            TemplateVariable(key="lang3", label="Language 3", default_value="german"),
            TemplateVariable(key="languageQueue", label="Language Queue",
                             default_value="Multilingual_Support", required=True),
            TemplateVariable(key="defaultDestination", label="Default Destination (if no match)",
                             default_value="English_Support", required=True),
        ],
    ),
]


def get_template(template_id: str) -> RuleTemplate | None:
    for template in RULE_TEMPLATES:
        if template.id == template_id:
            return template
    return None


def get_templates_by_category(category: str) -> list[RuleTemplate]:
    return [t for t in RULE_TEMPLATES if t.category == category]


def get_template_categories() -> list[str]:
    return sorted({t.category for t in RULE_TEMPLATES})


def search_templates(query: str) -> list[RuleTemplate]:
    """Case-insensitive match on name, description or category."""
    needle = query.lower()
    return [
        t for t in RULE_TEMPLATES
        if needle in t.name.lower() or needle in t.description.lower() or needle in t.category.lower()
    ]
