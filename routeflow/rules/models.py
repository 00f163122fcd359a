"""Rule definition models.

Conditions are a tagged union keyed on which of the shape fields
(``all``, ``any``, ``not``, ``fact``, ``condition``) a node carries.
Wire names are camelCase, attribute names snake_case.
"""
from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    ValidationError,
)
from pydantic.alias_generators import to_camel

from ..errors import InvalidShape

SHAPE_KEYS = ("all", "any", "not", "fact", "condition")


class OperatorKind(str, Enum):
    """Operators understood by the evaluation engine."""
    EQUAL = "equal"
    NOT_EQUAL = "notEqual"
    IN = "in"
    NOT_IN = "notIn"
    CONTAINS = "contains"
    DOES_NOT_CONTAIN = "doesNotContain"
    CONTAINS_ANY = "containsAny"
    CONTAINS_ALL = "containsAll"
    LESS_THAN = "lessThan"
    LESS_THAN_OR_EQUAL = "lessThanOrEqual"
    LESS_THAN_INCLUSIVE = "lessThanInclusive"
    GREATER_THAN = "greaterThan"
    GREATER_THAN_OR_EQUAL = "greaterThanOrEqual"
    GREATER_THAN_INCLUSIVE = "greaterThanInclusive"
    LT = "lt"
    LTE = "lte"
    GT = "gt"
    GTE = "gte"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    EXISTS = "exists"
    DOES_NOT_EXIST = "doesNotExist"
    MATCHES_PATTERN = "matchesPattern"


KNOWN_OPERATORS = frozenset(op.value for op in OperatorKind)

# Operators that never look at the expected value
EXISTENCE_OPERATORS = frozenset({OperatorKind.EXISTS.value, OperatorKind.DOES_NOT_EXIST.value})


class RoutePriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class _ConditionModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class AllCondition(_ConditionModel):
    """Conjunction: true iff every child is true."""
    all: list["Condition"]


class AnyCondition(_ConditionModel):
    """Disjunction: true iff at least one child is true."""
    any: list["Condition"]


class NotCondition(_ConditionModel):
    """Negation of exactly one child."""
    not_: "Condition" = Field(..., alias="not")


class FactCondition(_ConditionModel):
    """Leaf test of a single fact against an expected value."""
    fact: str = Field(..., description="Fact name, e.g. inputValue or isBusinessHours")
    operator: str = Field(..., description="Operator name (see OperatorKind)")
    value: Any = None
    params: dict[str, Any] | None = None


class ReferenceCondition(_ConditionModel):
    """Named pointer to a condition defined elsewhere."""
    condition: str


_MODEL_KINDS = {
    AllCondition: "all",
    AnyCondition: "any",
    NotCondition: "not",
    FactCondition: "fact",
    ReferenceCondition: "condition",
}


def condition_kind(value: Any) -> str | None:
    """Return the shape tag of a condition, or None when it has zero or several."""
    if isinstance(value, BaseModel):
        return _MODEL_KINDS.get(type(value))
    if isinstance(value, Mapping):
        present = [key for key in SHAPE_KEYS if key in value]
        if len(present) == 1:
            return present[0]
    return None


Condition = Annotated[
    Union[
        Annotated[AllCondition, Tag("all")],
        Annotated[AnyCondition, Tag("any")],
        Annotated[NotCondition, Tag("not")],
        Annotated[FactCondition, Tag("fact")],
        Annotated[ReferenceCondition, Tag("condition")],
    ],
    Discriminator(
        condition_kind,
        custom_error_type="invalid_shape",
        custom_error_message="Condition must have exactly one of 'all', 'any', 'not', 'fact' or 'condition'",
    ),
]

AllCondition.model_rebuild()
AnyCondition.model_rebuild()
NotCondition.model_rebuild()

_condition_adapter = TypeAdapter(Condition)


def children_of(condition: Any) -> list[Any]:
    """Structural children of a condition, in order."""
    if isinstance(condition, AllCondition):
        return list(condition.all)
    if isinstance(condition, AnyCondition):
        return list(condition.any)
    if isinstance(condition, NotCondition):
        return [condition.not_]
    return []


def parse_condition(raw: Any) -> Condition:
    """
    Build a Condition from its wire form.

    Raises:
        InvalidShape: if any node lacks exactly one shape
    """
    try:
        return _condition_adapter.validate_python(raw)
    except ValidationError as e:
        first = e.errors()[0]
        path = ".".join(["conditions", *(str(p) for p in first["loc"])])
        raise InvalidShape(first["msg"], path=path, details={"errors": e.errors(include_url=False)}) from e


def dump_condition(condition: Condition) -> dict[str, Any]:
    """Wire form of a condition."""
    return _condition_adapter.dump_python(condition, by_alias=True, exclude_none=True)


def validate_condition_shape(condition: Any, path: str = "conditions") -> list[InvalidShape]:
    """
    Check the exactly-one-shape invariant over a whole condition tree.

    Accepts parsed models or raw mappings. An empty list means the tree is
    well formed. Never raises.
    """
    if isinstance(condition, BaseModel):
        condition = condition.model_dump(by_alias=True, exclude_unset=True)
    issues: list[InvalidShape] = []
    _collect_shape_issues(condition, path, issues)
    return issues


def _collect_shape_issues(raw: Any, path: str, issues: list[InvalidShape]) -> None:
    if not isinstance(raw, Mapping):
        issues.append(InvalidShape(f"{path}: Invalid condition structure", path=path))
        return

    present = [key for key in SHAPE_KEYS if key in raw]
    if not present:
        issues.append(InvalidShape(
            f"{path}: Invalid condition - must have 'all', 'any', 'not', 'fact', or 'condition'",
            path=path,
        ))
        return
    if len(present) > 1:
        issues.append(InvalidShape(
            f"{path}: Condition mixes several shapes ({', '.join(present)})",
            path=path,
        ))
        return

    kind = present[0]
    if kind in ("all", "any"):
        children = raw[kind]
        if not isinstance(children, list):
            issues.append(InvalidShape(f"{path}.{kind}: Must be an array", path=f"{path}.{kind}"))
        elif not children:
            issues.append(InvalidShape(
                f"{path}.{kind}: Must contain at least one condition",
                path=f"{path}.{kind}",
            ))
        else:
            for idx, child in enumerate(children):
                _collect_shape_issues(child, f"{path}.{kind}[{idx}]", issues)
    elif kind == "not":
        _collect_shape_issues(raw["not"], f"{path}.not", issues)
    elif kind == "fact":
        if not isinstance(raw.get("fact"), str) or not raw["fact"]:
            issues.append(InvalidShape(f"{path}: Missing fact name", path=path))
        operator = raw.get("operator")
        if not isinstance(operator, str) or not operator:
            issues.append(InvalidShape(f"{path}: Missing operator for fact condition", path=path))
        elif "value" not in raw and operator not in EXISTENCE_OPERATORS:
            issues.append(InvalidShape(f"{path}: Missing value for fact condition", path=path))
    elif not isinstance(raw["condition"], str) or not raw["condition"]:
        issues.append(InvalidShape(f"{path}: Reference condition must name a condition", path=path))


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Position(BaseModel):
    x: float
    y: float


class RuleLayout(BaseModel):
    """Saved node positions, keyed by graph node id."""
    nodes: dict[str, Position] = Field(default_factory=dict)


class EventParams(_WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    destination: str = ""
    # high, medium or low; checked by validate_rule rather than here
    priority: str | None = None
    reason: str | None = None


class RuleEvent(_WireModel):
    """What a rule produces when it matches."""
    type: str = "route_determined"
    params: EventParams = Field(default_factory=EventParams)


class Rule(_WireModel):
    """Call-routing rule definition."""
    name: str = Field(..., description="Unique rule name within a rule set")
    description: str | None = None
    priority: int = Field(..., description="1..999, higher is evaluated first")
    default_destination: str = Field(..., description="Destination when this rule does not match")
    conditions: Condition
    event: RuleEvent = Field(default_factory=RuleEvent)
    layout: RuleLayout | None = None

    @property
    def destination(self) -> str:
        return self.event.params.destination


class EngineOptions(_WireModel):
    allow_undefined_facts: bool = True
    allow_undefined_conditions: bool = False
    replace_facts_in_event_params: bool = False


class DynamicFactSpec(_WireModel):
    """Declaration of a dynamic fact a rule set relies on."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    name: str
    description: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)


class RuleSet(_WireModel):
    """A complete rule-set document."""
    options: EngineOptions = Field(default_factory=EngineOptions, alias="engineOptions")
    rules: list[Rule] = Field(default_factory=list)
    dynamic_facts: list[DynamicFactSpec] = Field(default_factory=list)
    custom_operators: list[dict[str, Any]] = Field(default_factory=list)

    def rule_names(self) -> list[str]:
        return [rule.name for rule in self.rules]
