"""Tests for the condition model."""
import pytest

from routeflow.errors import InvalidShape
from routeflow.rules.models import (
    AllCondition,
    AnyCondition,
    FactCondition,
    NotCondition,
    ReferenceCondition,
    Rule,
    children_of,
    dump_condition,
    parse_condition,
    validate_condition_shape,
)


def test_parse_each_shape():
    """Each wire shape maps to its own model."""
    assert isinstance(parse_condition({"all": [{"fact": "a", "operator": "exists"}]}), AllCondition)
    assert isinstance(parse_condition({"any": [{"fact": "a", "operator": "exists"}]}), AnyCondition)
    assert isinstance(parse_condition({"not": {"fact": "a", "operator": "exists"}}), NotCondition)
    assert isinstance(parse_condition({"fact": "a", "operator": "equal", "value": 1}), FactCondition)
    assert isinstance(parse_condition({"condition": "isVip"}), ReferenceCondition)


def test_parse_nested_tree():
    raw = {
        "all": [
            {"fact": "inputValue", "params": {"key": "intent"}, "operator": "equal", "value": "billing"},
            {"not": {"any": [{"fact": "isBusinessHours", "operator": "equal", "value": True}]}},
        ]
    }
    condition = parse_condition(raw)

    assert isinstance(condition, AllCondition)
    first, second = condition.all
    assert first.params == {"key": "intent"}
    assert isinstance(second, NotCondition)
    assert isinstance(second.not_, AnyCondition)
    assert dump_condition(condition) == raw


def test_parse_rejects_mixed_shape():
    """A node carrying two shapes is rejected."""
    with pytest.raises(InvalidShape) as exc_info:
        parse_condition({"all": [], "fact": "x", "operator": "equal", "value": 1})
    assert exc_info.value.code == "INVALID_SHAPE"
    assert exc_info.value.path.startswith("conditions")


def test_parse_rejects_empty_node():
    with pytest.raises(InvalidShape):
        parse_condition({"operator": "equal", "value": 1})


def test_parse_reports_nested_path():
    with pytest.raises(InvalidShape) as exc_info:
        parse_condition({"all": [{"fact": "a", "operator": "exists"}, {"value": 3}]})
    assert "all" in exc_info.value.path


def test_children_of():
    leaf = FactCondition(fact="a", operator="exists")
    assert children_of(AllCondition(all=[leaf, leaf])) == [leaf, leaf]
    assert children_of(NotCondition(not_=leaf)) == [leaf]
    assert children_of(leaf) == []
    assert children_of(ReferenceCondition(condition="x")) == []


def test_shape_validation_accepts_well_formed_tree():
    condition = parse_condition({
        "any": [
            {"fact": "inputValue", "params": {"key": "intent"}, "operator": "equal", "value": "sales"},
            {"fact": "customerId", "operator": "exists"},
        ]
    })
    assert validate_condition_shape(condition) == []


def test_shape_validation_on_raw_data():
    """Problems anywhere in the tree are reported with their path."""
    issues = validate_condition_shape({
        "all": [
            {"fact": "intent", "operator": "equal"},
            {"any": []},
            {"fact": "x", "any": []},
            "not-a-condition",
        ]
    })
    messages = [issue.message for issue in issues]

    assert "conditions.all[0]: Missing value for fact condition" in messages
    assert "conditions.all[1].any: Must contain at least one condition" in messages
    assert any(m.startswith("conditions.all[2]: Condition mixes several shapes") for m in messages)
    assert "conditions.all[3]: Invalid condition structure" in messages
    assert all(isinstance(issue, InvalidShape) for issue in issues)


def test_shape_validation_existence_operator_needs_no_value():
    assert validate_condition_shape({"fact": "customerId", "operator": "doesNotExist"}) == []


def test_shape_validation_missing_shape():
    issues = validate_condition_shape({"operator": "equal", "value": 1})
    assert len(issues) == 1
    assert "must have 'all', 'any', 'not', 'fact', or 'condition'" in issues[0].message


def test_rule_uses_camel_case_on_the_wire():
    rule = Rule.model_validate({
        "name": "r",
        "priority": 10,
        "defaultDestination": "Default",
        "conditions": {"fact": "a", "operator": "exists"},
        "event": {"type": "route_determined", "params": {"destination": "Q", "priority": "high"}},
    })

    assert rule.default_destination == "Default"
    assert rule.destination == "Q"
    dumped = rule.model_dump(by_alias=True, exclude_none=True)
    assert dumped["defaultDestination"] == "Default"
    assert dumped["event"]["params"] == {"destination": "Q", "priority": "high"}
