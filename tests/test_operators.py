"""Tests for operator semantics."""
import math

import pytest

from routeflow.rules.facts import UNDEFINED
from routeflow.rules.operators import (
    evaluate_operator,
    is_known_operator,
    is_safe_pattern,
    strict_equal,
    to_number,
)


@pytest.mark.parametrize(
    "actual,operator,expected,result",
    [
        # equality is strict: no string/number or bool/number coercion
        ("billing", "equal", "billing", True),
        (5, "equal", 5.0, True),
        (5, "equal", "5", False),
        (True, "equal", 1, False),
        (None, "equal", None, True),
        (UNDEFINED, "equal", None, False),
        ("a", "notEqual", "b", True),
        ("5", "notEqual", 5, True),
        # membership
        ("es", "in", ["en", "es"], True),
        ("5", "in", [5], False),
        ("fr", "notIn", ["en", "es"], True),
        ("es", "in", "es", False),
        ("es", "notIn", "not-a-list", False),
        # substring, case-insensitive
        ("Billing Question", "contains", "billing", True),
        ("Billing Question", "doesNotContain", "sales", True),
        (["billing"], "contains", "billing", False),
        ("refund and billing", "containsAny", ["sales", "BILLING"], True),
        ("refund and billing", "containsAll", ["refund", "billing"], True),
        ("refund only", "containsAll", ["refund", "billing"], False),
        ("refund", "containsAny", "refund", False),
        # numeric comparisons coerce
        (10, "greaterThan", 5, True),
        ("10", "greaterThan", 5, True),
        ("abc", "greaterThan", 5, False),
        ("abc", "lessThanOrEqual", 5, False),
        (5, "greaterThanOrEqual", 5, True),
        (5, "greaterThanInclusive", 5, True),
        (4, "lessThan", 5, True),
        (5, "lessThanInclusive", 5, True),
        (5, "lte", 5, True),
        (6, "gt", 5, True),
        (None, "lessThan", 1, True),
        (UNDEFINED, "lessThan", 1, False),
        # prefixes
        ("+44123", "startsWith", "+44", True),
        ("report.pdf", "endsWith", ".pdf", True),
        (44123, "startsWith", "44", False),
        # existence
        ("x", "exists", None, True),
        (None, "exists", None, False),
        (UNDEFINED, "exists", None, False),
        (UNDEFINED, "doesNotExist", None, True),
        (0, "doesNotExist", None, False),
        # patterns
        ("ORD-12345", "matchesPattern", r"^ORD-\d+$", True),
        ("order 12", "matchesPattern", r"\d{3}", False),
        (123, "matchesPattern", r"\d+", False),
    ],
)
def test_operator_table(actual, operator, expected, result):
    assert evaluate_operator(actual, operator, expected) is result


def test_unknown_operator_is_false():
    assert evaluate_operator("x", "sortaEqual", "x") is False
    assert not is_known_operator("sortaEqual")
    assert is_known_operator("greaterThanInclusive")


def test_nested_quantifier_pattern_rejected():
    """(a+)+ would backtrack catastrophically, so it never matches."""
    assert not is_safe_pattern("(a+)+")
    assert evaluate_operator("aaaaaaaaaaaaaaaaaaaaaaaaaaaaa!", "matchesPattern", "(a+)+") is False


def test_repeated_alternation_pattern_rejected():
    assert not is_safe_pattern("(a|aa)*")
    assert is_safe_pattern("(cat|dog)s?")


def test_overlong_pattern_rejected():
    assert not is_safe_pattern("a" * 1001)
    assert evaluate_operator("a", "matchesPattern", "a" * 1001) is False


def test_invalid_pattern_is_false():
    assert evaluate_operator("abc", "matchesPattern", "([a-z") is False


def test_to_number():
    assert to_number("  42 ") == 42
    assert to_number("") == 0
    assert to_number(True) == 1
    assert to_number("0x10") == 16
    assert to_number([7]) == 7
    assert to_number("-Infinity") == -math.inf
    assert math.isnan(to_number("12abc"))
    assert math.isnan(to_number({"a": 1}))
    assert math.isnan(to_number([1, 2]))


def test_strict_equal_on_containers():
    assert strict_equal(["a"], ["a"])
    assert not strict_equal(["a"], ("a",))
    assert strict_equal(UNDEFINED, UNDEFINED)
