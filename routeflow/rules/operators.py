"""Operator semantics for leaf fact tests."""
import math
import re
from typing import Any

import structlog

from .facts import UNDEFINED
from .models import KNOWN_OPERATORS

log = structlog.get_logger()

MAX_PATTERN_LENGTH = 1000

# (a+)+, (a*)+, (a+)*
_NESTED_QUANTIFIER = re.compile(r"\([^)]*[+*]\)[+*]")
# (a|aa)* style alternation under repetition, only unsafe together with a repeated character
_REPEATED_ALTERNATION = re.compile(r"\([^)]*\|[^)]*\)[+*]")
_REPEATED_CHARACTER = re.compile(r"(.)\1")

_DECIMAL = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_RADIX_PREFIXES = ("0x", "0o", "0b")

_LESS_THAN = frozenset({"lessThan", "lt"})
_LESS_THAN_OR_EQUAL = frozenset({"lessThanOrEqual", "lessThanInclusive", "lte"})
_GREATER_THAN = frozenset({"greaterThan", "gt"})
_GREATER_THAN_OR_EQUAL = frozenset({"greaterThanOrEqual", "greaterThanInclusive", "gte"})


def strict_equal(actual: Any, expected: Any) -> bool:
    """Equality without cross-type coercion: 1 != "1", True != 1."""
    if actual is UNDEFINED or expected is UNDEFINED:
        return actual is expected
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    if isinstance(actual, (int, float)) and isinstance(expected, (int, float)):
        return actual == expected
    if type(actual) is not type(expected):
        return False
    return actual == expected


def to_number(value: Any) -> float:
    """
    Numeric coercion used by the comparison operators.

    Booleans and None coerce to 0/1, blank strings to 0, numeric strings to
    their value, single-element lists to their element; anything else is NaN,
    which makes every comparison false.
    """
    if value is UNDEFINED:
        return math.nan
    if value is None:
        return 0.0
    if isinstance(value, (bool, int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if _DECIMAL.fullmatch(text):
            return float(text)
        if text.lower().startswith(_RADIX_PREFIXES):
            try:
                return float(int(text, 0))
            except ValueError:
                return math.nan
        if text in ("Infinity", "+Infinity"):
            return math.inf
        if text == "-Infinity":
            return -math.inf
        return math.nan
    if isinstance(value, list):
        if not value:
            return 0.0
        if len(value) == 1:
            return to_number(value[0])
    return math.nan


def to_text(value: Any) -> str:
    """String form used when matching list items against a string."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def is_safe_pattern(pattern: str) -> bool:
    """Reject overly long patterns and known catastrophic-backtracking shapes."""
    if len(pattern) > MAX_PATTERN_LENGTH:
        return False
    if _NESTED_QUANTIFIER.search(pattern):
        return False
    if _REPEATED_ALTERNATION.search(pattern) and _REPEATED_CHARACTER.search(pattern):
        return False
    return True


def is_known_operator(operator: Any) -> bool:
    return isinstance(operator, str) and operator in KNOWN_OPERATORS


def evaluate_operator(actual: Any, operator: str, expected: Any) -> bool:
    """
    Apply an operator to a resolved fact value.

    Type mismatches and unknown operators evaluate to False rather than
    raising.
    """
    if operator == "equal":
        return strict_equal(actual, expected)
    elif operator == "notEqual":
        return not strict_equal(actual, expected)

    elif operator == "in":
        return isinstance(expected, list) and any(strict_equal(actual, item) for item in expected)
    elif operator == "notIn":
        return isinstance(expected, list) and not any(strict_equal(actual, item) for item in expected)

    elif operator == "contains":
        return isinstance(actual, str) and isinstance(expected, str) and expected.lower() in actual.lower()
    elif operator == "doesNotContain":
        return isinstance(actual, str) and isinstance(expected, str) and expected.lower() not in actual.lower()
    elif operator == "containsAny":
        if not isinstance(expected, list) or not isinstance(actual, str):
            return False
        return any(to_text(item).lower() in actual.lower() for item in expected)
    elif operator == "containsAll":
        if not isinstance(expected, list) or not isinstance(actual, str):
            return False
        return all(to_text(item).lower() in actual.lower() for item in expected)

    elif operator in _LESS_THAN:
        return to_number(actual) < to_number(expected)
    elif operator in _LESS_THAN_OR_EQUAL:
        return to_number(actual) <= to_number(expected)
    elif operator in _GREATER_THAN:
        return to_number(actual) > to_number(expected)
    elif operator in _GREATER_THAN_OR_EQUAL:
        return to_number(actual) >= to_number(expected)

    elif operator == "startsWith":
        return isinstance(actual, str) and isinstance(expected, str) and actual.startswith(expected)
    elif operator == "endsWith":
        return isinstance(actual, str) and isinstance(expected, str) and actual.endswith(expected)

    elif operator == "exists":
        return actual is not UNDEFINED and actual is not None
    elif operator == "doesNotExist":
        return actual is UNDEFINED or actual is None

    elif operator == "matchesPattern":
        if not isinstance(actual, str) or not isinstance(expected, str):
            return False
        if not is_safe_pattern(expected):
            log.warning("operator.unsafe_pattern", pattern=expected[:100])
            return False
        try:
            return re.search(expected, actual) is not None
        except re.error as e:
            log.warning("operator.invalid_pattern", error=str(e), pattern=expected[:100])
            return False

    log.warning("operator.unknown", operator=operator)
    return False
