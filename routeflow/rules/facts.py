"""Fact resolution for leaf conditions."""
from datetime import datetime
from typing import Any, Callable, Mapping

import structlog

from .models import FactCondition

log = structlog.get_logger()

INPUT_VALUE_FACT = "inputValue"

BUSINESS_DAYS = range(0, 5)  # Monday..Friday
BUSINESS_HOURS = range(9, 17)


class _Undefined:
    """Marker for a fact that could not be resolved."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()

FactFunction = Callable[[dict[str, Any], Mapping[str, Any]], Any]


class FactRegistry:
    """
    Registry of dynamic facts.

    A dynamic fact is a small function called with the leaf's params and the
    full input map. The clock is injectable so time-based facts are testable.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None, builtins: bool = True):
        self._clock = clock or datetime.now
        self._facts: dict[str, FactFunction] = {}
        if builtins:
            self._register_builtins()

    def _register_builtins(self):
        self.register("isBusinessHours", self._is_business_hours)
        self.register("hasKey", lambda params, facts: params.get("key") in facts)
        self.register("keyCount", lambda params, facts: len(facts))
        self.register("currentTimestamp", self._current_timestamp)
        self.register("currentHour", lambda params, facts: self._clock().hour)

    def _is_business_hours(self, params: dict[str, Any], facts: Mapping[str, Any]) -> bool:
        now = self._clock()
        return now.weekday() in BUSINESS_DAYS and now.hour in BUSINESS_HOURS

    def _current_timestamp(self, params: dict[str, Any], facts: Mapping[str, Any]) -> int:
        return int(self._clock().timestamp() * 1000)

    def register(self, name: str, fn: FactFunction):
        """Register (or replace) a dynamic fact."""
        self._facts[name] = fn
        log.debug("fact.registered", fact=name)

    def unregister(self, name: str) -> bool:
        return self._facts.pop(name, None) is not None

    def __contains__(self, name: str) -> bool:
        return name in self._facts

    def names(self) -> list[str]:
        return sorted(self._facts)

    def resolve(self, condition: FactCondition, facts: Mapping[str, Any]) -> tuple[str, Any]:
        """
        Resolve the actual value for a leaf.

        Order: registered dynamic fact, then ``inputValue`` reading
        ``params.key``, then a direct lookup of the fact name.

        Returns:
            (display name for the trace, value or UNDEFINED)
        """
        params = condition.params or {}

        if condition.fact in self._facts:
            return condition.fact, self._facts[condition.fact](params, facts)

        key = params.get("key")
        if condition.fact == INPUT_VALUE_FACT and key:
            return f"{INPUT_VALUE_FACT}.{key}", facts.get(key, UNDEFINED)

        return condition.fact, facts.get(condition.fact, UNDEFINED)
