"""Shared fixtures for routeflow tests."""
from datetime import datetime

import pytest

from routeflow.rules.facts import FactRegistry
from routeflow.rules.models import (
    AllCondition,
    AnyCondition,
    EventParams,
    FactCondition,
    NotCondition,
    Rule,
    RuleEvent,
)

DOCUMENT = {
    "engineOptions": {"allowUndefinedFacts": True},
    "rules": [
        {
            "name": "salesRouting",
            "priority": 80,
            "defaultDestination": "General_Queue",
            "conditions": {
                "all": [
                    {"fact": "inputValue", "params": {"key": "intent"}, "operator": "equal", "value": "sales"},
                ]
            },
            "event": {"type": "route_determined", "params": {"destination": "Sales_Queue", "priority": "high"}},
        },
        {
            "name": "catchAll",
            "priority": 1,
            "defaultDestination": "General_Queue",
            "conditions": {"any": [{"fact": "keyCount", "operator": "greaterThanInclusive", "value": 0}]},
            "event": {"type": "route_determined", "params": {"destination": "General_Queue"}},
        },
    ],
    "dynamicFacts": [{"name": "keyCount", "description": "Number of input keys"}],
}


def input_test(key, operator, value=None):
    return FactCondition(fact="inputValue", params={"key": key}, operator=operator, value=value)


def make_rule(name, priority, conditions, destination="Queue", default_destination="Default"):
    return Rule(
        name=name,
        priority=priority,
        default_destination=default_destination,
        conditions=conditions,
        event=RuleEvent(params=EventParams(destination=destination, reason=f"{name} matched")),
    )


@pytest.fixture
def nested_rule():
    """all(intent == billing, any(language == es, not(customerType == vip)))"""
    return Rule(
        name="billingRouting",
        description="Billing calls",
        priority=60,
        default_destination="General_Queue",
        conditions=AllCondition(all=[
            input_test("intent", "equal", "billing"),
            AnyCondition(any=[
                input_test("language", "equal", "es"),
                NotCondition(not_=input_test("customerType", "equal", "vip")),
            ]),
        ]),
        event=RuleEvent(params=EventParams(destination="Billing_Queue", priority="medium", reason="Billing")),
    )


@pytest.fixture
def weekday_registry():
    """Registry whose clock reads Wednesday 2026-10-14 10:30."""
    return FactRegistry(clock=lambda: datetime(2026, 10, 14, 10, 30))


@pytest.fixture
def weekend_registry():
    """Registry whose clock reads Saturday 2026-10-17 10:30."""
    return FactRegistry(clock=lambda: datetime(2026, 10, 17, 10, 30))
