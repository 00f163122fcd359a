"""
Evaluation trace models.

A trace records every rule the engine visited and every leaf check made
while evaluating it, so operators can preview why an input routes where
it does.
"""
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _TraceModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConditionCheck(_TraceModel):
    """A single leaf check."""

    fact: str
    operator: str
    expected: Any = None
    actual: Any = None
    """Resolved fact value; None when the fact was not defined."""

    matched: bool = False
    error: str | None = None


class EvaluationStep(_TraceModel):
    """Outcome of evaluating one rule."""

    rule_name: str
    matched: bool = False
    checks: list[ConditionCheck] = Field(default_factory=list)
    error: str | None = None
    """Set when the rule raised and was treated as non-matching."""


class EvaluationResult(_TraceModel):
    """Routing decision plus the trace that produced it."""

    destination: str
    matched_rule_names: list[str] = Field(default_factory=list)
    trace: list[EvaluationStep] = Field(default_factory=list)
    execution_time_ms: float = 0.0

    @property
    def matched(self) -> bool:
        return bool(self.matched_rule_names)
