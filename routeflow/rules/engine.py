"""Rules engine for call routing decisions."""
import time
from typing import Any, Mapping

import structlog

from .facts import UNDEFINED, FactRegistry
from .models import (
    AllCondition,
    AnyCondition,
    Condition,
    FactCondition,
    NotCondition,
    ReferenceCondition,
    Rule,
    RuleSet,
)
from .operators import evaluate_operator
from .trace import ConditionCheck, EvaluationResult, EvaluationStep

log = structlog.get_logger()

UNKNOWN_DESTINATION = "Unknown"


class RulesEngine:
    """Evaluates a rule set against an input fact map."""

    def __init__(self, rule_set: RuleSet | None = None, facts: FactRegistry | None = None):
        """
        Initialize rules engine.

        Args:
            rule_set: Rules and engine options (defaults to an empty set)
            facts: Dynamic fact registry (defaults to the built-in facts)
        """
        self.rule_set = rule_set or RuleSet()
        self.rules: list[Rule] = list(self.rule_set.rules)
        self.options = self.rule_set.options
        self.facts = facts or FactRegistry()

        for spec in self.rule_set.dynamic_facts:
            if spec.name not in self.facts:
                log.warning("fact.not_registered", fact=spec.name)
        if self.rule_set.custom_operators:
            log.info("rules.custom_operators_ignored", count=len(self.rule_set.custom_operators))

    def add_rule(self, rule: Rule):
        """Add a rule to the engine."""
        self.rules.append(rule)
        log.info("rule.added", rule_name=rule.name, priority=rule.priority)

    def remove_rule(self, name: str) -> bool:
        """
        Remove a rule by name.

        Returns:
            True if rule was removed, False if not found
        """
        initial_count = len(self.rules)
        self.rules = [r for r in self.rules if r.name != name]
        removed = len(self.rules) < initial_count
        if removed:
            log.info("rule.removed", rule_name=name)
        return removed

    def get_rule(self, name: str) -> Rule | None:
        for rule in self.rules:
            if rule.name == name:
                return rule
        return None

    def sorted_rules(self) -> list[Rule]:
        """Rules by priority, highest first; ties keep their original order."""
        return sorted(self.rules, key=lambda r: r.priority, reverse=True)

    def evaluate(self, facts: Mapping[str, Any]) -> EvaluationResult:
        """
        Evaluate rules against an input fact map.

        The first matching rule (in priority order) decides the destination
        and stops evaluation. When nothing matches, the default destination of
        the lowest-priority rule is used as the rule-set fallback.

        Args:
            facts: Input values keyed by name

        Returns:
            EvaluationResult with destination, matched rule names and trace
        """
        start = time.perf_counter()
        ordered = self.sorted_rules()
        trace: list[EvaluationStep] = []

        for rule in ordered:
            step = self.evaluate_rule(rule, facts)
            trace.append(step)

            if step.matched:
                destination = rule.event.params.destination or rule.default_destination or UNKNOWN_DESTINATION
                result = EvaluationResult(
                    destination=destination,
                    matched_rule_names=[rule.name],
                    trace=trace,
                    execution_time_ms=_elapsed_ms(start),
                )
                log.info(
                    "rules.evaluated",
                    destination=destination,
                    matched_rule=rule.name,
                    rules_evaluated=len(trace),
                    duration_ms=result.execution_time_ms,
                )
                return result

        # Fallback is borrowed from whichever rule sorts last
        fallback = ordered[-1].default_destination if ordered else ""
        destination = fallback or UNKNOWN_DESTINATION
        result = EvaluationResult(
            destination=destination,
            matched_rule_names=[],
            trace=trace,
            execution_time_ms=_elapsed_ms(start),
        )
        log.info(
            "rules.fallback",
            destination=destination,
            rules_evaluated=len(trace),
            duration_ms=result.execution_time_ms,
        )
        return result

    def evaluate_rule(self, rule: Rule, facts: Mapping[str, Any]) -> EvaluationStep:
        """
        Evaluate a single rule.

        Any exception raised while evaluating the rule is logged and recorded
        on the step; the rule is then treated as not matching.
        """
        step = EvaluationStep(rule_name=rule.name)
        try:
            step.matched = self._evaluate_condition(rule.conditions, facts, step.checks)
        except Exception as e:
            log.error("rule.evaluation_failed", rule_name=rule.name, error=str(e), exc_info=True)
            step.matched = False
            step.error = f"{type(e).__name__}: {e}"

        log.debug("rule.evaluated", rule_name=rule.name, matched=step.matched, checks=len(step.checks))
        return step

    def _evaluate_condition(
        self,
        condition: Condition,
        facts: Mapping[str, Any],
        checks: list[ConditionCheck],
    ) -> bool:
        """Depth-first, left-to-right; every child is evaluated so the trace is complete."""
        if isinstance(condition, AllCondition):
            results = [self._evaluate_condition(c, facts, checks) for c in condition.all]
            return all(results)

        if isinstance(condition, AnyCondition):
            results = [self._evaluate_condition(c, facts, checks) for c in condition.any]
            return any(results)

        if isinstance(condition, NotCondition):
            return not self._evaluate_condition(condition.not_, facts, checks)

        if isinstance(condition, ReferenceCondition):
            log.warning("condition.reference_unsupported", condition=condition.condition)
            checks.append(ConditionCheck(
                fact=f"condition:{condition.condition}",
                operator="reference",
                expected=condition.condition,
                matched=False,
                error="Reference conditions are not supported",
            ))
            return False

        if isinstance(condition, FactCondition):
            return self._evaluate_fact(condition, facts, checks)

        log.warning("condition.unrecognized", condition_type=type(condition).__name__)
        return False

    def _evaluate_fact(
        self,
        condition: FactCondition,
        facts: Mapping[str, Any],
        checks: list[ConditionCheck],
    ) -> bool:
        name, actual = self.facts.resolve(condition, facts)
        check = ConditionCheck(
            fact=name,
            operator=condition.operator,
            expected=condition.value,
            actual=None if actual is UNDEFINED else actual,
        )

        if actual is UNDEFINED and not self.options.allow_undefined_facts:
            check.error = f"Undefined fact: {name}"
            log.debug("fact.undefined", fact=name)
        else:
            check.matched = evaluate_operator(actual, condition.operator, condition.value)

        checks.append(check)
        return check.matched


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 3)


def evaluate(rule_set: RuleSet, facts: Mapping[str, Any], registry: FactRegistry | None = None) -> EvaluationResult:
    """Evaluate ``facts`` against ``rule_set`` with a fresh engine."""
    return RulesEngine(rule_set, registry).evaluate(facts)
