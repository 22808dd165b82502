"""Rule composition and presence rules.

- compose_rules: run several rules in order, stopping at the first non-pass
- required: fail when a value is not provided
- optional: skip the field's remaining rules when a value is not provided
"""

from collections.abc import Callable
from typing import Any

from formvalidate.presence import is_provided
from formvalidate.types import Rule, RuleOutcome, as_rule, normalize_outcome


class CompositeRule(Rule):
    """Sequential composition of rules with short-circuiting."""

    name = "compose_rules"

    def __init__(self, rules: list[Rule]):
        self.rules = rules

    def evaluate(self, value: Any) -> RuleOutcome:
        for rule in self.rules:
            outcome = rule(value)
            if not isinstance(outcome, RuleOutcome):
                outcome = normalize_outcome(outcome, rule_name=f"rule '{rule.name}'")
            if not outcome.is_pass:
                return outcome
        return RuleOutcome.passed()

    def __repr__(self) -> str:
        return f"CompositeRule({len(self.rules)} rules)"


def compose_rules(*rules: Rule | Callable[[Any], Any]) -> Rule:
    """Combine rules into one rule that runs them in order.

    The first failing rule's outcome is returned and no later rule runs.
    A skip outcome is returned as-is, so the validator also skips any other
    rules registered for the same field. An empty composition passes.

    Example:
        positive_int = compose_rules(
            integer(),
            gt(0, message="Must be positive."),
        )

    Raises:
        TypeError: If any argument is neither a Rule nor callable
    """
    converted = []
    for position, rule in enumerate(rules, 1):
        try:
            converted.append(as_rule(rule))
        except TypeError:
            raise TypeError(
                f"compose_rules argument {position} must be a Rule or callable, "
                f"got {type(rule).__name__}"
            ) from None
    return CompositeRule(converted)


class _PresenceRule(Rule):
    def __init__(self, name: str, fn: Callable[[Any], RuleOutcome]):
        self.name = name
        self._fn = fn

    def evaluate(self, value: Any) -> RuleOutcome:
        return self._fn(value)

    def __repr__(self) -> str:
        return f"<{self.name} rule>"


def required(
    message: str = "Required",
    test: Callable[[Any], bool] = is_provided,
) -> Rule:
    """Rule that fails unless `test(value)` is true.

    By default "present" means `is_provided`, so None, empty strings and
    empty collections fail while ``False`` passes.

    Args:
        message: Error message when the value is missing
        test: Predicate returning True for a present value

    Raises:
        TypeError: If `test` is not callable
    """
    if not callable(test):
        raise TypeError(f"required() test must be callable, got {type(test).__name__}")

    failure = RuleOutcome.failed(message)

    def check(value: Any) -> RuleOutcome:
        if not test(value):
            return failure
        return RuleOutcome.passed()

    return _PresenceRule("required", check)


def optional(test: Callable[[Any], bool] = is_provided) -> Rule:
    """Rule that skips the rest of a field's rules when no value is given.

    Register it first for a field to make the remaining rules apply only
    once the user has entered something. Never fails by itself.

    Raises:
        TypeError: If `test` is not callable
    """
    if not callable(test):
        raise TypeError(f"optional() test must be callable, got {type(test).__name__}")

    def check(value: Any) -> RuleOutcome:
        if not test(value):
            return RuleOutcome.skip()
        return RuleOutcome.passed()

    return _PresenceRule("optional", check)
