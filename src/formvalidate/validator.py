"""The InputValidator engine.

An InputValidator owns an ordered table of per-field rules, an optional
condition and any number of child validators. Evaluating it runs every
rule chain against the current field values and merges the results of the
children into one report.

Usage:
    session = FormSession()
    iv = InputValidator(session)
    iv.add_rule("name", required())
    iv.add_rule("email", optional())
    iv.add_rule("email", email())

    if not iv.is_valid():
        iv.enable()  # start pushing feedback to the display sinks

Performance note: every evaluation re-runs every rule. Rules are expected
to be cheap and free of side effects.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from formvalidate.config import ValidationConfig
from formvalidate.report import cleared, is_report_valid, merge_results
from formvalidate.types import (
    FieldError,
    FieldScope,
    FunctionRule,
    Rule,
    RuleContractError,
    RuleOutcome,
    Subscription,
    ValidationReport,
    normalize_outcome,
)

logger = logging.getLogger(__name__)

GENERIC_RULE_ERROR = "An unexpected error occurred while validating this field."

_UNSET: Any = object()


def _always_pass(value: Any, *args: Any, **kwargs: Any) -> None:
    return None


@dataclass
class RuleEntry:
    """A rule registered for one field.

    Attributes:
        field_id: Local (unqualified) field id
        rule: The rule to run against the field's value
        scope: Scope that resolves the id and supplies the value
    """

    field_id: str
    rule: Rule
    scope: FieldScope

    @property
    def full_id(self) -> str:
        return self.scope.ns(self.field_id)


class InputValidator:
    """Validation engine for one form or form module.

    Rules for the same field run in the order they were added; the first
    failure is reported and later rules for that field do not run. Fields
    are reported in the order their first rule was added.

    Child validators (typically one per form module) are added with
    add_validator. Only the root validator pushes reports to the display
    layer; enable()/disable() on a child have no effect.
    """

    def __init__(
        self,
        scope: FieldScope,
        priority: int | None = None,
        condition: Callable[[], Any] | None = None,
        config: ValidationConfig | None = None,
    ):
        """Create a validator.

        Args:
            scope: Supplies field values and receives reports. Rules added
                without an explicit scope resolve their ids against it.
            priority: Change-notification priority while enabled. Defaults
                to the configured priority (1000).
            condition: Optional zero-argument predicate; when it returns a
                falsy value every field of this validator is reported valid.
            config: Engine configuration (defaults to ValidationConfig.from_env())

        Raises:
            ValueError: If no scope is given
        """
        if scope is None:
            raise ValueError(
                "InputValidator requires a scope that supplies field values "
                "(for example a FormSession)"
            )
        self._config = config or ValidationConfig.from_env()
        self._scope = scope
        self._priority = self._config.priority if priority is None else priority
        self._entries: list[RuleEntry] = []
        self._validators: list[InputValidator] = []
        self._condition: Callable[[], Any] | None = None
        self._parent: InputValidator | None = None
        self._enabled = False
        self._subscription: Subscription | None = None

        if condition is not None:
            self.condition(condition)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def scope(self) -> FieldScope:
        return self._scope

    @property
    def priority(self) -> int:
        return self._priority

    @property
    def parent(self) -> "InputValidator | None":
        return self._parent

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def children(self) -> list["InputValidator"]:
        return list(self._validators)

    @property
    def entries(self) -> list[RuleEntry]:
        return list(self._entries)

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def add_rule(
        self,
        field_id: str,
        rule: Rule | Callable[..., Any] | None,
        *args: Any,
        scope: FieldScope | None = None,
        **kwargs: Any,
    ) -> "InputValidator":
        """Add a validation rule for a single field.

        A field may have several rules; they run in the order added and the
        first failure wins.

        Args:
            field_id: The field's local id (not namespace-qualified)
            rule: A Rule, a callable taking the value first, or None (always
                passes). Callables return None to pass, a message string to
                fail, or a RuleOutcome.
            *args: Extra positional arguments passed to a callable rule
            scope: Scope the field belongs to; defaults to the validator's
            **kwargs: Extra keyword arguments passed to a callable rule

        Raises:
            ValueError: If `field_id` is empty
            TypeError: If `rule` is not callable, or extra arguments are
                given with a Rule instance
        """
        if not isinstance(field_id, str) or not field_id:
            raise ValueError(f"field_id must be a non-empty string, got {field_id!r}")

        if rule is None:
            applied: Rule = FunctionRule(_always_pass)
        elif isinstance(rule, Rule):
            if args or kwargs:
                raise TypeError(
                    "Extra arguments can only be bound to plain callables, "
                    f"not to {type(rule).__name__}"
                )
            applied = rule
        elif callable(rule):
            applied = FunctionRule(rule, *args, **kwargs)
        else:
            raise TypeError(
                f"Rule for '{field_id}' must be a Rule or callable, "
                f"got {type(rule).__name__}"
            )

        self._entries.append(RuleEntry(field_id, applied, scope or self._scope))
        self._invalidate()
        return self

    def add_validator(self, validator: "InputValidator") -> "InputValidator":
        """Add a child validator.

        The child's results are merged into this validator's results, and
        its own enable()/disable() stop having any effect: feedback is
        driven by the root validator only.

        Raises:
            TypeError: If `validator` is not an InputValidator
            ValueError: If it is this validator, already has a parent, or
                is an ancestor of this validator
        """
        if not isinstance(validator, InputValidator):
            raise TypeError(
                f"add_validator expects an InputValidator, got {type(validator).__name__}"
            )
        if validator is self:
            raise ValueError("A validator cannot be added to itself")
        if validator._parent is not None:
            raise ValueError("Validator has already been added to another validator")

        ancestor = self._parent
        while ancestor is not None:
            if ancestor is validator:
                raise ValueError("Adding this validator would create a cycle")
            ancestor = ancestor._parent

        validator.disable()
        validator._parent = self
        self._validators.append(validator)
        self._invalidate()
        return self

    def condition(self, predicate: Callable[[], Any] | None = _UNSET) -> Any:
        """Get or set the validator's condition.

        Called without arguments, returns the current predicate (or None).
        Called with a zero-argument callable, sets it: while it returns a
        falsy value, this validator and its children report every field as
        valid. Called with None, removes the condition.

        Raises:
            TypeError: If `predicate` is neither callable nor None
        """
        if predicate is _UNSET:
            return self._condition
        if predicate is not None and not callable(predicate):
            raise TypeError(
                f"condition must be callable or None, got {type(predicate).__name__}"
            )
        self._condition = predicate
        self._invalidate()
        return self

    # -------------------------------------------------------------------------
    # Display
    # -------------------------------------------------------------------------

    def enable(self) -> "InputValidator":
        """Start pushing validation feedback to the scope's display sinks.

        Pushes one report immediately and then one after every value change.
        Safe to call on an already-enabled validator.
        """
        if self._parent is not None:
            logger.warning(
                "enable() has no effect on a child validator; enable the root validator"
            )
            return self

        if not self._enabled:
            self._subscription = self._scope.subscribe(self._on_change, self._priority)
            self._enabled = True
            self._push()
        return self

    def disable(self) -> "InputValidator":
        """Stop pushing feedback and clear any feedback already shown.

        The last report pushed marks every field as valid. enable() can be
        called again later.
        """
        if self._parent is not None:
            logger.warning(
                "disable() has no effect on a child validator; disable the root validator"
            )
            return self

        if self._enabled:
            if self._subscription is not None:
                self._subscription.cancel()
            self._subscription = None
            self._enabled = False
            self._scope.send_report(cleared(self.fields()))
        return self

    def _on_change(self, changed: frozenset[str]) -> None:
        logger.debug("Re-validating after change to %s", ", ".join(sorted(changed)))
        self._push()

    def _push(self) -> None:
        self._scope.send_report(self.evaluate())

    def _invalidate(self) -> None:
        """Re-push the root's report if the tree is currently enabled."""
        root = self
        while root._parent is not None:
            root = root._parent
        if root._enabled:
            root._push()

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def fields(self, include_child_validators: bool = True) -> list[str]:
        """Fully-qualified ids of every field this validator (and, by
        default, its descendants) has rules for, children first, without
        duplicates."""
        seen: dict[str, None] = {}
        if include_child_validators:
            for child in self._validators:
                for full_id in child.fields():
                    seen.setdefault(full_id)
        for entry in self._entries:
            seen.setdefault(entry.full_id)
        return list(seen)

    def is_valid(self, include_child_validators: bool = True) -> bool:
        """True if every rule passes.

        Args:
            include_child_validators: If False, only the rules added directly
                to this validator are considered
        """
        return is_report_valid(self.evaluate(include_child_validators))

    def evaluate(self, include_child_validators: bool = True) -> ValidationReport:
        """Run all rules and return the merged report.

        Args:
            include_child_validators: If False, child validators are not
                evaluated and their fields are left out of the report

        Returns:
            Mapping of fully-qualified field id to None (valid) or a
            FieldError. Every field known to this validator (and its
            descendants, when included) is present.

        Raises:
            RuleContractError: If a rule returns a malformed result
        """
        if self._condition is not None and not self._condition():
            return cleared(self.fields(include_child_validators))

        dependency_report: ValidationReport = {}
        if include_child_validators:
            for child in self._validators:
                dependency_report = merge_results(dependency_report, child.evaluate())

        return merge_results(self._evaluate_own(), dependency_report)

    validate = evaluate

    def _evaluate_own(self) -> ValidationReport:
        groups: dict[str, list[RuleEntry]] = {}
        for entry in self._entries:
            groups.setdefault(entry.full_id, []).append(entry)

        results: ValidationReport = {}
        for full_id, entries in groups.items():
            results[full_id] = self._evaluate_field(full_id, entries)
        return results

    def _evaluate_field(self, full_id: str, entries: list[RuleEntry]) -> FieldError | None:
        for entry in entries:
            outcome = self._run_rule(full_id, entry)
            if outcome.is_fail:
                return outcome.to_field_error()
            if outcome.is_skip:
                return None
        return None

    def _run_rule(self, full_id: str, entry: RuleEntry) -> RuleOutcome:
        value = entry.scope.get(entry.field_id)
        try:
            outcome = entry.rule(value)
        except RuleContractError:
            raise
        except Exception as e:
            logger.warning(
                "Rule %r for field '%s' raised %s: %s",
                entry.rule,
                full_id,
                type(e).__name__,
                e,
            )
            return RuleOutcome.failed(self._rule_error_message(e))

        if not isinstance(outcome, RuleOutcome):
            outcome = normalize_outcome(outcome, rule_name=f"rule for '{full_id}'")
        return outcome

    def _rule_error_message(self, error: Exception) -> str:
        if self._config.developer_mode:
            return f"{GENERIC_RULE_ERROR} ({type(error).__name__}: {error})"
        return GENERIC_RULE_ERROR

    def __repr__(self) -> str:
        state = "enabled" if self._enabled else "disabled"
        return (
            f"<InputValidator rules={len(self._entries)} "
            f"children={len(self._validators)} {state}>"
        )
