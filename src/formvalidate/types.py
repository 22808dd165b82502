"""Core types for the formvalidate engine.

This module defines the foundational types shared by every layer:
- RuleOutcome: the tagged result of running one rule (pass, fail, skip)
- Rule / FunctionRule: the polymorphic rule interface and its callable adapter
- FieldError: a failing field entry in a validation report
- FieldScope: protocol for the collaborators that supply values, resolve
  namespaces and receive reports
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol


class FormValidateError(Exception):
    """Base class for errors raised by formvalidate."""
    pass


class RuleContractError(FormValidateError):
    """A rule returned something other than None, a string, or a RuleOutcome.

    This signals an authoring bug, not a validation failure, and is never
    recovered by the engine.
    """
    pass


class FormDefinitionError(FormValidateError):
    """A declarative form definition is malformed."""
    pass


class OutcomeKind(Enum):
    """The three possible results of a rule."""

    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"


@dataclass(frozen=True)
class RuleOutcome:
    """Result of evaluating a single rule against a value.

    Attributes:
        kind: PASS, FAIL or SKIP
        message: Error message (FAIL only)
        is_html: True if the message is markup rather than plain text
    """

    kind: OutcomeKind
    message: str | None = None
    is_html: bool = False

    @classmethod
    def passed(cls) -> "RuleOutcome":
        return _PASSED

    @classmethod
    def failed(cls, message: str, is_html: bool = False) -> "RuleOutcome":
        if not isinstance(message, str):
            raise RuleContractError(
                f"Failure message must be a string, got {type(message).__name__}"
            )
        return cls(kind=OutcomeKind.FAIL, message=message, is_html=is_html)

    @classmethod
    def skip(cls) -> "RuleOutcome":
        """Treat the field as valid and stop checking it."""
        return _SKIPPED

    @property
    def is_pass(self) -> bool:
        return self.kind is OutcomeKind.PASS

    @property
    def is_fail(self) -> bool:
        return self.kind is OutcomeKind.FAIL

    @property
    def is_skip(self) -> bool:
        return self.kind is OutcomeKind.SKIP

    def to_field_error(self) -> "FieldError | None":
        """Convert to a report entry. Only failures produce an error."""
        if self.kind is OutcomeKind.FAIL:
            return FieldError(message=self.message or "", is_html=self.is_html)
        return None


_PASSED = RuleOutcome(kind=OutcomeKind.PASS)
_SKIPPED = RuleOutcome(kind=OutcomeKind.SKIP)


@dataclass(frozen=True)
class FieldError:
    """An invalid field entry in a validation report.

    Attributes:
        message: Human-readable message to show near the input
        is_html: True if the message should be rendered as markup
        type: Feedback type; only "error" is produced by the engine
    """

    message: str
    is_html: bool = False
    type: str = "error"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "message": self.message,
            "is_html": self.is_html,
        }


# Fully-qualified field id -> None (valid) or FieldError (invalid)
ValidationReport = dict[str, FieldError | None]

ReportSink = Callable[[Mapping[str, FieldError | None]], None]
ChangeCallback = Callable[[frozenset[str]], None]


def normalize_outcome(result: Any, rule_name: str = "rule") -> RuleOutcome:
    """Coerce a rule's raw return value into a RuleOutcome.

    None passes, a string fails (as markup if it has ``__html__``), and a
    RuleOutcome is returned unchanged. Anything else is a contract violation.
    """
    if result is None:
        return RuleOutcome.passed()
    if isinstance(result, RuleOutcome):
        return result
    if isinstance(result, str):
        return RuleOutcome.failed(str(result), is_html=hasattr(result, "__html__"))
    raise RuleContractError(
        f"Result of {rule_name} was not None, a single string, or a RuleOutcome "
        f"(got {type(result).__name__})"
    )


class Rule:
    """Base class for validation rules.

    Subclasses override `evaluate`. Rules must be fast and free of side
    effects; the engine may call them on every value change.
    """

    name: str = "rule"

    def evaluate(self, value: Any) -> RuleOutcome:
        """Evaluate the rule. Override in subclasses."""
        raise NotImplementedError("Subclasses must implement evaluate()")

    def __call__(self, value: Any) -> RuleOutcome:
        return self.evaluate(value)


class FunctionRule(Rule):
    """Adapts a plain callable to the Rule interface.

    The callable receives the value first, followed by any extra positional
    and keyword arguments captured here.

    Example:
        def positive(value, label):
            if value <= 0:
                return f"{label} must be positive"

        rule = FunctionRule(positive, "Count")
    """

    def __init__(self, fn: Callable[..., Any], *args: Any, **kwargs: Any):
        if not callable(fn):
            raise TypeError(
                f"Rule must be callable, got {type(fn).__name__}"
            )
        self.fn = fn
        self.args = args
        self.kwargs = kwargs
        self.name = getattr(fn, "__name__", type(fn).__name__)

    def evaluate(self, value: Any) -> RuleOutcome:
        result = self.fn(value, *self.args, **self.kwargs)
        return normalize_outcome(result, rule_name=f"rule '{self.name}'")

    def __repr__(self) -> str:
        return f"FunctionRule({self.name})"


def as_rule(rule: Any) -> Rule:
    """Return `rule` as a Rule, wrapping callables in FunctionRule.

    Raises:
        TypeError: If `rule` is neither a Rule nor callable
    """
    if isinstance(rule, Rule):
        return rule
    if callable(rule):
        return FunctionRule(rule)
    raise TypeError(
        f"Expected a Rule or a callable, got {type(rule).__name__}"
    )


class FieldScope(Protocol):
    """Protocol for the collaborators the engine depends on.

    A scope resolves local field ids to fully-qualified ids, supplies current
    field values, delivers change notifications and accepts pushed reports.
    FormSession is the in-memory implementation shipped with the package.
    """

    def ns(self, field_id: str) -> str:
        """Return the fully-qualified id for a local field id."""
        ...

    def get(self, field_id: str) -> Any:
        """Return the current value of a local field id."""
        ...

    def subscribe(self, callback: ChangeCallback, priority: int = 0) -> "Subscription":
        """Call `callback` whenever any field value changes."""
        ...

    def send_report(self, report: Mapping[str, FieldError | None]) -> None:
        """Push a report to the display layer."""
        ...


class Subscription(Protocol):
    """Handle returned by FieldScope.subscribe."""

    def cancel(self) -> None:
        ...
