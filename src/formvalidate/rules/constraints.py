"""Basic constraint rules.

Every rule here first runs the shared "basic" pre-check on the value, which
enforces the cardinality and special-value policy:
- allow_empty: zero-length values
- allow_multiple: more than one element
- allow_na: missing elements (None)
- allow_nan: NaN elements (float or Decimal)
- allow_inf: infinite elements (float or Decimal)

Each violated policy has its own default message. Passing `message` to a
rule factory replaces every message that rule can produce.

A value is a scalar or a list/tuple/set of elements; a scalar counts as a
single element.
"""

import math
import numbers
import operator
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from formvalidate.types import Rule, RuleOutcome


# =============================================================================
# Default Messages
# =============================================================================

MSG_EMPTY = "Must not be empty."
MSG_MULTIPLE = "Must not contain multiple values."
MSG_NA = "Must not contain missing values."
MSG_NAN = "Must not contain NaN values."
MSG_INF = "Must not contain infinite values."

MSG_NUMERIC = "A number is required."
MSG_INTEGER = "An integer is required."


# =============================================================================
# Element Helpers
# =============================================================================


def as_elements(value: Any) -> list[Any]:
    """Return the elements of a value; scalars become a one-element list."""
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _is_nan(element: Any) -> bool:
    if isinstance(element, Decimal):
        return element.is_nan()
    return isinstance(element, float) and math.isnan(element)


def _is_inf(element: Any) -> bool:
    if isinstance(element, Decimal):
        return element.is_infinite()
    return isinstance(element, float) and math.isinf(element)


def _is_excluded(element: Any) -> bool:
    """Missing and NaN elements are left out of comparisons."""
    return element is None or _is_nan(element)


def _is_number(element: Any) -> bool:
    return isinstance(element, (numbers.Real, Decimal)) and not isinstance(element, bool)


def _compare(op: Callable[[Any, Any], Any], element: Any, bound: Any) -> bool:
    """Apply `op`, treating booleans against non-booleans and unorderable
    types as a failed comparison."""
    if isinstance(element, bool) != isinstance(bound, bool):
        return False
    try:
        return bool(op(element, bound))
    except TypeError:
        return False


# =============================================================================
# Basic Pre-check
# =============================================================================


@dataclass(frozen=True)
class BasicPolicy:
    """Cardinality and special-value policy shared by constraint rules."""

    allow_multiple: bool = False
    allow_na: bool = False
    allow_nan: bool = False
    allow_inf: bool = False
    allow_empty: bool = False

    def violation(self, elements: list[Any]) -> str | None:
        """Return the default message for the first violated policy, or None."""
        if not elements and not self.allow_empty:
            return MSG_EMPTY
        if len(elements) > 1 and not self.allow_multiple:
            return MSG_MULTIPLE
        if not self.allow_na and any(e is None for e in elements):
            return MSG_NA
        if not self.allow_nan and any(_is_nan(e) for e in elements):
            return MSG_NAN
        if not self.allow_inf and any(_is_inf(e) for e in elements):
            return MSG_INF
        return None


class ConstraintRule(Rule):
    """A rule made of the basic pre-check followed by a specific check.

    `check` receives the value's elements and returns a default failure
    message, or None if the value passes.
    """

    def __init__(
        self,
        name: str,
        policy: BasicPolicy,
        check: Callable[[list[Any]], str | None] | None = None,
        message: str | None = None,
    ):
        self.name = name
        self.policy = policy
        self.check = check
        self.message = message

    def evaluate(self, value: Any) -> RuleOutcome:
        elements = as_elements(value)
        problem = self.policy.violation(elements)
        if problem is None and self.check is not None:
            problem = self.check(elements)
        if problem is None:
            return RuleOutcome.passed()
        return RuleOutcome.failed(self.message if self.message is not None else problem)

    def __repr__(self) -> str:
        return f"<{self.name} rule>"


def basic(
    allow_multiple: bool = False,
    allow_na: bool = False,
    allow_nan: bool = False,
    allow_inf: bool = False,
    allow_empty: bool = False,
    message: str | None = None,
) -> Rule:
    """Rule that only applies the cardinality and special-value policy.

    Useful as the first step of a custom rule built with compose_rules.
    """
    policy = BasicPolicy(
        allow_multiple=allow_multiple,
        allow_na=allow_na,
        allow_nan=allow_nan,
        allow_inf=allow_inf,
        allow_empty=allow_empty,
    )
    return ConstraintRule("basic", policy, message=message)


# =============================================================================
# Numeric Types
# =============================================================================


def numeric(
    message: str | None = None,
    allow_multiple: bool = False,
    allow_na: bool = False,
    allow_nan: bool = False,
    allow_inf: bool = False,
) -> Rule:
    """Rule that requires real numbers or Decimals (booleans excluded).

    By default only a single, finite, non-missing number passes.
    """
    policy = BasicPolicy(allow_multiple, allow_na, allow_nan, allow_inf)

    def check(elements: list[Any]) -> str | None:
        if not all(_is_number(e) for e in elements if e is not None):
            return MSG_NUMERIC
        return None

    return ConstraintRule("numeric", policy, check, message)


def integer(
    message: str | None = None,
    allow_multiple: bool = False,
    allow_na: bool = False,
    allow_nan: bool = False,
    allow_inf: bool = False,
) -> Rule:
    """Rule that requires integral numbers.

    Integral floats such as ``-1234.0`` count as integers. NaN and infinite
    elements are governed by `allow_nan` / `allow_inf` only.
    """
    policy = BasicPolicy(allow_multiple, allow_na, allow_nan, allow_inf)

    def is_integral(element: Any) -> bool:
        if not _is_number(element):
            return False
        if isinstance(element, numbers.Integral):
            return True
        if isinstance(element, Decimal):
            return not element.is_finite() or element == element.to_integral_value()
        as_float = float(element)
        return math.isnan(as_float) or math.isinf(as_float) or as_float.is_integer()

    def check(elements: list[Any]) -> str | None:
        if not all(is_integral(e) for e in elements if e is not None):
            return MSG_INTEGER
        return None

    return ConstraintRule("integer", policy, check, message)


# =============================================================================
# Ranges
# =============================================================================


def between(
    left: Any,
    right: Any,
    inclusive: tuple[bool, bool] | list[bool] = (True, True),
    allow_na: bool = False,
    allow_nan: bool = False,
    message: str | None = None,
) -> Rule:
    """Rule that requires every element to lie between `left` and `right`.

    Args:
        left: Lower bound
        right: Upper bound
        inclusive: Whether the left and right bounds are inclusive
        allow_na: Allow (and ignore) missing elements
        allow_nan: Allow (and ignore) NaN elements
        message: Error message; defaults to "Must be between {left} and {right}."

    Raises:
        ValueError: If `inclusive` is not two booleans or left > right
    """
    inclusive = tuple(inclusive)
    if len(inclusive) != 2 or not all(isinstance(flag, bool) for flag in inclusive):
        raise ValueError("`inclusive` must be a pair of booleans")
    if left > right:
        raise ValueError(f"`left` ({left}) must not be greater than `right` ({right})")

    default_message = f"Must be between {left} and {right}."
    left_ok = operator.ge if inclusive[0] else operator.gt
    right_ok = operator.le if inclusive[1] else operator.lt

    policy = BasicPolicy(
        allow_multiple=True,
        allow_na=allow_na,
        allow_nan=allow_nan,
        allow_inf=True,
    )

    def check(elements: list[Any]) -> str | None:
        for element in elements:
            if _is_excluded(element):
                continue
            if not (_compare(left_ok, element, left) and _compare(right_ok, element, right)):
                return default_message
        return None

    return ConstraintRule("between", policy, check, message)


# =============================================================================
# Set Membership
# =============================================================================


def values_text(values: Iterable[Any], limit: int | float | None = 3) -> str:
    """Render a short, comma-separated summary of `values`.

    Values beyond `limit` are replaced by "(and N more)". A limit of None or
    infinity shows every value.

    Example:
        values_text([1, 2, 3, 4, 5], limit=3) == "1, 2, 3 (and 2 more)"
    """
    items = list(values)
    if limit is not None and len(items) > limit:
        shown = int(limit)
        omitted = len(items) - shown
        return ", ".join(str(v) for v in items[:shown]) + f" (and {omitted} more)"
    return ", ".join(str(v) for v in items)


def in_set(
    values: Iterable[Any],
    message: str = "Must be in the set of {values_text}.",
    display_limit: int | float | None = 3,
) -> Rule:
    """Rule that requires every element to be one of `values`.

    Include None in `values` to accept missing elements.

    Args:
        values: The allowed values
        message: Error message; "{values_text}" is replaced by a summary of
            the allowed values
        display_limit: Maximum number of values shown in the summary

    Raises:
        ValueError: If `values` is empty or `display_limit` is negative
    """
    options = list(values)
    if not options:
        raise ValueError("The set of allowed values must not be empty")
    if display_limit is not None and display_limit < 0:
        raise ValueError("`display_limit` must not be negative")

    text = message.replace("{values_text}", values_text(options, display_limit))
    allows_nan = any(_is_nan(v) for v in options)

    def contains(element: Any) -> bool:
        if _is_nan(element):
            return allows_nan
        # True must not match 1, nor False match 0
        return any(
            isinstance(element, bool) == isinstance(option, bool) and element == option
            for option in options
        )

    def check(elements: list[Any]) -> str | None:
        if not all(contains(e) for e in elements):
            return text
        return None

    # Missing values are handled by membership, not the basic pre-check
    policy = BasicPolicy(
        allow_multiple=True,
        allow_na=True,
        allow_nan=True,
        allow_inf=True,
        allow_empty=True,
    )
    return ConstraintRule("in_set", policy, check)


# =============================================================================
# Comparisons
# =============================================================================


def _comparator(
    name: str,
    op: Callable[[Any, Any], bool],
    default_fmt: str,
) -> Callable[..., Rule]:
    def factory(
        rhs: Any,
        message: str | None = None,
        allow_multiple: bool = False,
        allow_na: bool = False,
        allow_nan: bool = False,
        allow_inf: bool = False,
    ) -> Rule:
        policy = BasicPolicy(allow_multiple, allow_na, allow_nan, allow_inf)
        failure = default_fmt.replace("{rhs}", str(rhs))
        if message is not None:
            message = message.replace("{rhs}", str(rhs))

        def check(elements: list[Any]) -> str | None:
            compared = [e for e in elements if not _is_excluded(e)]
            if not all(_compare(op, e, rhs) for e in compared):
                return failure
            return None

        return ConstraintRule(name, policy, check, message)

    factory.__name__ = name
    factory.__qualname__ = name
    factory.__doc__ = (
        f"Rule that requires every element to satisfy `element {op.__name__} rhs`.\n\n"
        f"Missing and NaN elements are excluded from the comparison once the\n"
        f"basic pre-check allows them. Elements that cannot be compared with\n"
        f"`rhs` (including booleans against numbers) fail. The default message\n"
        f"is {default_fmt!r};\n"
        f"\"{{rhs}}\" in `message` is replaced by the right-hand side."
    )
    return factory


gt = _comparator("gt", operator.gt, "Must be greater than {rhs}.")
gte = _comparator("gte", operator.ge, "Must be greater than or equal to {rhs}.")
lt = _comparator("lt", operator.lt, "Must be less than {rhs}.")
lte = _comparator("lte", operator.le, "Must be less than or equal to {rhs}.")
eq = _comparator("eq", operator.eq, "Must be equal to {rhs}.")
neq = _comparator("neq", operator.ne, "Must not be equal to {rhs}.")
