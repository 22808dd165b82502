"""Text format rules: regex, email and url.

These share the basic pre-check from `constraints` (cardinality and
missing values) and then test each element's string form against a
pattern.
"""

import re
from typing import Any

from formvalidate.rules.constraints import BasicPolicy, ConstraintRule
from formvalidate.types import Rule


# =============================================================================
# Format Patterns
# =============================================================================

# Local part allows the RFC 5322 "atext" characters; the TLD needs two or
# more alphanumerics.
EMAIL_PATTERN = re.compile(
    r"^\s*[A-Z0-9._%&'*+`/=?^{}~-]+@[A-Z0-9.-]+\.[A-Z0-9]{2,}\s*$",
    re.IGNORECASE,
)

# http, https and ftp URLs with an optional user:password, a public dotted
# IPv4 address or a host name, an optional port and an optional path.
URL_PATTERN = re.compile(
    r"^(?:(?:https?|ftp)://)"
    r"(?:\S+(?::\S*)?@)?"
    r"(?:"
    r"(?:[1-9]\d?|1\d\d|2[01]\d|22[0-3])"
    r"(?:\.(?:1?\d{1,2}|2[0-4]\d|25[0-5])){2}"
    r"(?:\.(?:[1-9]\d?|1\d\d|2[0-4]\d|25[0-4]))"
    r"|"
    r"(?:(?:[a-z\u00a1-\uffff0-9]+-?)*[a-z\u00a1-\uffff0-9]+)"
    r"(?:\.(?:[a-z\u00a1-\uffff0-9]+-?)*[a-z\u00a1-\uffff0-9]+)*"
    r"(?:\.(?:[a-z\u00a1-\uffff]{2,}))"
    r")"
    r"(?::\d{2,5})?"
    r"(?:/[^\s]*)?$",
    re.IGNORECASE,
)


def _pattern_check(pattern: re.Pattern[str], failure: str, invert: bool = False):
    def check(elements: list[Any]) -> str | None:
        for element in elements:
            if element is None:
                continue
            matched = pattern.search(str(element)) is not None
            if matched == invert:
                return failure
        return None

    return check


def _text_policy(allow_multiple: bool, allow_na: bool) -> BasicPolicy:
    # NaN / infinity are not meaningful for text; only NA is policed
    return BasicPolicy(
        allow_multiple=allow_multiple,
        allow_na=allow_na,
        allow_nan=True,
        allow_inf=True,
    )


# =============================================================================
# Rule Factories
# =============================================================================


def regex(
    pattern: str,
    message: str,
    ignore_case: bool = False,
    fixed: bool = False,
    invert: bool = False,
    allow_multiple: bool = False,
    allow_na: bool = False,
) -> Rule:
    """Rule that requires the value's string form to match `pattern`.

    Args:
        pattern: Regular expression, or a literal string when `fixed` is True
        message: Error message when the value does not match
        ignore_case: Match case-insensitively
        fixed: Treat `pattern` as a literal substring
        invert: Fail when the value *does* match
        allow_multiple: Allow several values (each must match)
        allow_na: Allow missing values

    Raises:
        TypeError: If `pattern` is not a string
        ValueError: If `pattern` is not a valid regular expression
    """
    if not isinstance(pattern, str):
        raise TypeError(f"`pattern` must be a string, got {type(pattern).__name__}")

    source = re.escape(pattern) if fixed else pattern
    flags = re.IGNORECASE if ignore_case else 0
    try:
        compiled = re.compile(source, flags)
    except re.error as e:
        raise ValueError(f"Invalid regular expression {pattern!r}: {e}") from e

    return ConstraintRule(
        "regex",
        _text_policy(allow_multiple, allow_na),
        _pattern_check(compiled, message, invert),
    )


def email(
    message: str = "Not a valid email address.",
    allow_multiple: bool = False,
    allow_na: bool = False,
) -> Rule:
    """Rule that requires a plausible email address."""
    return ConstraintRule(
        "email",
        _text_policy(allow_multiple, allow_na),
        _pattern_check(EMAIL_PATTERN, message),
    )


def url(
    message: str = "Not a valid URL.",
    allow_multiple: bool = False,
    allow_na: bool = False,
) -> Rule:
    """Rule that requires an http, https or ftp URL."""
    return ConstraintRule(
        "url",
        _text_policy(allow_multiple, allow_na),
        _pattern_check(URL_PATTERN, message),
    )
