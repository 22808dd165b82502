"""Presence heuristic: does a value count as "provided"?

Used by the `required` and `optional` rules to tell a value the user
actually supplied apart from an empty or default one.
"""

import math
from collections.abc import Mapping, Set
from typing import Any


class ActionButtonValue(int):
    """Click count of an action button.

    A button that has never been clicked (count 0) counts as not provided.
    """

    def __repr__(self) -> str:
        return f"ActionButtonValue({int(self)})"


def is_missing(value: Any) -> bool:
    """True for a missing element: None or a float NaN."""
    if value is None:
        return True
    return isinstance(value, float) and math.isnan(value)


def is_provided(value: Any) -> bool:
    """Check whether a value counts as supplied by the user.

    Returns False for:
    - None and float NaN
    - the empty string
    - empty collections
    - collections whose elements are all missing
    - string collections whose elements are all missing or empty
    - an unclicked ActionButtonValue
    - exception instances (a failed upstream computation)

    Everything else is provided, including ``False`` and ``0``.
    """
    if is_missing(value):
        return False

    if isinstance(value, BaseException):
        return False

    if isinstance(value, ActionButtonValue):
        return value != 0

    if isinstance(value, str):
        return value != ""

    if isinstance(value, Mapping):
        return len(value) > 0

    if isinstance(value, (list, tuple, Set)):
        if len(value) == 0:
            return False
        if all(is_missing(v) for v in value):
            return False
        # Character vectors: empty strings count as missing too
        if all(is_missing(v) or isinstance(v, str) for v in value):
            return any(isinstance(v, str) and v != "" for v in value)
        return True

    return True
