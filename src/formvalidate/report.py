"""Validation report helpers.

A report maps fully-qualified field ids to None (valid) or a FieldError
(invalid). Reports from nested validators are combined with merge_results.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from formvalidate.types import FieldError, ValidationReport


def merge_results(
    primary: Mapping[str, FieldError | None],
    secondary: Mapping[str, FieldError | None],
) -> ValidationReport:
    """Combine two reports, giving `primary` precedence for failures.

    For each id present in either report:
    - primary's entry wins if it is a failure
    - otherwise secondary's entry is used when present
    - otherwise primary's (passing) entry is kept

    Each id appears once. Keys follow primary's order, then ids only
    present in secondary.
    """
    merged: ValidationReport = {}

    for field_id, value in primary.items():
        if value is None and field_id in secondary:
            merged[field_id] = secondary[field_id]
        else:
            merged[field_id] = value

    for field_id, value in secondary.items():
        if field_id not in merged:
            merged[field_id] = value

    return merged


def cleared(field_ids: Iterable[str]) -> ValidationReport:
    """Build a report that marks every given field as valid."""
    return {field_id: None for field_id in field_ids}


def is_report_valid(report: Mapping[str, FieldError | None]) -> bool:
    """True if no field in the report has an error."""
    return all(value is None for value in report.values())


def report_to_dict(report: Mapping[str, FieldError | None]) -> dict[str, Any]:
    """Serialize a report to plain JSON-compatible data."""
    return {
        field_id: (error.to_dict() if error is not None else None)
        for field_id, error in report.items()
    }
