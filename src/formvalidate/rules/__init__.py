"""Rule factories for formvalidate.

Ready-to-use rules that can be passed to InputValidator.add_rule or
referenced by name from YAML form definitions (see RuleRegistry).
"""

from formvalidate.rules.constraints import (
    BasicPolicy,
    ConstraintRule,
    as_elements,
    basic,
    between,
    eq,
    gt,
    gte,
    in_set,
    integer,
    lt,
    lte,
    neq,
    numeric,
    values_text,
)
from formvalidate.rules.core import CompositeRule, compose_rules, optional, required
from formvalidate.rules.formats import EMAIL_PATTERN, URL_PATTERN, email, regex, url

__all__ = [
    # Composition
    "CompositeRule",
    "compose_rules",
    # Presence
    "optional",
    "required",
    # Constraints
    "BasicPolicy",
    "ConstraintRule",
    "as_elements",
    "basic",
    "between",
    "in_set",
    "integer",
    "numeric",
    "values_text",
    # Comparisons
    "eq",
    "gt",
    "gte",
    "lt",
    "lte",
    "neq",
    # Formats
    "EMAIL_PATTERN",
    "URL_PATTERN",
    "email",
    "regex",
    "url",
]
