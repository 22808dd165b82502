"""formvalidate: declarative input validation for form-driven applications.

This package provides:
- Rules: small functions from a field value to pass / fail / skip
- Rule factories: required, optional, numeric, between, in_set, regex, ...
- InputValidator: owns per-field rule chains and child validators,
  evaluates them, and pushes reports to a display layer
- FormSession: an in-memory value source and report sink
- A registry and YAML loader for declarative form definitions

Usage:
    from formvalidate import FormSession, InputValidator
    from formvalidate.rules import required, email, optional

    session = FormSession({"name": "", "email": "ada@example"})
    iv = InputValidator(session)
    iv.add_rule("name", required())
    iv.add_rule("email", optional())
    iv.add_rule("email", email())

    iv.evaluate()
    # {"name": FieldError("Required"), "email": FieldError("Not a valid email address.")}
"""

from formvalidate.config import ValidationConfig
from formvalidate.loader import FormDefinition, build_validator, load_form
from formvalidate.presence import ActionButtonValue, is_provided
from formvalidate.registry import RuleDefinition, RuleRegistry, register_builtin_rules
from formvalidate.report import merge_results
from formvalidate.rules import compose_rules
from formvalidate.session import FormSession, ModuleScope
from formvalidate.types import (
    FieldError,
    FieldScope,
    FormDefinitionError,
    FormValidateError,
    FunctionRule,
    OutcomeKind,
    Rule,
    RuleContractError,
    RuleOutcome,
    ValidationReport,
    as_rule,
)
from formvalidate.validator import InputValidator

__all__ = [
    # Types
    "FieldError",
    "FieldScope",
    "FunctionRule",
    "OutcomeKind",
    "Rule",
    "RuleOutcome",
    "ValidationReport",
    "as_rule",
    # Errors
    "FormDefinitionError",
    "FormValidateError",
    "RuleContractError",
    # Engine
    "InputValidator",
    "compose_rules",
    "merge_results",
    "is_provided",
    "ActionButtonValue",
    # Collaborators
    "FormSession",
    "ModuleScope",
    "ValidationConfig",
    # Declarative forms
    "FormDefinition",
    "RuleDefinition",
    "RuleRegistry",
    "build_validator",
    "load_form",
    "register_builtin_rules",
]
