"""Load declarative form definitions from YAML and build validators.

Form file layout:

    form:
      name: signup
      fields:
        name:
          - type: required
            message: Please enter your name
        age:
          - optional
          - type: integer
          - type: between
            params: {left: 18, right: 120}
      children:
        - namespace: billing
          when: wants_invoice          # only validate when provided
          fields:
            zip:
              - type: regex
                params: {pattern: '^\\d{5}$'}
                message: Invalid ZIP code

`when` is either a field id (the child is active while that field is
provided) or a mapping `{field: <id>, equals: <value>}`. The field is
resolved in the parent's scope.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from formvalidate.config import ValidationConfig
from formvalidate.presence import is_provided
from formvalidate.registry import RuleDefinition, RuleRegistry
from formvalidate.session import ModuleScope
from formvalidate.types import FormDefinitionError
from formvalidate.validator import InputValidator

logger = logging.getLogger(__name__)


@dataclass
class ConditionConfig:
    """When a form section is active.

    Attributes:
        field: Field id the condition reads
        equals: Required value when `mode` is "equals"
        mode: "provided" (field has a value) or "equals"
    """

    field: str
    equals: Any = None
    mode: str = "provided"

    @classmethod
    def from_value(cls, data: Any) -> "ConditionConfig":
        if isinstance(data, str) and data:
            return cls(field=data)
        if isinstance(data, dict) and isinstance(data.get("field"), str):
            if "equals" in data:
                return cls(field=data["field"], equals=data["equals"], mode="equals")
            return cls(field=data["field"])
        raise FormDefinitionError(
            f"'when' must be a field id or a mapping with 'field', got {data!r}"
        )


@dataclass
class FormDefinition:
    """A form (or form module) and its rules.

    Attributes:
        name: Form name, used in messages
        fields: Field id -> rule definitions, in declaration order
        when: Optional condition for the whole section
        children: Nested form modules
        namespace: Namespace of a child module (None for the root form)
    """

    name: str
    fields: dict[str, list[RuleDefinition]] = field(default_factory=dict)
    when: ConditionConfig | None = None
    children: list["FormDefinition"] = field(default_factory=list)
    namespace: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], namespace: str | None = None) -> "FormDefinition":
        """Create a FormDefinition from the mapping under the `form` key."""
        if not isinstance(data, dict):
            raise FormDefinitionError(f"Form definition must be a mapping, got {type(data).__name__}")

        name = data.get("name") or namespace or "form"

        raw_fields = data.get("fields") or {}
        if not isinstance(raw_fields, dict):
            raise FormDefinitionError(f"Form '{name}': 'fields' must be a mapping")

        fields: dict[str, list[RuleDefinition]] = {}
        for field_id, raw_rules in raw_fields.items():
            if not isinstance(field_id, str) or not field_id:
                raise FormDefinitionError(f"Form '{name}': invalid field id {field_id!r}")
            if not isinstance(raw_rules, list):
                raw_rules = [raw_rules]
            fields[field_id] = [RuleDefinition.from_dict(r) for r in raw_rules]

        when = None
        if data.get("when") is not None:
            when = ConditionConfig.from_value(data["when"])

        children = []
        for child in data.get("children") or []:
            if not isinstance(child, dict) or not child.get("namespace"):
                raise FormDefinitionError(f"Form '{name}': every child needs a 'namespace'")
            children.append(cls.from_dict(child, namespace=str(child["namespace"])))

        return cls(
            name=str(name),
            fields=fields,
            when=when,
            children=children,
            namespace=namespace,
        )


def load_form(path: Path) -> FormDefinition:
    """Load a form definition from a YAML file.

    Raises:
        FormDefinitionError: If the file cannot be parsed or is malformed
    """
    try:
        with path.open() as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as e:
        raise FormDefinitionError(f"YAML parse error in {path}: {e}") from e

    if not isinstance(raw, dict) or "form" not in raw:
        raise FormDefinitionError(f"{path}: expected a top-level 'form' key")

    form = FormDefinition.from_dict(raw["form"])
    logger.debug("Loaded form '%s' from %s (%d field(s))", form.name, path, len(form.fields))
    return form


def _make_condition(when: ConditionConfig, scope: ModuleScope):
    if when.mode == "equals":
        return lambda: scope.get(when.field) == when.equals
    return lambda: is_provided(scope.get(when.field))


def build_validator(
    form: FormDefinition,
    scope: ModuleScope,
    config: ValidationConfig | None = None,
    priority: int | None = None,
) -> InputValidator:
    """Build an InputValidator tree for a form definition.

    Rule types are resolved through RuleRegistry, so register_builtin_rules()
    (and any application rules) must have been called first. Each child
    module gets `scope.scope(namespace)`; its condition is read from the
    parent's scope.

    Raises:
        ValueError: If a rule type is not registered
        FormDefinitionError: If a rule's params are invalid
    """
    validator = InputValidator(scope, priority=priority, config=config)

    for field_id, definitions in form.fields.items():
        for definition in definitions:
            validator.add_rule(field_id, RuleRegistry.create(definition))

    for child in form.children:
        child_validator = build_validator(child, scope.scope(child.namespace), config)
        if child.when is not None:
            child_validator.condition(_make_condition(child.when, scope))
        validator.add_validator(child_validator)

    if form.when is not None and form.namespace is None:
        validator.condition(_make_condition(form.when, scope))

    return validator
