"""Rule registry for formvalidate.

Maps rule type names used in declarative form definitions ("required",
"between", ...) to factories that build Rule instances.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from formvalidate import rules
from formvalidate.types import FormDefinitionError, Rule


@dataclass
class RuleDefinition:
    """Declarative description of a rule (from YAML or a dict).

    Attributes:
        type: Registered rule type ("required", "between", "regex", ...)
        params: Keyword arguments for the rule factory
        message: Optional error message override
    """

    type: str
    params: dict[str, Any] = field(default_factory=dict)
    message: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str) -> "RuleDefinition":
        """Create a RuleDefinition from a dict, or a bare type name.

        Raises:
            FormDefinitionError: If the data has no usable type or params
        """
        if isinstance(data, str):
            return cls(type=data)
        if not isinstance(data, dict) or "type" not in data:
            raise FormDefinitionError(f"Rule definition needs a 'type': {data!r}")

        params = data.get("params") or {}
        if not isinstance(params, dict):
            raise FormDefinitionError(
                f"Rule '{data['type']}' params must be a mapping, got {type(params).__name__}"
            )

        return cls(
            type=str(data["type"]),
            params=dict(params),
            message=data.get("message"),
        )


RuleFactory = Callable[[RuleDefinition], Rule]


class RuleRegistry:
    """Registry for rule types.

    Rule types must be registered before a form definition can use them.
    Built-in rules are registered by register_builtin_rules(); applications
    register their own at startup.

    Example:
        RuleRegistry.register_factory(
            "zipcode",
            lambda d: rules.regex(r"^\\d{5}$", d.message or "Invalid ZIP code"),
        )
        rule = RuleRegistry.create(RuleDefinition(type="zipcode"))
    """

    _factories: dict[str, RuleFactory] = {}

    @classmethod
    def register_factory(cls, name: str, factory: RuleFactory) -> None:
        """Register a factory that builds a rule from a definition.

        Idempotent - re-registering the same name is a no-op.
        """
        if name in cls._factories:
            return
        cls._factories[name] = factory

    @classmethod
    def create(cls, definition: RuleDefinition) -> Rule:
        """Build a rule from a definition.

        Raises:
            ValueError: If the rule type is not registered
            FormDefinitionError: If the params are rejected by the rule factory
        """
        if definition.type not in cls._factories:
            raise ValueError(
                f"Rule type '{definition.type}' is not registered. "
                "Available types: " + ", ".join(cls.list_registered())
            )
        try:
            return cls._factories[definition.type](definition)
        except (TypeError, ValueError) as e:
            raise FormDefinitionError(
                f"Invalid params for rule '{definition.type}': {e}"
            ) from e

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._factories

    @classmethod
    def list_registered(cls) -> list[str]:
        """List all registered rule type names."""
        return sorted(cls._factories.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._factories.clear()


def _params_factory(fn: Callable[..., Rule], message_param: str | None = "message") -> RuleFactory:
    """Factory that passes params as keyword arguments and the message, if any,
    as `message_param`."""

    def factory(definition: RuleDefinition) -> Rule:
        kwargs = dict(definition.params)
        if definition.message is not None and message_param is not None:
            kwargs[message_param] = definition.message
        return fn(**kwargs)

    return factory


def register_builtin_rules() -> None:
    """Register every built-in rule factory under its name."""
    RuleRegistry.register_factory("required", _params_factory(rules.required))
    RuleRegistry.register_factory("optional", _params_factory(rules.optional, None))
    RuleRegistry.register_factory("basic", _params_factory(rules.basic))
    RuleRegistry.register_factory("numeric", _params_factory(rules.numeric))
    RuleRegistry.register_factory("integer", _params_factory(rules.integer))
    RuleRegistry.register_factory("between", _params_factory(rules.between))
    RuleRegistry.register_factory("in_set", _params_factory(rules.in_set))
    RuleRegistry.register_factory("regex", _params_factory(rules.regex))
    RuleRegistry.register_factory("email", _params_factory(rules.email))
    RuleRegistry.register_factory("url", _params_factory(rules.url))

    for name, comparator in (
        ("gt", rules.gt),
        ("gte", rules.gte),
        ("lt", rules.lt),
        ("lte", rules.lte),
        ("eq", rules.eq),
        ("neq", rules.neq),
    ):
        RuleRegistry.register_factory(name, _params_factory(comparator))
