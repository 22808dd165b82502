"""Runtime configuration for formvalidate."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_PRIORITY = 1000

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class ValidationConfig:
    """Engine configuration.

    Attributes:
        developer_mode: Include exception details in messages for rules that
            raise while being evaluated
        priority: Default change-notification priority for enabled
            validators. Keep it above the priority of observers doing real
            work so feedback updates first.
        ns_separator: Separator between namespace and field id
    """

    developer_mode: bool = False
    priority: int = DEFAULT_PRIORITY
    ns_separator: str = "-"

    @classmethod
    def from_env(cls) -> ValidationConfig:
        """Create config from environment variables.

        Reads:
        1. FORMVALIDATE_DEV_MODE (1/true/yes/on)
        2. FORMVALIDATE_PRIORITY (integer)
        3. FORMVALIDATE_NS_SEPARATOR

        Raises:
            ValueError: If FORMVALIDATE_PRIORITY is not an integer
        """
        dev_mode = os.environ.get("FORMVALIDATE_DEV_MODE", "")
        priority = os.environ.get("FORMVALIDATE_PRIORITY")
        separator = os.environ.get("FORMVALIDATE_NS_SEPARATOR")

        config = cls(developer_mode=dev_mode.strip().lower() in _TRUTHY)

        if priority:
            try:
                config.priority = int(priority)
            except ValueError:
                raise ValueError(
                    f"FORMVALIDATE_PRIORITY must be an integer, got {priority!r}"
                ) from None

        if separator:
            config.ns_separator = separator

        return config
