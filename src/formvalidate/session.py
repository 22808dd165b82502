"""In-memory form session: field values, namespaces and report delivery.

FormSession implements the FieldScope protocol that InputValidator depends
on. Applications embedding the engine in a UI toolkit provide their own
implementation; this one backs the CLI and the test-suite.

Usage:
    session = FormSession({"name": ""})
    session.add_sink(display.update)

    address = session.scope("address")   # ids become "address-<id>"
    address.get("zip")                    # reads session value "address-zip"

    session.set_inputs(name="Ada")        # notifies subscribers
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Mapping
from typing import Any

from formvalidate.config import ValidationConfig
from formvalidate.types import ChangeCallback, FieldError, ReportSink

logger = logging.getLogger(__name__)


class Subscription:
    """A registered change callback. Cancel it to stop notifications."""

    def __init__(self, session: FormSession, callback: ChangeCallback, priority: int, seq: int):
        self.session = session
        self.callback = callback
        self.priority = priority
        self.seq = seq
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self.session._remove_subscription(self)

    def __repr__(self) -> str:
        state = "active" if self.active else "cancelled"
        return f"<Subscription priority={self.priority} {state}>"


class ModuleScope:
    """A namespaced view onto a FormSession.

    Field ids passed to a scope are local; the scope prefixes them with its
    namespace before reading from the session.
    """

    def __init__(self, session: FormSession, namespace: str | None):
        self._session = session
        self.namespace = namespace

    @property
    def session(self) -> FormSession:
        return self._session

    def ns(self, field_id: str) -> str:
        if not self.namespace:
            return field_id
        return f"{self.namespace}{self._session.separator}{field_id}"

    def get(self, field_id: str) -> Any:
        return self._session.get_value(self.ns(field_id))

    def scope(self, name: str) -> ModuleScope:
        """Return a nested scope, e.g. scope("a").scope("b") -> "a-b-<id>"."""
        if not name:
            raise ValueError("Scope name must be a non-empty string")
        return ModuleScope(self._session, self.ns(name))

    def set_inputs(self, values: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        """Set local field values and notify subscribers of the changes."""
        updates = dict(values or {})
        updates.update(kwargs)
        self._session.update({self.ns(k): v for k, v in updates.items()})

    def subscribe(self, callback: ChangeCallback, priority: int = 0) -> Subscription:
        return self._session.subscribe(callback, priority)

    def send_report(self, report: Mapping[str, FieldError | None]) -> None:
        self._session.send_report(report)

    def __repr__(self) -> str:
        return f"<ModuleScope namespace={self.namespace!r}>"


class FormSession(ModuleScope):
    """Root scope holding all field values for one form.

    Values are stored under fully-qualified ids. Change notifications are
    delivered synchronously in descending priority order; callbacks with the
    same priority run in subscription order.
    """

    def __init__(
        self,
        values: Mapping[str, Any] | None = None,
        *,
        separator: str | None = None,
        config: ValidationConfig | None = None,
    ):
        super().__init__(self, None)
        config = config or ValidationConfig.from_env()
        self.separator = separator or config.ns_separator
        self.values: dict[str, Any] = dict(values or {})
        self._subscriptions: list[Subscription] = []
        self._sinks: list[ReportSink] = []
        self._seq = itertools.count()

    def get_value(self, full_id: str) -> Any:
        """Return the value for a fully-qualified id (None if unset)."""
        return self.values.get(full_id)

    def update(self, values: Mapping[str, Any]) -> frozenset[str]:
        """Store fully-qualified values and notify about the ids that changed.

        Returns:
            The set of ids whose value actually changed
        """
        changed = set()
        for full_id, value in values.items():
            if full_id not in self.values or not _same_value(self.values[full_id], value):
                changed.add(full_id)
            self.values[full_id] = value

        result = frozenset(changed)
        if result:
            self._notify(result)
        return result

    def subscribe(self, callback: ChangeCallback, priority: int = 0) -> Subscription:
        sub = Subscription(self, callback, priority, next(self._seq))
        self._subscriptions.append(sub)
        logger.debug("Subscribed %r", sub)
        return sub

    def _remove_subscription(self, sub: Subscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)
            logger.debug("Unsubscribed %r", sub)

    def _notify(self, changed: frozenset[str]) -> None:
        ordered = sorted(self._subscriptions, key=lambda s: (-s.priority, s.seq))
        for sub in ordered:
            # A callback may cancel later subscriptions
            if sub.active:
                sub.callback(changed)

    def add_sink(self, sink: ReportSink) -> None:
        """Register a display sink that receives every pushed report."""
        self._sinks.append(sink)

    def send_report(self, report: Mapping[str, FieldError | None]) -> None:
        logger.debug("Sending report for %d field(s)", len(report))
        for sink in list(self._sinks):
            sink(dict(report))

    def __repr__(self) -> str:
        return f"<FormSession fields={len(self.values)}>"


def _same_value(old: Any, new: Any) -> bool:
    if old is new:
        return True
    # 1 and True compare equal but are different inputs
    return type(old) is type(new) and bool(old == new)
