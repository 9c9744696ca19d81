"""Notifications published by a session and the bus that delivers them.

Observers (a UI shell, the CLI, tests) subscribe to the notification types
they care about instead of polling session state.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, TypeVar
from weakref import WeakMethod

__all__ = [
    "Notification",
    "ModeChanged",
    "RoleSelectionChanged",
    "OutputsRegenerated",
    "EventBus",
]

LOGGER = logging.getLogger(__name__)

N = TypeVar("N", bound="Notification")
Handler = Callable[[Any], None]


@dataclass(slots=True)
class Notification:
    """Base class for everything published on the :class:`EventBus`."""


@dataclass(slots=True)
class ModeChanged(Notification):
    """The session moved from one mode to another.

    Attributes:
        previous: Value of the mode that was left.
        current: Value of the mode that was entered.
    """

    previous: str
    current: str


@dataclass(slots=True)
class RoleSelectionChanged(Notification):
    document: str
    template: str
    formatter_config: str


@dataclass(slots=True)
class OutputsRegenerated(Notification):
    """A regeneration replaced the output tabs.

    Attributes:
        names: Output tab names in display order.
        active: Name of the output tab now shown.
        grouped: Whether the outputs came from a grouped (one file per group) run.
    """

    names: tuple[str, ...]
    active: str
    grouped: bool = False


class EventBus:
    """Synchronous publish/subscribe bus.

    Bound methods are held weakly so a subscriber going away unsubscribes it
    implicitly; plain functions are held strongly. A failing handler is
    logged and does not stop delivery to the others.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: defaultdict[type[Notification], list[Callable[[], Handler | None]]] = defaultdict(list)

    def subscribe(self, notification_type: type[N], handler: Callable[[N], None]) -> None:
        self._handlers[notification_type].append(_reference(handler))

    def unsubscribe(self, notification_type: type[N], handler: Callable[[N], None]) -> None:
        references = self._handlers.get(notification_type, [])
        for position, reference in enumerate(references):
            if reference() == handler:
                references.pop(position)
                return

    def publish(self, notification: Notification) -> None:
        references = self._handlers.get(type(notification))
        if not references:
            return
        LOGGER.debug("Publishing %s to %d handler(s)", type(notification).__name__, len(references))
        dead: list[Callable[[], Handler | None]] = []
        for reference in list(references):
            handler = reference()
            if handler is None:
                dead.append(reference)
                continue
            try:
                handler(notification)
            except Exception:
                LOGGER.exception("Handler %r failed for %s", handler, type(notification).__name__)
        for reference in dead:
            if reference in references:
                references.remove(reference)

    def handler_count(self, notification_type: type[Notification] | None = None) -> int:
        if notification_type is not None:
            return len(self._handlers.get(notification_type, []))
        return sum(len(references) for references in self._handlers.values())


def _reference(handler: Handler) -> Callable[[], Handler | None]:
    if hasattr(handler, "__self__") and hasattr(handler, "__func__"):
        try:
            return WeakMethod(handler)  # type: ignore[arg-type]
        except TypeError:
            pass
    return lambda: handler
