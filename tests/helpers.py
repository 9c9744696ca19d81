"""Shared test helpers and stub classes.

Import from here instead of duplicating these classes in individual test files:

    from tests.helpers import StubCatalogLoader
"""

from __future__ import annotations

from typing import Any

from apiplay.events import EventBus, Notification
from apiplay.presets.bundled import BUNDLED_TEMPLATES


class StubCatalogLoader:
    """Catalog loader returning a fixed mapping without touching the network."""

    def __init__(self, templates: dict[str, str] | None = None, *, error: Exception | None = None) -> None:
        self.templates = dict(BUNDLED_TEMPLATES if templates is None else templates)
        self.error = error
        self.calls = 0

    async def fetch_all(self) -> dict[str, str]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return dict(self.templates)


class Recorder:
    """Collects every notification of the given types published on a bus."""

    def __init__(self, bus: EventBus, *types: type[Notification]) -> None:
        self.received: list[Any] = []
        for notification_type in types:
            bus.subscribe(notification_type, self.received.append)

    def of(self, notification_type: type[Notification]) -> list[Any]:
        return [item for item in self.received if isinstance(item, notification_type)]
