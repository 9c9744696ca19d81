"""Shared pytest fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from apiplay.editor.surface import BufferSurface
from apiplay.events import EventBus
from apiplay.generation.documents import parse_document
from apiplay.presets.bundled import BUNDLED_TEMPLATES, DEFAULT_DOCUMENT
from apiplay.services.settings import PlaygroundSettings
from apiplay.session.bootstrap import create_session
from apiplay.session.events import EditorLoaded, PresetTemplatesLoaded
from apiplay.session.machine import SessionStateMachine
from tests.helpers import StubCatalogLoader


@pytest.fixture
def petstore() -> dict[str, Any]:
    return parse_document(DEFAULT_DOCUMENT)


@pytest.fixture
def settings() -> PlaygroundSettings:
    return PlaygroundSettings(memoize_pipeline=False)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def input_surface() -> BufferSurface:
    return BufferSurface(name="input")


@pytest.fixture
def output_surface() -> BufferSurface:
    return BufferSurface(name="output")


@pytest.fixture
def session(settings: PlaygroundSettings, bus: EventBus) -> SessionStateMachine:
    """A freshly created session still waiting for its editors."""

    return create_session(settings, catalog_loader=StubCatalogLoader(), event_bus=bus)  # type: ignore[arg-type]


@pytest.fixture
def ready_session(
    session: SessionStateMachine,
    input_surface: BufferSurface,
    output_surface: BufferSurface,
) -> SessionStateMachine:
    """A session with both editors attached and the bundled catalog merged."""

    session.dispatch(EditorLoaded(surface=input_surface, side="input"))
    session.dispatch(EditorLoaded(surface=output_surface, side="output"))
    session.dispatch(PresetTemplatesLoaded(templates=dict(BUNDLED_TEMPLATES)))
    return session
