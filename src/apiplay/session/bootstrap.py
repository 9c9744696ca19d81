"""Wiring for a fresh playground session."""

from __future__ import annotations

import logging
from typing import Iterable

from ..editor.roles import RoleConventions, RoleResolver, default_conventions
from ..editor.tabs import FileTab, TabList
from ..events import EventBus
from ..generation.pipeline import RegenerationPipeline
from ..presets.bundled import initial_input_tabs, preset_template_keys
from ..presets.catalog import PresetCatalogLoader
from ..services.settings import PlaygroundSettings
from .machine import SessionStateMachine
from .options import OptionsManager
from .state import SessionContext

__all__ = ["create_session"]

LOGGER = logging.getLogger(__name__)


def create_session(
    settings: PlaygroundSettings | None = None,
    *,
    input_tabs: Iterable[FileTab] | None = None,
    conventions: RoleConventions | None = None,
    catalog_loader: PresetCatalogLoader | None = None,
    event_bus: EventBus | None = None,
    pipeline: RegenerationPipeline | None = None,
) -> SessionStateMachine:
    """Build a session in ``loading`` mode with roles seeded from the input tabs.

    Without ``input_tabs`` the session starts with the bundled document,
    template and formatter config.
    """

    settings = settings or PlaygroundSettings()
    inputs = TabList(initial_input_tabs() if input_tabs is None else input_tabs, kind="input")
    outputs = TabList([FileTab(name=settings.default_output_name)], kind="output")

    presets = preset_template_keys()
    roles = RoleResolver(
        conventions=conventions or default_conventions(settings.formatter_config_prefix),
        reserved_templates=frozenset(presets),
    )
    roles.seed(inputs)
    LOGGER.debug("Seeded roles: %s", roles.selection.as_dict())

    context = SessionContext(inputs=inputs, outputs=outputs, roles=roles, options=OptionsManager())
    if pipeline is None:
        pipeline = RegenerationPipeline(
            default_output_name=settings.default_output_name,
            preset_keys=presets,
            memoize=settings.memoize_pipeline,
        )
    if catalog_loader is None:
        catalog_loader = PresetCatalogLoader(settings)
    return SessionStateMachine(context, pipeline=pipeline, catalog_loader=catalog_loader, event_bus=event_bus)
