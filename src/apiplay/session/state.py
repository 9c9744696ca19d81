"""Session modes and the data a session owns."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from ..editor.roles import RoleResolver
from ..editor.surface import EditorSurface
from ..editor.tabs import FileFormDraft, TabList
from ..generation.context import TemplateContext
from .options import OptionsManager

__all__ = ["SessionMode", "SessionContext", "PresetLoadTask"]

LOGGER = logging.getLogger(__name__)


class SessionMode(str, Enum):
    """Tagged session states; every mode except ``LOADING`` is a substate of *ready*."""

    LOADING = "loading"
    PLAYING = "ready.playing"
    EDITING_OPTIONS = "ready.editing_options"
    EDITING_EDITOR_SETTINGS = "ready.editing_editor_settings"
    EDITING_FILE_TAB = "ready.editing_file_tab"
    CREATING_FILE_TAB = "ready.creating_file_tab"

    @property
    def is_ready(self) -> bool:
        return self is not SessionMode.LOADING

    @property
    def is_file_form(self) -> bool:
        return self in (SessionMode.EDITING_FILE_TAB, SessionMode.CREATING_FILE_TAB)


@dataclass(slots=True)
class SessionContext:
    inputs: TabList
    outputs: TabList
    roles: RoleResolver
    options: OptionsManager
    preset_templates: dict[str, str] = field(default_factory=dict)
    template_context: TemplateContext | None = None
    file_form: FileFormDraft | None = None
    input_surface: EditorSurface | None = None
    output_surface: EditorSurface | None = None


class PresetLoadTask:
    """Handle on the background preset catalog load.

    The load itself is never cancelled by the session during normal
    operation; :meth:`cancel` exists so shutting a session down does not
    leave a task writing into it.
    """

    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task

    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> bool:
        if self._task.done():
            return False
        LOGGER.debug("Cancelling preset catalog load")
        return self._task.cancel()

    async def wait(self) -> None:
        """Wait for the load to finish; a cancelled load counts as finished."""

        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise
