"""Events consumed by :class:`~apiplay.session.machine.SessionStateMachine`.

Each user or editor action is one frozen dataclass. Which events a session
accepts depends on its current mode; see the transition tables in
:mod:`apiplay.session.machine`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

from ..editor.surface import EditorSurface
from ..editor.tabs import FileTab
from ..presets.bundled import PresetTemplate

__all__ = [
    "SessionEvent",
    "EditorLoaded",
    "UpdateInput",
    "SelectInputTab",
    "SelectOutputTab",
    "SelectPresetTemplate",
    "OpenOptions",
    "UpdatePreviewOptions",
    "ResetPreviewOptions",
    "SaveOptions",
    "CloseOptions",
    "OpenEditorSettings",
    "UpdateEditorSettings",
    "AddFile",
    "EditFile",
    "RemoveFile",
    "SubmitFileModal",
    "CloseModal",
    "Resize",
    "PresetTemplatesLoaded",
]


@dataclass(frozen=True, slots=True)
class SessionEvent:
    """Base class for every event a session can be sent."""


@dataclass(frozen=True, slots=True)
class EditorLoaded(SessionEvent):
    """An editor surface finished mounting."""

    surface: EditorSurface
    side: Literal["input", "output"]


@dataclass(frozen=True, slots=True)
class UpdateInput(SessionEvent):
    """The content of the active input tab changed."""

    value: str


@dataclass(frozen=True, slots=True)
class SelectInputTab(SessionEvent):
    name: str


@dataclass(frozen=True, slots=True)
class SelectOutputTab(SessionEvent):
    name: str


@dataclass(frozen=True, slots=True)
class SelectPresetTemplate(SessionEvent):
    template: PresetTemplate


@dataclass(frozen=True, slots=True)
class OpenOptions(SessionEvent):
    pass


@dataclass(frozen=True, slots=True)
class UpdatePreviewOptions(SessionEvent):
    options: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class ResetPreviewOptions(SessionEvent):
    pass


@dataclass(frozen=True, slots=True)
class SaveOptions(SessionEvent):
    options: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class CloseOptions(SessionEvent):
    pass


@dataclass(frozen=True, slots=True)
class OpenEditorSettings(SessionEvent):
    pass


@dataclass(frozen=True, slots=True)
class UpdateEditorSettings(SessionEvent):
    settings: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class AddFile(SessionEvent):
    pass


@dataclass(frozen=True, slots=True)
class EditFile(SessionEvent):
    name: str


@dataclass(frozen=True, slots=True)
class RemoveFile(SessionEvent):
    name: str


@dataclass(frozen=True, slots=True)
class SubmitFileModal(SessionEvent):
    """The file form was submitted with the given tab name and content."""

    name: str
    content: str = ""
    preset: str | None = None

    def as_tab(self, index: int) -> FileTab:
        return FileTab(name=self.name, content=self.content, index=index, preset=self.preset)


@dataclass(frozen=True, slots=True)
class CloseModal(SessionEvent):
    pass


@dataclass(frozen=True, slots=True)
class Resize(SessionEvent):
    """The split pane was resized; the output side gets what is left of the container."""

    container_size: int
    dragged_size: int


@dataclass(frozen=True, slots=True)
class PresetTemplatesLoaded(SessionEvent):
    templates: Mapping[str, str]
