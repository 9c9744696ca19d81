"""Session state, events and the state machine interpreting them."""

from .bootstrap import create_session
from .events import (
    AddFile,
    CloseModal,
    CloseOptions,
    EditFile,
    EditorLoaded,
    OpenEditorSettings,
    OpenOptions,
    PresetTemplatesLoaded,
    RemoveFile,
    ResetPreviewOptions,
    Resize,
    SaveOptions,
    SelectInputTab,
    SelectOutputTab,
    SelectPresetTemplate,
    SessionEvent,
    SubmitFileModal,
    UpdateEditorSettings,
    UpdateInput,
    UpdatePreviewOptions,
)
from .machine import SessionStateMachine
from .options import DEFAULT_OPTIONS, GROUP_STRATEGIES, OptionsManager
from .state import PresetLoadTask, SessionContext, SessionMode

__all__ = [
    "AddFile",
    "CloseModal",
    "CloseOptions",
    "DEFAULT_OPTIONS",
    "EditFile",
    "EditorLoaded",
    "GROUP_STRATEGIES",
    "OpenEditorSettings",
    "OpenOptions",
    "OptionsManager",
    "PresetLoadTask",
    "PresetTemplatesLoaded",
    "RemoveFile",
    "ResetPreviewOptions",
    "Resize",
    "SaveOptions",
    "SelectInputTab",
    "SelectOutputTab",
    "SelectPresetTemplate",
    "SessionContext",
    "SessionEvent",
    "SessionMode",
    "SessionStateMachine",
    "SubmitFileModal",
    "UpdateEditorSettings",
    "UpdateInput",
    "UpdatePreviewOptions",
    "create_session",
]
