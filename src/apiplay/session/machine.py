"""The session state machine driving tabs, roles, options and regeneration.

Modes are the tagged states of :class:`~apiplay.session.state.SessionMode`.
Each mode owns a table mapping the event types it accepts to a handler; a
few events (:class:`Resize`, :class:`PresetTemplatesLoaded`) are accepted in
every mode. Handlers return the mode to enter, or ``None`` to stay. An event
missing from both tables is a no-op and :meth:`SessionStateMachine.dispatch`
reports it by returning ``False``.

Events are processed one at a time and run to completion. Events dispatched
from inside a handler (an editor surface echoing ``set_value`` back as a
content change, for instance) are queued and handled afterwards.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Callable, Mapping

from ..editor.roles import Role
from ..editor.surface import LayoutInfo
from ..editor.tabs import FileFormDraft, FileTab
from ..events import EventBus, ModeChanged, Notification, OutputsRegenerated, RoleSelectionChanged
from ..generation.pipeline import PipelineInputs, RegenerationPipeline
from ..presets.catalog import PresetCatalogLoader
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
from .state import PresetLoadTask, SessionContext, SessionMode

__all__ = ["SessionStateMachine"]

LOGGER = logging.getLogger(__name__)

_ROOT_TRANSITIONS: Mapping[type[SessionEvent], str] = {
    Resize: "_on_resize",
    PresetTemplatesLoaded: "_on_preset_templates_loaded",
}

_TRANSITIONS: Mapping[SessionMode, Mapping[type[SessionEvent], str]] = {
    SessionMode.LOADING: {
        EditorLoaded: "_on_editor_loaded",
    },
    SessionMode.PLAYING: {
        UpdateInput: "_on_update_input",
        SelectInputTab: "_on_select_input_tab",
        SelectOutputTab: "_on_select_output_tab",
        SelectPresetTemplate: "_on_select_preset_template",
        OpenOptions: "_on_open_options",
        OpenEditorSettings: "_on_open_editor_settings",
        AddFile: "_on_add_file",
        EditFile: "_on_edit_file",
        RemoveFile: "_on_remove_file",
    },
    SessionMode.EDITING_OPTIONS: {
        UpdatePreviewOptions: "_on_update_preview_options",
        ResetPreviewOptions: "_on_reset_preview_options",
        SaveOptions: "_on_save_options",
        CloseOptions: "_on_close_options",
    },
    SessionMode.EDITING_EDITOR_SETTINGS: {
        UpdateEditorSettings: "_on_update_editor_settings",
        CloseModal: "_on_close_editor_settings",
    },
    SessionMode.EDITING_FILE_TAB: {
        SubmitFileModal: "_on_submit_edited_file",
        CloseModal: "_on_close_file_form",
    },
    SessionMode.CREATING_FILE_TAB: {
        SubmitFileModal: "_on_submit_new_file",
        CloseModal: "_on_close_file_form",
    },
}


class SessionStateMachine:
    """Interprets session events and keeps the generated outputs up to date."""

    def __init__(
        self,
        context: SessionContext,
        *,
        pipeline: RegenerationPipeline | None = None,
        catalog_loader: PresetCatalogLoader | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._context = context
        self._mode = SessionMode.LOADING
        self._pipeline = pipeline or RegenerationPipeline()
        self._catalog_loader = catalog_loader
        self._bus = event_bus
        self._queue: deque[SessionEvent] = deque()
        self._dispatching = False
        self._preset_task: PresetLoadTask | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def mode(self) -> SessionMode:
        return self._mode

    @property
    def context(self) -> SessionContext:
        return self._context

    @property
    def preset_task(self) -> PresetLoadTask | None:
        return self._preset_task

    def accepts(self, event_type: type[SessionEvent]) -> bool:
        """Return whether ``event_type`` has an effect in the current mode."""

        return event_type in _ROOT_TRANSITIONS or event_type in _TRANSITIONS[self._mode]

    def dispatch(self, event: SessionEvent) -> bool:
        """Process ``event`` (and anything it queues) to completion.

        Returns ``False`` when the current mode does not accept the event.

        Raises:
            DuplicateNameError: if a submitted file form reuses an existing name;
                the session stays in its file form mode.
        """

        if self._dispatching:
            LOGGER.debug("Queueing %s while another event is being handled", type(event).__name__)
            self._queue.append(event)
            return True

        self._dispatching = True
        try:
            handled = self._handle(event)
            while self._queue:
                self._handle(self._queue.popleft())
        except BaseException:
            self._queue.clear()
            raise
        finally:
            self._dispatching = False
        return handled

    def pipeline_inputs(self) -> PipelineInputs:
        """Collect the regeneration inputs from the tabs currently holding each role."""

        inputs = self._context.inputs
        selection = self._context.roles.selection
        return PipelineInputs(
            document=inputs.content_of(selection.document),
            template_name=selection.template,
            template=inputs.content_of(selection.template),
            formatter_config=inputs.content_of(selection.formatter_config),
            options=self._context.options.committed,
            presets=dict(self._context.preset_templates),
        )

    def regenerate(self) -> bool:
        """Run the pipeline and store its artifacts; ``False`` means nothing changed."""

        result = self._pipeline.run(self.pipeline_inputs())
        if result is None:
            return False

        outputs = self._context.outputs
        outputs.replace_all(
            FileTab(name=artifact.name, content=artifact.content, index=artifact.index)
            for artifact in result.artifacts
        )
        self._context.template_context = result.template_context
        active = outputs.active
        if active is not None and self._context.output_surface is not None:
            self._context.output_surface.set_value(active.content)
        self._publish(
            OutputsRegenerated(names=tuple(outputs.names()), active=outputs.active_tab, grouped=result.grouped)
        )
        return True

    async def load_presets(self) -> None:
        """Load the preset catalog now, or wait for the load already in flight."""

        if self._preset_task is not None:
            await self._preset_task.wait()
            return
        await self._load_presets()

    def close(self) -> None:
        """Tear the session down, cancelling a pending catalog load."""

        if self._preset_task is not None:
            self._preset_task.cancel()
        LOGGER.debug("Session closed in mode %s", self._mode.value)

    # ------------------------------------------------------------------
    # Dispatch internals
    # ------------------------------------------------------------------
    def _handle(self, event: SessionEvent) -> bool:
        event_type = type(event)
        handler_name = _ROOT_TRANSITIONS.get(event_type) or _TRANSITIONS[self._mode].get(event_type)
        if handler_name is None:
            LOGGER.debug("Ignoring %s in mode %s", event_type.__name__, self._mode.value)
            return False
        handler: Callable[[SessionEvent], SessionMode | None] = getattr(self, handler_name)
        target = handler(event)
        if target is not None and target is not self._mode:
            self._enter(target)
        return True

    def _enter(self, mode: SessionMode) -> None:
        previous = self._mode
        self._mode = mode
        LOGGER.debug("Session mode %s -> %s", previous.value, mode.value)
        if previous.is_file_form and not mode.is_file_form:
            self._context.file_form = None
        self._publish(ModeChanged(previous=previous.value, current=mode.value))
        if previous is SessionMode.LOADING and mode.is_ready:
            self._start_preset_load()

    def _publish(self, notification: Notification) -> None:
        if self._bus is not None:
            self._bus.publish(notification)

    def _publish_roles(self) -> None:
        selection = self._context.roles.selection
        self._publish(
            RoleSelectionChanged(
                document=selection.document,
                template=selection.template,
                formatter_config=selection.formatter_config,
            )
        )

    def _push_active_input(self) -> None:
        active = self._context.inputs.active
        if active is not None and self._context.input_surface is not None:
            self._context.input_surface.set_value(active.content)

    # ------------------------------------------------------------------
    # Preset catalog
    # ------------------------------------------------------------------
    def _start_preset_load(self) -> None:
        if self._catalog_loader is None or self._preset_task is not None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running event loop; call load_presets() to fetch the catalog")
            return
        self._preset_task = PresetLoadTask(loop.create_task(self._load_presets()))

    async def _load_presets(self) -> None:
        if self._catalog_loader is None:
            return
        try:
            templates = await self._catalog_loader.fetch_all()
        except Exception as exc:
            LOGGER.warning("Preset catalog load failed: %s", exc)
            return
        self.dispatch(PresetTemplatesLoaded(templates=templates))

    # ------------------------------------------------------------------
    # Root handlers
    # ------------------------------------------------------------------
    def _on_resize(self, event: Resize) -> None:
        surface = self._context.output_surface
        if surface is None:
            return None
        current = surface.get_layout_info()
        surface.layout(LayoutInfo(width=event.container_size - event.dragged_size, height=current.height))
        return None

    def _on_preset_templates_loaded(self, event: PresetTemplatesLoaded) -> None:
        self._context.preset_templates = {**self._context.preset_templates, **event.templates}
        LOGGER.debug("Preset catalog merged: %s", sorted(self._context.preset_templates))
        return None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def _on_editor_loaded(self, event: EditorLoaded) -> SessionMode | None:
        if event.side == "input":
            self._context.input_surface = event.surface
            self._push_active_input()
        else:
            self._context.output_surface = event.surface
        if self._context.input_surface is None or self._context.output_surface is None:
            return None
        self.regenerate()
        return SessionMode.PLAYING

    # ------------------------------------------------------------------
    # Playing
    # ------------------------------------------------------------------
    def _on_update_input(self, event: UpdateInput) -> None:
        inputs = self._context.inputs
        active = inputs.active
        if active is None:
            return None
        first_input = not active.content.strip() and bool(event.value)
        updated = inputs.update(inputs.active_index, content=event.value)
        if first_input and self._context.roles.on_first_input(updated):
            self._publish_roles()
        self.regenerate()
        return None

    def _on_select_input_tab(self, event: SelectInputTab) -> None:
        inputs = self._context.inputs
        tab = inputs.find(event.name)
        if tab is None or not inputs.select(event.name):
            return None
        self._push_active_input()
        if self._context.roles.on_selected(tab) is not None:
            self._publish_roles()
            self.regenerate()
        return None

    def _on_select_output_tab(self, event: SelectOutputTab) -> None:
        outputs = self._context.outputs
        if outputs.select(event.name) and self._context.output_surface is not None:
            active = outputs.active
            if active is not None:
                self._context.output_surface.set_value(active.content)
        return None

    def _on_select_preset_template(self, event: SelectPresetTemplate) -> None:
        preset = event.template
        context = self._context
        context.roles.claim(Role.TEMPLATE, preset.value)

        content = context.preset_templates.get(preset.template)
        if content:
            for tab in context.inputs:
                if tab.preset and context.roles.conventions.matches(Role.TEMPLATE, tab.name):
                    context.inputs.update(tab.index, content=content, preset=preset.value)
                    if tab.index == context.inputs.active_index:
                        self._push_active_input()
                    break

        context.options.apply_overrides(preset.options)
        self._publish_roles()
        self.regenerate()
        return None

    def _on_open_options(self, event: OpenOptions) -> SessionMode:
        return SessionMode.EDITING_OPTIONS

    def _on_open_editor_settings(self, event: OpenEditorSettings) -> SessionMode:
        return SessionMode.EDITING_EDITOR_SETTINGS

    def _on_add_file(self, event: AddFile) -> SessionMode:
        self._context.file_form = FileFormDraft(index=len(self._context.inputs))
        return SessionMode.CREATING_FILE_TAB

    def _on_edit_file(self, event: EditFile) -> SessionMode | None:
        tab = self._context.inputs.find(event.name)
        if tab is None:
            LOGGER.debug("Edit requested for unknown tab %s", event.name)
            return None
        self._context.file_form = FileFormDraft.from_tab(tab)
        return SessionMode.EDITING_FILE_TAB

    def _on_remove_file(self, event: RemoveFile) -> None:
        inputs = self._context.inputs
        position = inputs.index_of(event.name)
        if position == -1:
            return None
        if len(inputs) == 1:
            LOGGER.warning("Refusing to remove %s: it is the last input tab", event.name)
            return None
        previous_active = inputs.active_tab
        removed = inputs.remove(position)
        if inputs.active_tab != previous_active:
            self._push_active_input()
        if self._context.roles.on_removed(removed, inputs):
            self._publish_roles()
        self.regenerate()
        return None

    # ------------------------------------------------------------------
    # Editing options
    # ------------------------------------------------------------------
    def _on_update_preview_options(self, event: UpdatePreviewOptions) -> None:
        self._context.options.update_draft(event.options)
        return None

    def _on_reset_preview_options(self, event: ResetPreviewOptions) -> None:
        self._context.options.reset_draft()
        return None

    def _on_save_options(self, event: SaveOptions) -> SessionMode:
        self._context.options.commit(event.options)
        self.regenerate()
        return SessionMode.PLAYING

    def _on_close_options(self, event: CloseOptions) -> SessionMode:
        self._context.options.discard_draft()
        return SessionMode.PLAYING

    # ------------------------------------------------------------------
    # Editing editor settings
    # ------------------------------------------------------------------
    def _on_update_editor_settings(self, event: UpdateEditorSettings) -> None:
        LOGGER.debug("Editor settings are not applied yet: %s", sorted(event.settings))
        return None

    def _on_close_editor_settings(self, event: CloseModal) -> SessionMode:
        return SessionMode.PLAYING

    # ------------------------------------------------------------------
    # File form
    # ------------------------------------------------------------------
    def _on_submit_edited_file(self, event: SubmitFileModal) -> SessionMode:
        draft = self._context.file_form
        if draft is None or not 0 <= draft.index < len(self._context.inputs):
            LOGGER.warning("File form submitted without a valid draft; discarding")
            return SessionMode.PLAYING
        previous = self._context.inputs[draft.index]
        updated = self._context.inputs.update(
            draft.index,
            name=event.name,
            content=event.content,
            preset=event.preset if event.preset is not None else previous.preset,
        )
        return self._finish_file_form(updated, previous_name=previous.name)

    def _on_submit_new_file(self, event: SubmitFileModal) -> SessionMode:
        added = self._context.inputs.add(event.as_tab(len(self._context.inputs)))
        return self._finish_file_form(added, previous_name=None)

    def _finish_file_form(self, tab: FileTab, *, previous_name: str | None) -> SessionMode:
        context = self._context
        context.inputs.select(tab.name)
        self._push_active_input()
        if context.roles.on_submitted(tab, context.inputs, previous_name=previous_name):
            self._publish_roles()
        self.regenerate()
        return SessionMode.PLAYING

    def _on_close_file_form(self, event: CloseModal) -> SessionMode:
        return SessionMode.PLAYING
