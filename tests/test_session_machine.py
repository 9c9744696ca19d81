"""Behavioural tests for :class:`apiplay.session.machine.SessionStateMachine`."""

from __future__ import annotations

import asyncio
import logging

import pytest

from apiplay.editor.surface import BufferSurface, LayoutInfo
from apiplay.editor.tabs import DuplicateNameError, FileTab
from apiplay.events import EventBus, ModeChanged, OutputsRegenerated, RoleSelectionChanged
from apiplay.presets.bundled import BUNDLED_TEMPLATES, DEFAULT_DOCUMENT, find_preset
from apiplay.services.settings import PlaygroundSettings
from apiplay.session.bootstrap import create_session
from apiplay.session.events import (
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
    SubmitFileModal,
    UpdateEditorSettings,
    UpdateInput,
    UpdatePreviewOptions,
)
from apiplay.session.machine import SessionStateMachine
from apiplay.session.options import DEFAULT_OPTIONS
from apiplay.session.state import SessionMode
from tests.helpers import Recorder, StubCatalogLoader

PING_DOCUMENT = (
    '{"openapi": "3.0.0", "info": {"title": "ping", "version": "1"}, '
    '"paths": {"/ping": {"get": {"operationId": "ping", "responses": {"200": {"description": "ok"}}}}}}'
)


def _attach(session: SessionStateMachine) -> tuple[BufferSurface, BufferSurface]:
    input_surface = BufferSurface(name="input")
    output_surface = BufferSurface(name="output")
    session.dispatch(EditorLoaded(surface=input_surface, side="input"))
    session.dispatch(EditorLoaded(surface=output_surface, side="output"))
    return input_surface, output_surface


def _output_names(session: SessionStateMachine) -> list[str]:
    return session.context.outputs.names()


class TestLoading:
    def test_starts_in_loading_with_seeded_roles(self, session: SessionStateMachine) -> None:
        assert session.mode is SessionMode.LOADING
        assert session.context.inputs.names() == ["api.doc.yaml", "template.hbs", ".prettierrc.json"]
        assert session.context.roles.selection.as_dict() == {
            "document": "api.doc.yaml",
            "template": "template.hbs",
            "formatter_config": ".prettierrc.json",
        }
        assert _output_names(session) == ["api.client.ts"]
        assert session.context.outputs[0].content == ""

    def test_waits_for_both_surfaces(self, session: SessionStateMachine) -> None:
        input_surface = BufferSurface(name="input")

        session.dispatch(EditorLoaded(surface=input_surface, side="input"))

        assert session.mode is SessionMode.LOADING
        assert input_surface.value == DEFAULT_DOCUMENT

    def test_either_order_reaches_playing_and_generates(self, session: SessionStateMachine) -> None:
        output_surface = BufferSurface(name="output")
        session.dispatch(EditorLoaded(surface=output_surface, side="output"))
        assert session.mode is SessionMode.LOADING

        session.dispatch(EditorLoaded(surface=BufferSurface(name="input"), side="input"))

        assert session.mode is SessionMode.PLAYING
        assert "export function createApiClient" in output_surface.value
        assert session.context.outputs[0].content == output_surface.value

    def test_playing_events_are_ignored_while_loading(self, session: SessionStateMachine) -> None:
        assert session.accepts(UpdateInput) is False
        assert session.dispatch(UpdateInput(value="x")) is False
        assert session.context.inputs[0].content == DEFAULT_DOCUMENT

    def test_notifications_on_entering_ready(self, session: SessionStateMachine, bus: EventBus) -> None:
        recorder = Recorder(bus, ModeChanged, OutputsRegenerated)

        _attach(session)

        assert recorder.of(ModeChanged) == [ModeChanged(previous="loading", current="ready.playing")]
        assert recorder.of(OutputsRegenerated) == [
            OutputsRegenerated(names=("api.client.ts",), active="api.client.ts", grouped=False)
        ]


def test_seeded_minimal_session_generates_a_single_artifact(settings: PlaygroundSettings) -> None:
    session = create_session(
        settings,
        input_tabs=[
            FileTab(name="api.json", content=PING_DOCUMENT),
            FileTab(name="client.hbs", content="{{ endpoints }}"),
            FileTab(name=".prettierrc.json", content="{}"),
        ],
        catalog_loader=StubCatalogLoader(),  # type: ignore[arg-type]
    )

    _attach(session)

    outputs = session.context.outputs.tabs
    assert [tab.name for tab in outputs] == ["api.client.ts"]
    assert "/ping" in outputs[0].content


class TestResize:
    def test_resize_before_output_surface_is_a_no_op(self, session: SessionStateMachine) -> None:
        assert session.dispatch(Resize(container_size=1000, dragged_size=400)) is True

    def test_resize_lays_out_the_output_surface(self, ready_session: SessionStateMachine) -> None:
        surface = ready_session.context.output_surface
        assert isinstance(surface, BufferSurface)
        surface.dimensions = LayoutInfo(width=0, height=300)

        ready_session.dispatch(Resize(container_size=1000, dragged_size=400))

        assert surface.dimensions == LayoutInfo(width=600, height=300)

    def test_resize_is_accepted_in_every_mode(self, ready_session: SessionStateMachine) -> None:
        ready_session.dispatch(OpenOptions())

        assert ready_session.dispatch(Resize(container_size=800, dragged_size=300)) is True
        assert ready_session.context.output_surface.get_layout_info().width == 500  # type: ignore[union-attr]


class TestEditing:
    def test_content_edit_regenerates(self, ready_session: SessionStateMachine, output_surface: BufferSurface) -> None:
        ready_session.dispatch(UpdateInput(value=PING_DOCUMENT))

        assert ready_session.context.inputs[0].content == PING_DOCUMENT
        assert 'path: "/ping",' in output_surface.value
        assert 'path: "/pets",' not in output_surface.value

    def test_malformed_edit_keeps_previous_output(
        self, ready_session: SessionStateMachine, output_surface: BufferSurface
    ) -> None:
        before = ready_session.context.outputs.tabs
        shown = output_surface.value

        ready_session.dispatch(UpdateInput(value="openapi: [unterminated"))

        assert ready_session.context.outputs.tabs == before
        assert output_surface.value == shown

    @pytest.mark.parametrize(
        "document",
        [
            '{"openapi": "3.0.0", "paths": {}, "x": ' + "[" * 100_000 + "]" * 100_000 + "}",
            "openapi: 3.0.0\nx: " + "[" * 5_000 + "]" * 5_000 + "\n",
        ],
        ids=["json", "yaml"],
    )
    def test_deeply_nested_edit_keeps_previous_output(
        self, ready_session: SessionStateMachine, output_surface: BufferSurface, document: str
    ) -> None:
        before = ready_session.context.outputs.tabs
        shown = output_surface.value

        assert ready_session.dispatch(UpdateInput(value=document)) is True
        assert ready_session.context.outputs.tabs == before
        assert output_surface.value == shown

        ready_session.dispatch(OpenOptions())
        ready_session.dispatch(SaveOptions(options={**DEFAULT_OPTIONS, "api_client_name": "petApi"}))

        assert ready_session.mode is SessionMode.PLAYING
        assert ready_session.context.options.committed["api_client_name"] == "petApi"
        assert ready_session.context.outputs.tabs == before

    def test_first_keystroke_claims_role(self, ready_session: SessionStateMachine) -> None:
        ready_session.dispatch(AddFile())
        ready_session.dispatch(SubmitFileModal(name="second.yaml", content=""))
        assert ready_session.context.roles.selection.document == "api.doc.yaml"

        ready_session.dispatch(UpdateInput(value=PING_DOCUMENT))

        assert ready_session.context.roles.selection.document == "second.yaml"
        assert "/ping" in ready_session.context.outputs[0].content

    def test_template_context_is_retained(self, ready_session: SessionStateMachine) -> None:
        context = ready_session.context.template_context

        assert context is not None
        assert "Pet" in context.schemas


class TestSelection:
    def test_selecting_an_input_tab_pushes_its_content(
        self, ready_session: SessionStateMachine, input_surface: BufferSurface
    ) -> None:
        ready_session.dispatch(SelectInputTab(name="template.hbs"))

        assert ready_session.context.inputs.active_tab == "template.hbs"
        assert input_surface.value == ready_session.context.inputs[1].content

    def test_selecting_an_unknown_tab_changes_nothing(self, ready_session: SessionStateMachine) -> None:
        ready_session.dispatch(SelectInputTab(name="missing.yaml"))

        assert ready_session.context.inputs.active_tab == "api.doc.yaml"

    def test_selecting_another_document_repoints_the_role(
        self, ready_session: SessionStateMachine, bus: EventBus
    ) -> None:
        ready_session.dispatch(AddFile())
        ready_session.dispatch(SubmitFileModal(name="ping.json", content=PING_DOCUMENT))
        assert ready_session.context.roles.selection.document == "ping.json"
        recorder = Recorder(bus, RoleSelectionChanged, OutputsRegenerated)

        ready_session.dispatch(SelectInputTab(name="api.doc.yaml"))

        assert ready_session.context.roles.selection.document == "api.doc.yaml"
        assert recorder.of(RoleSelectionChanged)[-1].document == "api.doc.yaml"
        assert len(recorder.of(OutputsRegenerated)) == 1
        assert "/pets" in ready_session.context.outputs[0].content

    def test_selecting_the_current_holder_does_not_regenerate(
        self, ready_session: SessionStateMachine, bus: EventBus
    ) -> None:
        recorder = Recorder(bus, OutputsRegenerated)

        ready_session.dispatch(SelectInputTab(name="template.hbs"))

        assert recorder.received == []

    def test_selecting_an_output_tab(self, ready_session: SessionStateMachine, output_surface: BufferSurface) -> None:
        ready_session.dispatch(OpenOptions())
        ready_session.dispatch(SaveOptions(options={**DEFAULT_OPTIONS, "group_strategy": "tag-file"}))
        assert _output_names(ready_session) == ["index.ts", "common.ts", "pets.ts", "store.ts"]
        assert ready_session.context.outputs.active_tab == "index.ts"

        ready_session.dispatch(SelectOutputTab(name="store.ts"))

        assert ready_session.context.outputs.active_tab == "store.ts"
        assert output_surface.value == ready_session.context.outputs[3].content


class TestPresets:
    def test_selecting_the_grouped_preset(self, ready_session: SessionStateMachine, bus: EventBus) -> None:
        recorder = Recorder(bus, RoleSelectionChanged)
        preset = find_preset("grouped")
        assert preset is not None

        ready_session.dispatch(SelectPresetTemplate(template=preset))

        context = ready_session.context
        assert context.roles.selection.template == "grouped"
        assert context.inputs[1].content == BUNDLED_TEMPLATES["template-grouped"]
        assert context.inputs[1].preset == "grouped"
        assert context.options.committed["group_strategy"] == "tag-file"
        assert context.options.draft["group_strategy"] == "tag-file"
        assert _output_names(ready_session) == ["index.ts", "common.ts", "pets.ts", "store.ts"]
        assert recorder.of(RoleSelectionChanged)[-1].template == "grouped"

    def test_preset_without_catalog_keeps_tab_content(self, session: SessionStateMachine) -> None:
        _attach(session)
        original = session.context.inputs[1].content
        preset = find_preset("types-only")
        assert preset is not None

        session.dispatch(SelectPresetTemplate(template=preset))

        assert session.context.roles.selection.template == "types-only"
        assert session.context.inputs[1].content == original

    def test_catalog_merge_does_not_regenerate(self, session: SessionStateMachine, bus: EventBus) -> None:
        _attach(session)
        recorder = Recorder(bus, OutputsRegenerated)

        session.dispatch(PresetTemplatesLoaded(templates={"extra": "{{ 1 }}"}))

        assert session.context.preset_templates == {"extra": "{{ 1 }}"}
        assert recorder.received == []


class TestOptionsMode:
    def test_save_commits_and_regenerates(self, ready_session: SessionStateMachine) -> None:
        ready_session.dispatch(OpenOptions())
        assert ready_session.mode is SessionMode.EDITING_OPTIONS
        assert ready_session.dispatch(UpdateInput(value="ignored")) is False

        ready_session.dispatch(SaveOptions(options={**DEFAULT_OPTIONS, "api_client_name": "petApi"}))

        assert ready_session.mode is SessionMode.PLAYING
        assert ready_session.context.options.committed["api_client_name"] == "petApi"
        assert "export const petApi = new Zodios(endpoints);" in ready_session.context.outputs[0].content

    def test_close_discards_draft_without_regenerating(
        self, ready_session: SessionStateMachine, bus: EventBus
    ) -> None:
        recorder = Recorder(bus, OutputsRegenerated)
        ready_session.dispatch(OpenOptions())
        ready_session.dispatch(UpdatePreviewOptions(options={**DEFAULT_OPTIONS, "with_alias": True}))
        assert ready_session.context.options.draft["with_alias"] is True

        ready_session.dispatch(CloseOptions())

        assert ready_session.mode is SessionMode.PLAYING
        assert ready_session.context.options.draft == ready_session.context.options.committed
        assert recorder.received == []

    def test_reset_stays_in_options(self, ready_session: SessionStateMachine) -> None:
        ready_session.dispatch(OpenOptions())
        ready_session.dispatch(UpdatePreviewOptions(options={"base_url": "http://x"}))

        ready_session.dispatch(ResetPreviewOptions())

        assert ready_session.mode is SessionMode.EDITING_OPTIONS
        assert ready_session.context.options.draft == dict(DEFAULT_OPTIONS)
        assert ready_session.context.options.form_key == 1


def test_editor_settings_mode(ready_session: SessionStateMachine) -> None:
    ready_session.dispatch(OpenEditorSettings())
    assert ready_session.mode is SessionMode.EDITING_EDITOR_SETTINGS

    assert ready_session.dispatch(UpdateEditorSettings(settings={"fontSize": 14})) is True
    assert ready_session.mode is SessionMode.EDITING_EDITOR_SETTINGS

    ready_session.dispatch(CloseModal())
    assert ready_session.mode is SessionMode.PLAYING


@pytest.mark.parametrize(
    ("mode", "expected"),
    [
        (SessionMode.LOADING, False),
        (SessionMode.PLAYING, False),
        (SessionMode.EDITING_OPTIONS, False),
        (SessionMode.EDITING_FILE_TAB, True),
        (SessionMode.CREATING_FILE_TAB, True),
    ],
)
def test_file_form_modes(mode: SessionMode, expected: bool) -> None:
    assert mode.is_file_form is expected


class TestFileForm:
    def test_create_appends_selects_and_claims(
        self, ready_session: SessionStateMachine, input_surface: BufferSurface
    ) -> None:
        ready_session.dispatch(AddFile())
        assert ready_session.mode is SessionMode.CREATING_FILE_TAB
        assert ready_session.context.file_form is not None
        assert ready_session.context.file_form.index == 3

        ready_session.dispatch(SubmitFileModal(name="other.json", content=PING_DOCUMENT))

        context = ready_session.context
        assert ready_session.mode is SessionMode.PLAYING
        assert context.file_form is None
        assert context.inputs.names()[-1] == "other.json"
        assert context.inputs.active_tab == "other.json"
        assert input_surface.value == PING_DOCUMENT
        assert context.roles.selection.document == "other.json"
        assert "/ping" in context.outputs[0].content

    def test_duplicate_name_keeps_the_form_open(self, ready_session: SessionStateMachine) -> None:
        ready_session.dispatch(AddFile())

        with pytest.raises(DuplicateNameError):
            ready_session.dispatch(SubmitFileModal(name="template.hbs", content="x"))

        assert ready_session.mode is SessionMode.CREATING_FILE_TAB
        assert len(ready_session.context.inputs) == 3
        assert ready_session.context.file_form is not None

        ready_session.dispatch(CloseModal())
        assert ready_session.mode is SessionMode.PLAYING
        assert ready_session.context.file_form is None

    def test_rename_document_keeps_role_and_output(self, ready_session: SessionStateMachine) -> None:
        before = ready_session.context.outputs[0].content

        ready_session.dispatch(EditFile(name="api.doc.yaml"))
        assert ready_session.mode is SessionMode.EDITING_FILE_TAB
        ready_session.dispatch(SubmitFileModal(name="other.json", content=DEFAULT_DOCUMENT))

        context = ready_session.context
        assert context.inputs.names() == ["other.json", "template.hbs", ".prettierrc.json"]
        assert context.inputs[0].preset == "petstore.yaml"
        assert context.roles.selection.document == "other.json"
        assert context.outputs[0].content == before

    def test_rename_to_an_existing_name_is_rejected(self, ready_session: SessionStateMachine) -> None:
        ready_session.dispatch(EditFile(name="template.hbs"))

        with pytest.raises(DuplicateNameError):
            ready_session.dispatch(SubmitFileModal(name="api.doc.yaml", content="x"))

        assert ready_session.mode is SessionMode.EDITING_FILE_TAB
        assert ready_session.context.inputs.names() == ["api.doc.yaml", "template.hbs", ".prettierrc.json"]

    def test_close_discards_the_draft(self, ready_session: SessionStateMachine) -> None:
        ready_session.dispatch(EditFile(name="template.hbs"))
        assert ready_session.context.file_form is not None
        assert ready_session.context.file_form.name == "template.hbs"

        ready_session.dispatch(CloseModal())

        assert ready_session.mode is SessionMode.PLAYING
        assert ready_session.context.file_form is None
        assert ready_session.context.inputs[1].name == "template.hbs"

    def test_edit_unknown_tab_stays_playing(self, ready_session: SessionStateMachine) -> None:
        assert ready_session.dispatch(EditFile(name="missing.hbs")) is True
        assert ready_session.mode is SessionMode.PLAYING
        assert ready_session.context.file_form is None


class TestRemoveFile:
    def test_removing_the_only_template_keeps_previous_output(self, ready_session: SessionStateMachine) -> None:
        before = ready_session.context.outputs.tabs

        ready_session.dispatch(RemoveFile(name="template.hbs"))

        assert ready_session.context.roles.selection.template == ""
        assert ready_session.context.outputs.tabs == before

        ready_session.dispatch(UpdateInput(value=PING_DOCUMENT))
        assert ready_session.context.outputs.tabs == before

    def test_removing_the_active_tab_pushes_its_successor(
        self, ready_session: SessionStateMachine, input_surface: BufferSurface
    ) -> None:
        ready_session.dispatch(RemoveFile(name="api.doc.yaml"))

        context = ready_session.context
        assert context.inputs.names() == ["template.hbs", ".prettierrc.json"]
        assert [tab.index for tab in context.inputs] == [0, 1]
        assert context.inputs.active_tab == "template.hbs"
        assert input_surface.value == context.inputs[0].content
        assert context.roles.selection.document == ""

    def test_removing_a_holder_hands_the_role_on(self, ready_session: SessionStateMachine) -> None:
        ready_session.dispatch(AddFile())
        ready_session.dispatch(SubmitFileModal(name="ping.json", content=PING_DOCUMENT))
        ready_session.dispatch(SelectInputTab(name="api.doc.yaml"))

        ready_session.dispatch(RemoveFile(name="api.doc.yaml"))

        assert ready_session.context.roles.selection.document == "ping.json"
        assert "/ping" in ready_session.context.outputs[0].content

    def test_last_input_tab_cannot_be_removed(self, settings: PlaygroundSettings) -> None:
        session = create_session(
            settings,
            input_tabs=[FileTab(name="api.json", content=PING_DOCUMENT)],
            catalog_loader=StubCatalogLoader(),  # type: ignore[arg-type]
        )
        _attach(session)

        session.dispatch(RemoveFile(name="api.json"))

        assert session.context.inputs.names() == ["api.json"]


class _EchoSurface(BufferSurface):
    """Surface that reports every value it is given back as a content edit."""

    session: SessionStateMachine | None = None
    nested_results: list[bool] = []

    def set_value(self, text: str) -> None:
        super().set_value(text)
        if self.session is not None and not text.endswith("{# echoed #}"):
            self.nested_results.append(self.session.dispatch(UpdateInput(value=text + "{# echoed #}")))


def test_events_dispatched_during_handling_are_queued(session: SessionStateMachine) -> None:
    surface = _EchoSurface(name="input")
    surface.nested_results = []
    session.dispatch(EditorLoaded(surface=BufferSurface(name="output"), side="output"))
    session.dispatch(EditorLoaded(surface=surface, side="input"))
    surface.session = session

    session.dispatch(SelectInputTab(name="template.hbs"))

    assert surface.nested_results == [True]
    assert session.context.inputs.active_tab == "template.hbs"
    assert session.context.inputs[1].content.endswith("{# echoed #}")


class TestPresetCatalogLoad:
    @pytest.mark.asyncio
    async def test_catalog_loads_once_on_entering_ready(self, settings: PlaygroundSettings) -> None:
        loader = StubCatalogLoader()
        session = create_session(settings, catalog_loader=loader)  # type: ignore[arg-type]

        _attach(session)
        assert session.preset_task is not None
        await session.load_presets()
        await session.load_presets()

        assert loader.calls == 1
        assert session.context.preset_templates == dict(BUNDLED_TEMPLATES)

    @pytest.mark.asyncio
    async def test_catalog_failure_is_logged(
        self, settings: PlaygroundSettings, caplog: pytest.LogCaptureFixture
    ) -> None:
        loader = StubCatalogLoader(error=RuntimeError("offline"))
        session = create_session(settings, catalog_loader=loader)  # type: ignore[arg-type]

        with caplog.at_level(logging.WARNING, logger="apiplay.session.machine"):
            _attach(session)
            await session.load_presets()

        assert session.context.preset_templates == {}
        assert "Preset catalog load failed" in caplog.text

    @pytest.mark.asyncio
    async def test_close_cancels_pending_load(self, settings: PlaygroundSettings) -> None:
        release = asyncio.Event()

        class _SlowLoader:
            async def fetch_all(self) -> dict[str, str]:
                await release.wait()
                return {"late": "x"}

        session = create_session(settings, catalog_loader=_SlowLoader())  # type: ignore[arg-type]
        _attach(session)

        session.close()
        await session.load_presets()

        assert session.preset_task is not None and session.preset_task.done()
        assert session.context.preset_templates == {}

    def test_no_load_without_running_loop(self, ready_session: SessionStateMachine) -> None:
        assert ready_session.preset_task is None
