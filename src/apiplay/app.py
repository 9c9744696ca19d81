"""Command line entry point: run a headless playground session over local files."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .editor.surface import BufferSurface
from .editor.tabs import FileTab
from .events import EventBus, OutputsRegenerated
from .presets.bundled import find_preset, initial_input_tabs
from .services.settings import PlaygroundSettings, SettingsStore
from .session.bootstrap import create_session
from .session.events import EditorLoaded, OpenOptions, SaveOptions, SelectPresetTemplate
from .session.machine import SessionStateMachine
from .session.options import DEFAULT_OPTIONS
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}
_LOGGER = logging.getLogger(__name__)


def configure_logging(debug: bool = False, *, log_dir: str | None = None) -> None:
    """Configure stderr logging for the CLI, plus a log file when ``log_dir`` is set."""

    level = logging.DEBUG if debug else logging.INFO
    log_path = logging_utils.setup_logging(level, log_dir=log_dir)
    if log_path is not None:
        _LOGGER.debug("Writing log file %s", log_path)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> PlaygroundSettings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except (OSError, TypeError, ValueError) as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = PlaygroundSettings()
    return settings


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point invoked by the `apiplay` console script."""

    args = _parse_cli_args(argv)

    debug = args.debug or _env_flag("APIPLAY_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("APIPLAY_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
        option_overrides = _coerce_option_overrides(args.options or [])
    except ValueError as exc:
        print(f"Invalid override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return

    if (settings.debug_logging and not debug) or settings.log_dir:
        configure_logging(debug or settings.debug_logging, log_dir=settings.log_dir)

    if not args.document:
        print("A document path is required.", file=sys.stderr)
        raise SystemExit(2)

    if args.preset and find_preset(args.preset) is None:
        print(f"Unknown preset '{args.preset}'.", file=sys.stderr)
        raise SystemExit(2)

    try:
        tabs = _load_input_tabs(args.document, template=args.template, formatter_config=args.formatter_config)
    except OSError as exc:
        print(f"Cannot read input: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    outputs = asyncio.run(
        run_session(settings, tabs, preset=args.preset, options=option_overrides)
    )
    if outputs is None:
        print("No output generated; check the document and template.", file=sys.stderr)
        raise SystemExit(1)

    if args.output_dir:
        for path in write_outputs(outputs, Path(args.output_dir).expanduser()):
            _LOGGER.info("Wrote %s", path)
        return
    _print_outputs(outputs, sys.stdout)


async def run_session(
    settings: PlaygroundSettings,
    tabs: Sequence[FileTab],
    *,
    preset: str | None = None,
    options: Mapping[str, Any] | None = None,
) -> tuple[FileTab, ...] | None:
    """Drive a headless session to completion and return its output tabs.

    Returns ``None`` when no regeneration produced output.
    """

    bus = EventBus()
    regenerated: list[OutputsRegenerated] = []
    bus.subscribe(OutputsRegenerated, regenerated.append)

    session = create_session(settings, input_tabs=tabs, event_bus=bus)
    with logging_utils.tracking_session_mode(lambda: session.mode.value):
        try:
            await _drive_session(session, preset=preset, options=options)
        finally:
            session.close()

    if not regenerated:
        return None
    return session.context.outputs.tabs


async def _drive_session(
    session: SessionStateMachine,
    *,
    preset: str | None,
    options: Mapping[str, Any] | None,
) -> None:
    session.dispatch(EditorLoaded(surface=BufferSurface(name="input"), side="input"))
    session.dispatch(EditorLoaded(surface=BufferSurface(name="output"), side="output"))
    await session.load_presets()

    if preset:
        selected = find_preset(preset)
        if selected is None:
            raise ValueError(f"Unknown preset '{preset}'.")
        session.dispatch(SelectPresetTemplate(template=selected))

    if options:
        session.dispatch(OpenOptions())
        session.dispatch(SaveOptions(options={**session.context.options.committed, **options}))


def write_outputs(outputs: Sequence[FileTab], directory: Path) -> list[Path]:
    directory.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for tab in outputs:
        target = directory / tab.name
        target.write_text(tab.content, encoding="utf-8")
        written.append(target)
    return written


def _print_outputs(outputs: Sequence[FileTab], stream: TextIO) -> None:
    if len(outputs) == 1:
        stream.write(outputs[0].content)
        return
    for tab in outputs:
        stream.write(f"// ---- {tab.name} ----\n")
        stream.write(tab.content)
        if not tab.content.endswith("\n"):
            stream.write("\n")


def _load_input_tabs(
    document: str,
    *,
    template: str | None = None,
    formatter_config: str | None = None,
) -> list[FileTab]:
    """Build the input tabs from files, falling back to the bundled template and formatter config."""

    defaults = initial_input_tabs()
    document_path = Path(document).expanduser()
    tabs = [FileTab(name=document_path.name, content=document_path.read_text(encoding="utf-8"))]
    for path, fallback in ((template, defaults[1]), (formatter_config, defaults[2])):
        if path:
            resolved = Path(path).expanduser()
            tabs.append(FileTab(name=resolved.name, content=resolved.read_text(encoding="utf-8")))
        else:
            tabs.append(fallback)
    return [
        FileTab(name=tab.name, content=tab.content, index=position, preset=tab.preset)
        for position, tab in enumerate(tabs)
    ]


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="apiplay",
        add_help=True,
        description="Generate an API client from an OpenAPI document and a template.",
    )
    parser.add_argument("document", nargs="?", help="OpenAPI document (YAML or JSON).")
    parser.add_argument("--template", metavar="PATH", help="Template file (.hbs); defaults to the bundled one.")
    parser.add_argument(
        "--formatter-config",
        metavar="PATH",
        help="Formatter config (.prettierrc.json); defaults to the bundled one.",
    )
    parser.add_argument("--preset", metavar="NAME", help="Use a preset template from the catalog.")
    parser.add_argument(
        "--option",
        dest="options",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override a generation option; VALUE is parsed as JSON when possible (repeatable).",
    )
    parser.add_argument("--output-dir", metavar="DIR", help="Write the generated files here instead of stdout.")
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.apiplay/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = PlaygroundSettings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(PlaygroundSettings)
    for entry in items:
        key, raw_value = _split_override(entry)
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value)
    return overrides


def _coerce_option_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for entry in items:
        key, raw_value = _split_override(entry)
        if key not in DEFAULT_OPTIONS:
            raise ValueError(f"Unknown option '{key}'.")
        try:
            overrides[key] = json.loads(raw_value)
        except json.JSONDecodeError:
            overrides[key] = raw_value
    return overrides


def _split_override(entry: str) -> tuple[str, str]:
    if "=" not in entry:
        raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
    key, raw_value = entry.split("=", 1)
    key = key.strip()
    if not key:
        raise ValueError("Override is missing a field name.")
    return key, raw_value.strip()


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if normalized.lower() in {"none", "null"} and _is_optional(annotation):
        return None
    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return args[0]


def _is_optional(annotation: Any) -> bool:
    return type(None) in get_args(annotation)


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: PlaygroundSettings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    metadata = {
        "path": str(store.path),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    json.dump({"settings": asdict(settings), "meta": metadata}, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("APIPLAY_"))
