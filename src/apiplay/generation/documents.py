"""Parsing helpers for the document and formatter-config tabs.

Both parsers are forgiving: malformed input is reported as ``None`` (or an
empty config) instead of raising, because tabs are routinely invalid while
the user is typing.
"""

from __future__ import annotations

import json
import logging
from json import JSONDecodeError
from typing import Any

import jsonschema
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

__all__ = ["parse_document", "parse_formatter_config", "FORMATTER_CONFIG_SCHEMA"]

LOGGER = logging.getLogger(__name__)

FORMATTER_CONFIG_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "printWidth": {"type": "integer", "minimum": 1},
        "tabWidth": {"type": "integer", "minimum": 1, "maximum": 16},
        "useTabs": {"type": "boolean"},
        "endOfLine": {"enum": ["lf", "crlf", "cr", "auto"]},
        "insertFinalNewline": {"type": "boolean"},
    },
}


def parse_document(text: str) -> Any | None:
    """Parse document text as JSON when it starts with ``{``, else as YAML.

    Returns ``None`` for empty input and for anything that fails to parse.
    """

    if not text or not text.strip():
        return None
    if text.startswith("{"):
        try:
            return json.loads(text)
        except JSONDecodeError as exc:
            LOGGER.debug("Document is not valid JSON (line %s): %s", exc.lineno, exc.msg)
            return None
        except RecursionError:
            LOGGER.debug("Document JSON is nested too deeply to parse")
            return None

    parser = _create_yaml_parser()
    try:
        return parser.load(text)
    except (YAMLError, ValueError) as exc:
        LOGGER.debug("Document is not valid YAML: %s", exc)
        return None
    except RecursionError:
        LOGGER.debug("Document YAML is nested too deeply to parse")
        return None


def parse_formatter_config(text: str | None) -> dict[str, Any]:
    """Parse a formatter config, degrading to ``{}`` when absent or invalid."""

    raw = (text or "").strip()
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except JSONDecodeError as exc:
        LOGGER.debug("Formatter config is not valid JSON: %s", exc.msg)
        return {}
    except RecursionError:
        LOGGER.debug("Formatter config is nested too deeply to parse")
        return {}
    if not isinstance(parsed, dict):
        return {}

    validator = jsonschema.Draft202012Validator(FORMATTER_CONFIG_SCHEMA)
    issue = jsonschema.exceptions.best_match(validator.iter_errors(parsed))
    if issue is not None:
        LOGGER.debug("Formatter config rejected: %s", issue.message)
        return {}
    return parsed


def _create_yaml_parser() -> YAML:
    parser = YAML(typ="safe", pure=True)
    parser.allow_duplicate_keys = False
    return parser
