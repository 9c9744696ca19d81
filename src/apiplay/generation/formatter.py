"""Best-effort output formatting."""

from __future__ import annotations

import re
from typing import Any, Mapping, Protocol

__all__ = ["Formatter", "TextFormatter"]

_LINE_ENDINGS = {"lf": "\n", "crlf": "\r\n", "cr": "\r"}
_BLANK_RUN = re.compile(r"\n{3,}")


class Formatter(Protocol):
    def format(self, text: str, config: Mapping[str, Any]) -> str:  # pragma: no cover - protocol
        ...


class TextFormatter:
    """Whitespace normaliser honouring a subset of prettier's options.

    Supported keys: ``tabWidth`` (default 2), ``useTabs``, ``endOfLine`` and
    ``insertFinalNewline`` (default true). Indentation is converted between
    tabs and spaces, trailing whitespace is dropped and runs of blank lines
    collapse into one.
    """

    def format(self, text: str, config: Mapping[str, Any]) -> str:
        tab_width = int(config.get("tabWidth", 2))
        if tab_width < 1:
            raise ValueError(f"tabWidth must be positive, got {tab_width}")
        use_tabs = bool(config.get("useTabs", False))
        ending = _LINE_ENDINGS.get(str(config.get("endOfLine", "lf")), "\n")

        normalized = text.replace("\r\n", "\n").replace("\r", "\n")
        lines = [self._reindent(line.rstrip(), tab_width, use_tabs) for line in normalized.split("\n")]
        body = _BLANK_RUN.sub("\n\n", "\n".join(lines)).strip("\n")
        if config.get("insertFinalNewline", True) and body:
            body += "\n"
        return body.replace("\n", ending)

    @staticmethod
    def _reindent(line: str, tab_width: int, use_tabs: bool) -> str:
        stripped = line.lstrip(" \t")
        if not stripped:
            return ""
        indent = line[: len(line) - len(stripped)].expandtabs(tab_width)
        if use_tabs:
            tabs, spaces = divmod(len(indent), tab_width)
            return "\t" * tabs + " " * spaces + stripped
        return indent + stripped
