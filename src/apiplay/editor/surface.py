"""Editor surface contract consumed by the session, plus a headless implementation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

__all__ = ["LayoutInfo", "EditorSurface", "BufferSurface"]


@dataclass(slots=True)
class LayoutInfo:
    width: int = 0
    height: int = 0


@runtime_checkable
class EditorSurface(Protocol):
    """What the session needs from an editor widget.

    The session only ever writes text and layout requests; it never inspects
    the widget's rendering state.
    """

    def set_value(self, text: str) -> None:  # pragma: no cover - protocol
        ...

    def get_layout_info(self) -> LayoutInfo:  # pragma: no cover - protocol
        ...

    def layout(self, dimensions: LayoutInfo) -> None:  # pragma: no cover - protocol
        ...


@dataclass(slots=True)
class BufferSurface:
    """In-memory surface used by the CLI and the test-suite."""

    name: str = "surface"
    value: str = ""
    dimensions: LayoutInfo = field(default_factory=LayoutInfo)
    history: list[str] = field(default_factory=list)

    def set_value(self, text: str) -> None:
        self.value = text
        self.history.append(text)

    def get_layout_info(self) -> LayoutInfo:
        return LayoutInfo(width=self.dimensions.width, height=self.dimensions.height)

    def layout(self, dimensions: LayoutInfo) -> None:
        self.dimensions = LayoutInfo(width=dimensions.width, height=dimensions.height)
