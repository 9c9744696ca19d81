"""Ordered tab lists backing the input and output sides of a session."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Iterator

__all__ = ["FileTab", "FileFormDraft", "TabList", "DuplicateNameError"]

LOGGER = logging.getLogger(__name__)

_UNSET = object()


class DuplicateNameError(ValueError):
    """Raised when a tab name is already used by another tab of the same list."""

    def __init__(self, name: str, kind: str = "input") -> None:
        super().__init__(f"A {kind} tab named '{name}' already exists.")
        self.name = name
        self.kind = kind


@dataclass(slots=True)
class FileTab:
    """A named piece of content shown as a tab."""

    name: str
    content: str = ""
    index: int = 0
    preset: str | None = None


@dataclass(slots=True)
class FileFormDraft:
    """Tab being created or edited in the file form, not yet merged into a list."""

    name: str = ""
    content: str = ""
    index: int = -1
    preset: str | None = None

    @classmethod
    def from_tab(cls, tab: FileTab) -> "FileFormDraft":
        return cls(name=tab.name, content=tab.content, index=tab.index, preset=tab.preset)


class TabList:
    """Ordered collection of uniquely named tabs with an active selection.

    Every tab's ``index`` equals its position in the list after any mutation.
    Tabs handed in are copied so the list remains their only owner.
    """

    def __init__(self, tabs: Iterable[FileTab] = (), *, kind: str = "input") -> None:
        self._kind = kind
        self._tabs: list[FileTab] = []
        self._active_index = 0
        for tab in tabs:
            self.add(tab)

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------
    @property
    def kind(self) -> str:
        return self._kind

    @property
    def tabs(self) -> tuple[FileTab, ...]:
        return tuple(self._tabs)

    @property
    def active_index(self) -> int:
        return self._active_index

    @property
    def active_tab(self) -> str:
        """Name of the active tab, or an empty string for an empty list."""

        active = self.active
        return active.name if active is not None else ""

    @property
    def active(self) -> FileTab | None:
        if not self._tabs:
            return None
        return self._tabs[self._active_index]

    def __len__(self) -> int:
        return len(self._tabs)

    def __iter__(self) -> Iterator[FileTab]:
        return iter(tuple(self._tabs))

    def __getitem__(self, index: int) -> FileTab:
        return self._tabs[index]

    def names(self) -> list[str]:
        return [tab.name for tab in self._tabs]

    def index_of(self, name: str) -> int:
        for position, tab in enumerate(self._tabs):
            if tab.name == name:
                return position
        return -1

    def find(self, name: str) -> FileTab | None:
        position = self.index_of(name)
        return self._tabs[position] if position != -1 else None

    def content_of(self, name: str) -> str:
        tab = self.find(name)
        return tab.content if tab is not None else ""

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def add(self, tab: FileTab) -> FileTab:
        """Append ``tab`` and assign it the next index."""

        if self.index_of(tab.name) != -1:
            raise DuplicateNameError(tab.name, self._kind)
        stored = replace(tab, index=len(self._tabs))
        self._tabs.append(stored)
        LOGGER.debug("TabList[%s].add: %s at %d", self._kind, stored.name, stored.index)
        return stored

    def update(
        self,
        index: int,
        *,
        name: str | None = None,
        content: str | None = None,
        preset: str | None | object = _UNSET,
    ) -> FileTab:
        """Patch the tab at ``index`` in place; the index itself never changes."""

        current = self._tabs[index]
        new_name = current.name if name is None else name
        if new_name != current.name:
            clash = self.index_of(new_name)
            if clash != -1 and clash != index:
                raise DuplicateNameError(new_name, self._kind)
        updated = replace(
            current,
            name=new_name,
            content=current.content if content is None else content,
            preset=current.preset if preset is _UNSET else preset,  # type: ignore[arg-type]
            index=index,
        )
        self._tabs[index] = updated
        return updated

    def remove(self, index: int) -> FileTab:
        """Remove the tab at ``index`` and shift the following tabs down by one."""

        removed = self._tabs.pop(index)
        for position in range(index, len(self._tabs)):
            self._tabs[position] = replace(self._tabs[position], index=position)

        if not self._tabs:
            self._active_index = 0
        elif self._active_index == index:
            self._active_index = min(max(index, 0), len(self._tabs) - 1)
        elif self._active_index > index:
            self._active_index -= 1
        LOGGER.debug(
            "TabList[%s].remove: %s, active=%s", self._kind, removed.name, self.active_tab
        )
        return removed

    def select(self, name: str) -> bool:
        """Make the tab called ``name`` active; unknown names are ignored."""

        position = self.index_of(name)
        if position == -1:
            LOGGER.debug("TabList[%s].select: unknown tab %s", self._kind, name)
            return False
        self._active_index = position
        return True

    def replace_all(self, tabs: Iterable[FileTab]) -> None:
        """Swap the whole content of the list and reset the selection to the first tab."""

        incoming = list(tabs)
        seen: set[str] = set()
        for tab in incoming:
            if tab.name in seen:
                raise DuplicateNameError(tab.name, self._kind)
            seen.add(tab.name)
        self._tabs = [replace(tab, index=position) for position, tab in enumerate(incoming)]
        self._active_index = 0
