"""Committed and draft generation options."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Mapping

__all__ = ["DEFAULT_OPTIONS", "GROUP_STRATEGIES", "OptionsManager"]

LOGGER = logging.getLogger(__name__)

GROUP_STRATEGIES: tuple[str, ...] = ("none", "tag", "method", "tag-file", "method-file")

DEFAULT_OPTIONS: Mapping[str, Any] = MappingProxyType(
    {
        "group_strategy": "none",
        "api_client_name": "api",
        "base_url": "",
        "with_alias": False,
        "with_description": False,
        "with_default_values": True,
        "export_all_named_schemas": False,
        "strict_objects": False,
    }
)


class OptionsManager:
    """Holds the options used for generation and an independently edited draft.

    The draft is what an options form edits; it only reaches generation
    through :meth:`commit`. ``form_key`` changes whenever the draft is reset so
    a stateful form can be remounted.
    """

    def __init__(
        self,
        defaults: Mapping[str, Any] | None = None,
        committed: Mapping[str, Any] | None = None,
    ) -> None:
        self._defaults = dict(DEFAULT_OPTIONS if defaults is None else defaults)
        self._committed = dict(self._defaults if committed is None else committed)
        self._draft = dict(self._committed)
        self._form_key = 0

    @property
    def defaults(self) -> dict[str, Any]:
        return dict(self._defaults)

    @property
    def committed(self) -> dict[str, Any]:
        return dict(self._committed)

    @property
    def draft(self) -> dict[str, Any]:
        return dict(self._draft)

    @property
    def form_key(self) -> int:
        return self._form_key

    def update_draft(self, options: Mapping[str, Any]) -> None:
        self._draft = dict(options)

    def reset_draft(self) -> None:
        self._draft = dict(self._defaults)
        self._form_key += 1
        LOGGER.debug("Draft options reset to defaults (form_key=%d)", self._form_key)

    def discard_draft(self) -> None:
        self._draft = dict(self._committed)

    def commit(self, options: Mapping[str, Any]) -> None:
        self._committed = dict(options)
        self._draft = dict(options)
        LOGGER.debug("Committed options: %s", sorted(self._committed))

    def apply_overrides(self, overrides: Mapping[str, Any]) -> bool:
        """Merge ``overrides`` into the committed options (and the draft with them)."""

        if not overrides:
            return False
        self.commit({**self._committed, **overrides})
        return True
