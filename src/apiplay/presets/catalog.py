"""Preset catalog loading.

The catalog maps template keys to template text. It comes either from the
templates bundled with the package or, when ``preset_base_url`` is set, from
``{preset_base_url}/{key}.hbs`` over HTTP.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Mapping

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..services.settings import PlaygroundSettings
from .bundled import BUNDLED_TEMPLATES

__all__ = ["PresetCatalogLoader"]

LOGGER = logging.getLogger(__name__)


class PresetCatalogLoader:
    """Fetches every known preset template once."""

    def __init__(
        self,
        settings: PlaygroundSettings | None = None,
        *,
        keys: Iterable[str] | None = None,
        client: httpx.AsyncClient | None = None,
        bundled: Mapping[str, str] | None = None,
    ) -> None:
        self._settings = settings or PlaygroundSettings()
        self._bundled = dict(BUNDLED_TEMPLATES if bundled is None else bundled)
        self._keys = tuple(keys) if keys is not None else tuple(self._bundled)
        self._client = client

    @property
    def keys(self) -> tuple[str, ...]:
        return self._keys

    async def fetch_all(self) -> dict[str, str]:
        base_url = (self._settings.preset_base_url or "").rstrip("/")
        if not base_url:
            LOGGER.debug("Using %d bundled preset template(s)", len(self._bundled))
            return {key: self._bundled[key] for key in self._keys if key in self._bundled}

        if self._client is not None:
            return await self._fetch_remote(self._client, base_url)
        async with httpx.AsyncClient(timeout=self._settings.request_timeout) as client:
            return await self._fetch_remote(client, base_url)

    async def _fetch_remote(self, client: httpx.AsyncClient, base_url: str) -> dict[str, str]:
        results = await asyncio.gather(*(self._fetch_one(client, f"{base_url}/{key}.hbs") for key in self._keys))
        catalog = {key: text for key, text in zip(self._keys, results) if text is not None}
        LOGGER.debug("Fetched %d/%d preset template(s) from %s", len(catalog), len(self._keys), base_url)
        return catalog

    async def _fetch_one(self, client: httpx.AsyncClient, url: str) -> str | None:
        async for attempt in self._retrying():
            with attempt:
                response = await client.get(url)
                if response.status_code == 404:
                    LOGGER.warning("Preset template not found: %s", url)
                    return None
                response.raise_for_status()
                return response.text
        return None  # pragma: no cover - AsyncRetrying reraises on exhaustion

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception_type((httpx.TransportError, httpx.HTTPStatusError)),
        )
