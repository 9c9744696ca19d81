"""Template engine used to render generated clients."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from jinja2 import Template
from jinja2.sandbox import ImmutableSandboxedEnvironment

__all__ = ["TemplateEngine", "RenderFn", "capitalize"]

LOGGER = logging.getLogger(__name__)

RenderFn = Callable[[Mapping[str, Any]], str]


def capitalize(value: str) -> str:
    """Upper-case the first character only (``"pets" -> "Pets"``, ``"myPets" -> "MyPets"``)."""

    return value[:1].upper() + value[1:]


class TemplateEngine:
    """Compiles user-editable template text into render functions.

    Templates run in Jinja's immutable sandbox so a template can neither reach
    into Python internals nor mutate the context it is rendered with.
    Compiled templates are cached by their source text.
    """

    def __init__(self, *, cache_size: int = 32) -> None:
        self._env = ImmutableSandboxedEnvironment(
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )
        self._env.filters["capitalize"] = capitalize
        self._cache: dict[str, Template] = {}
        self._cache_size = cache_size

    def compile(self, source: str) -> RenderFn:
        """Return a render function for ``source``.

        Raises:
            jinja2.TemplateSyntaxError: if ``source`` is not a valid template.
        """

        template = self._cache.get(source)
        if template is None:
            template = self._env.from_string(source)
            if len(self._cache) >= self._cache_size:
                self._cache.pop(next(iter(self._cache)))
            self._cache[source] = template
            LOGGER.debug("Compiled template (%d chars)", len(source))

        def render(context: Mapping[str, Any]) -> str:
            return template.render(dict(context))

        return render
