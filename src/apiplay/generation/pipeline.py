"""Regeneration pipeline: session inputs -> generated output artifacts.

The pipeline is a pure function of :class:`PipelineInputs`. Any malformed
input (unparsable document, broken template, ...) yields ``None`` meaning
"no change": callers keep showing the previous output.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from ..presets.bundled import (
    DEFAULT_OUTPUT_NAME,
    GROUPED_COMMON_TEMPLATE,
    GROUPED_INDEX_TEMPLATE,
    preset_template_keys,
)
from .context import InvalidDocumentError, TemplateContext, build_template_context, group_strategy_of
from .documents import parse_document, parse_formatter_config
from .formatter import Formatter, TextFormatter
from .templates import RenderFn, TemplateEngine, capitalize

__all__ = ["PipelineInputs", "OutputArtifact", "PipelineResult", "RegenerationPipeline"]

LOGGER = logging.getLogger(__name__)

ContextBuilder = Callable[[Any, Mapping[str, Any]], TemplateContext]
DocumentParser = Callable[[str], Any]


@dataclass(frozen=True, slots=True)
class PipelineInputs:
    """Everything a regeneration depends on."""

    document: str
    template_name: str
    template: str
    formatter_config: str
    options: Mapping[str, Any]
    presets: Mapping[str, str] = field(default_factory=dict)

    def fingerprint(self) -> str:
        payload = json.dumps(
            {
                "document": self.document,
                "template_name": self.template_name,
                "template": self.template,
                "formatter_config": self.formatter_config,
                "options": self.options,
                "presets": self.presets,
            },
            sort_keys=True,
            default=str,
        )
        return hashlib.sha1(payload.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class OutputArtifact:
    name: str
    content: str
    index: int


@dataclass(frozen=True, slots=True)
class PipelineResult:
    artifacts: tuple[OutputArtifact, ...]
    template_context: TemplateContext
    grouped: bool = False


class RegenerationPipeline:
    """Turns a document, a template and a formatter config into output artifacts."""

    def __init__(
        self,
        *,
        default_output_name: str = DEFAULT_OUTPUT_NAME,
        parser: DocumentParser = parse_document,
        context_builder: ContextBuilder = build_template_context,
        engine: TemplateEngine | None = None,
        formatter: Formatter | None = None,
        preset_keys: Mapping[str, str] | None = None,
        memoize: bool = False,
    ) -> None:
        self._default_output_name = default_output_name
        self._parse = parser
        self._build_context = context_builder
        self._engine = engine or TemplateEngine()
        self._formatter = formatter or TextFormatter()
        self._preset_keys = dict(preset_keys if preset_keys is not None else preset_template_keys())
        self._memoize = memoize
        self._last: tuple[str, PipelineResult | None] | None = None

    def run(self, inputs: PipelineInputs) -> PipelineResult | None:
        """Regenerate; ``None`` means the previous output should be kept."""

        if not self._memoize:
            return self._run(inputs)
        fingerprint = inputs.fingerprint()
        if self._last is not None and self._last[0] == fingerprint:
            LOGGER.debug("Pipeline inputs unchanged (%s); reusing result", fingerprint[:12])
            return self._last[1]
        result = self._run(inputs)
        self._last = (fingerprint, result)
        return result

    def resolve_template(self, inputs: PipelineInputs) -> str:
        """Return the catalog text for a preset identifier, else the template tab content."""

        key = self._preset_keys.get(inputs.template_name)
        if key is not None and key in inputs.presets:
            return inputs.presets[key]
        return inputs.template

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _run(self, inputs: PipelineInputs) -> PipelineResult | None:
        if not inputs.document:
            LOGGER.debug("No change: document is empty")
            return None

        try:
            parsed = self._parse(inputs.document)
        except Exception:
            LOGGER.debug("No change: document parser failed", exc_info=True)
            return None
        if not parsed:
            LOGGER.debug("No change: document could not be parsed")
            return None

        options = dict(inputs.options)
        try:
            context = self._build_context(parsed, options)
        except InvalidDocumentError as exc:
            LOGGER.debug("No change: %s", exc)
            return None
        except Exception:
            LOGGER.debug("No change: context builder failed", exc_info=True)
            return None
        LOGGER.debug("Template context: %s", context)

        template_text = self.resolve_template(inputs)
        if not template_text:
            LOGGER.debug("No change: template is empty")
            return None

        formatter_config = parse_formatter_config(inputs.formatter_config)
        try:
            template = self._engine.compile(template_text)
            if "file" in group_strategy_of(options):
                artifacts = self._render_grouped(template, context, options, inputs.presets, formatter_config)
                return PipelineResult(artifacts=artifacts, template_context=context, grouped=True)
            output = template({**context.as_mapping(), "options": options})
        except Exception as exc:
            LOGGER.debug("No change: template failed (%s: %s)", type(exc).__name__, exc)
            return None

        artifact = OutputArtifact(
            name=self._default_output_name,
            content=self._format(output, formatter_config),
            index=0,
        )
        return PipelineResult(artifacts=(artifact,), template_context=context)

    def _render_grouped(
        self,
        template: RenderFn,
        context: TemplateContext,
        options: Mapping[str, Any],
        presets: Mapping[str, str],
        formatter_config: Mapping[str, Any],
    ) -> tuple[OutputArtifact, ...]:
        outputs: dict[str, str] = {}

        group_names = {f"{capitalize(name)}Api": name for name in context.endpoints_groups}
        index_template = self._engine.compile(presets.get(GROUPED_INDEX_TEMPLATE, ""))
        outputs["index"] = self._format(index_template({"group_names": group_names}), formatter_config)

        if context.common_schema_names:
            common_template = self._engine.compile(presets.get(GROUPED_COMMON_TEMPLATE, ""))
            scoped = context.pick(context.common_schema_names)
            outputs["common"] = self._format(common_template(scoped), formatter_config)

        base = context.as_mapping()
        for name, group in context.endpoints_groups.items():
            if name in outputs:
                LOGGER.warning("Group %r collides with a reserved output name; skipped", name)
                continue
            group_options = {
                **options,
                "group_strategy": "none",
                "api_client_name": f"{capitalize(name)}Api",
            }
            rendered = template({**base, **group.as_mapping(), "options": group_options})
            outputs[name] = self._format(rendered, formatter_config)

        return tuple(
            OutputArtifact(name=f"{name}.ts", content=content, index=position)
            for position, (name, content) in enumerate(outputs.items())
        )

    def _format(self, text: str, config: Mapping[str, Any]) -> str:
        try:
            return self._formatter.format(text, config)
        except Exception as exc:
            LOGGER.debug("Formatter failed (%s); emitting unformatted output", exc)
            return text
