"""Document parsing, template context building, rendering and formatting."""

from .context import InvalidDocumentError, TemplateContext, build_template_context
from .documents import parse_document, parse_formatter_config
from .formatter import Formatter, TextFormatter
from .pipeline import OutputArtifact, PipelineInputs, PipelineResult, RegenerationPipeline
from .templates import TemplateEngine

__all__ = [
    "Formatter",
    "InvalidDocumentError",
    "OutputArtifact",
    "PipelineInputs",
    "PipelineResult",
    "RegenerationPipeline",
    "TemplateContext",
    "TemplateEngine",
    "TextFormatter",
    "build_template_context",
    "parse_document",
    "parse_formatter_config",
]
