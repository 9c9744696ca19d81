"""Bundled preset templates and the catalog loader."""

from .bundled import PRESET_TEMPLATES, PresetTemplate, find_preset, initial_input_tabs
from .catalog import PresetCatalogLoader

__all__ = [
    "PRESET_TEMPLATES",
    "PresetCatalogLoader",
    "PresetTemplate",
    "find_preset",
    "initial_input_tabs",
]
