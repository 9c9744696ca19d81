"""Services package."""

from .settings import PlaygroundSettings, SettingsStore

__all__ = ["PlaygroundSettings", "SettingsStore"]
