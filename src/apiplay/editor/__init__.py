"""Tab lists, role resolution and editor surfaces."""

from .roles import Role, RoleConventions, RoleResolver, RoleSelection, default_conventions
from .surface import BufferSurface, EditorSurface, LayoutInfo
from .tabs import DuplicateNameError, FileFormDraft, FileTab, TabList

__all__ = [
    "BufferSurface",
    "DuplicateNameError",
    "EditorSurface",
    "FileFormDraft",
    "FileTab",
    "LayoutInfo",
    "Role",
    "RoleConventions",
    "RoleResolver",
    "RoleSelection",
    "TabList",
    "default_conventions",
]
