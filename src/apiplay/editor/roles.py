"""Filename based role classification and role pointer maintenance.

Three roles exist: the OpenAPI *document*, the rendering *template* and the
*formatter config*. Which role a tab can play is a pure function of its name
(:class:`RoleConventions`); which tab currently plays each role is tracked by
:class:`RoleResolver` and re-derived whenever the input tabs change.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Collection, Iterable, Mapping

from .tabs import FileTab

__all__ = [
    "Role",
    "RolePredicate",
    "RoleConventions",
    "RoleSelection",
    "RoleResolver",
    "default_conventions",
]

LOGGER = logging.getLogger(__name__)

RolePredicate = Callable[[str], bool]


class Role(str, Enum):
    DOCUMENT = "document"
    TEMPLATE = "template"
    FORMATTER_CONFIG = "formatter_config"


_DOCUMENT_SUFFIXES = (".yml", ".yaml", ".json")
_TEMPLATE_SUFFIXES = (".hbs",)


@dataclass(slots=True)
class RoleConventions:
    """Mapping of role to name predicate.

    Predicates are evaluated in declaration order; the defaults are mutually
    exclusive but a substituted set does not have to be.
    """

    predicates: Mapping[Role, RolePredicate]

    def matches(self, role: Role, name: str) -> bool:
        predicate = self.predicates.get(role)
        return bool(predicate and predicate(name))

    def classify(self, name: str) -> Role | None:
        for role, predicate in self.predicates.items():
            if predicate(name):
                return role
        return None


def default_conventions(formatter_prefix: str = ".prettier") -> RoleConventions:
    """Return the stock naming conventions (``.prettier*.json`` is a formatter config)."""

    def is_formatter_config(name: str) -> bool:
        return name.startswith(formatter_prefix) and name.endswith(".json")

    def is_document(name: str) -> bool:
        return not is_formatter_config(name) and name.endswith(_DOCUMENT_SUFFIXES)

    def is_template(name: str) -> bool:
        return name.endswith(_TEMPLATE_SUFFIXES)

    return RoleConventions(
        predicates={
            Role.DOCUMENT: is_document,
            Role.TEMPLATE: is_template,
            Role.FORMATTER_CONFIG: is_formatter_config,
        }
    )


@dataclass(slots=True)
class RoleSelection:
    """Name of the input tab currently holding each role (empty when unassigned)."""

    document: str = ""
    template: str = ""
    formatter_config: str = ""

    def get(self, role: Role) -> str:
        return getattr(self, role.value)

    def set(self, role: Role, name: str) -> None:
        setattr(self, role.value, name)

    def as_dict(self) -> dict[str, str]:
        return {role.value: self.get(role) for role in Role}


@dataclass(slots=True)
class RoleResolver:
    """Keeps :class:`RoleSelection` consistent with the input tabs.

    ``reserved_templates`` are preset identifiers that may occupy the template
    role without being the name of a tab.
    """

    conventions: RoleConventions = field(default_factory=default_conventions)
    reserved_templates: Collection[str] = ()
    selection: RoleSelection = field(default_factory=RoleSelection)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def role_of(self, name: str) -> Role | None:
        return self.conventions.classify(name)

    def first_match(self, role: Role, tabs: Iterable[FileTab]) -> str:
        for tab in tabs:
            if self.conventions.matches(role, tab.name):
                return tab.name
        return ""

    def is_valid(self, role: Role, name: str, tabs: Iterable[FileTab]) -> bool:
        if not name:
            return True
        if role is Role.TEMPLATE and name in self.reserved_templates:
            return True
        return self.conventions.matches(role, name) and any(tab.name == name for tab in tabs)

    # ------------------------------------------------------------------
    # Resolution policies
    # ------------------------------------------------------------------
    def seed(self, tabs: Iterable[FileTab]) -> RoleSelection:
        """Assign every role to the first tab matching it."""

        ordered = list(tabs)
        for role in Role:
            self.selection.set(role, self.first_match(role, ordered))
        return self.selection

    def on_submitted(
        self,
        tab: FileTab,
        tabs: Iterable[FileTab],
        *,
        previous_name: str | None = None,
    ) -> bool:
        """Apply the add/edit policy for a submitted (and re-selected) tab."""

        ordered = list(tabs)
        before = self.selection.as_dict()
        for role in Role:
            matches = self.conventions.matches(role, tab.name)
            holder = self.selection.get(role)
            if previous_name and holder == previous_name and matches:
                self.selection.set(role, tab.name)
            elif tab.content and matches:
                self.selection.set(role, tab.name)
        self.reconcile(ordered)
        return before != self.selection.as_dict()

    def on_removed(self, removed: FileTab, tabs: Iterable[FileTab]) -> bool:
        """Hand every role the removed tab held to the first remaining candidate."""

        ordered = list(tabs)
        changed = False
        for role in Role:
            if self.selection.get(role) != removed.name:
                continue
            successor = self.first_match(role, ordered)
            LOGGER.debug("Role %s moves from %s to %r", role.value, removed.name, successor)
            self.selection.set(role, successor)
            changed = True
        return changed

    def on_first_input(self, tab: FileTab) -> bool:
        """Let a tab that just became non-empty claim the role its name implies."""

        role = self.role_of(tab.name)
        if role is None or self.selection.get(role) == tab.name:
            return False
        self.selection.set(role, tab.name)
        return True

    def on_selected(self, tab: FileTab) -> Role | None:
        """Re-point a role when the user selects a different tab of that role."""

        for role in Role:
            if tab.name == self.selection.get(role):
                continue
            if self.conventions.matches(role, tab.name):
                self.selection.set(role, tab.name)
                return role
        return None

    def claim(self, role: Role, name: str) -> None:
        self.selection.set(role, name)

    def reconcile(self, tabs: Iterable[FileTab]) -> bool:
        """Replace dangling or misclassified pointers with the first valid candidate."""

        ordered = list(tabs)
        changed = False
        for role in Role:
            current = self.selection.get(role)
            if self.is_valid(role, current, ordered):
                continue
            successor = self.first_match(role, ordered)
            LOGGER.debug("Role %s pointer %s is stale; using %r", role.value, current, successor)
            self.selection.set(role, successor)
            changed = True
        return changed
