"""Default structured-model builder: OpenAPI 3 document -> :class:`TemplateContext`.

The context mirrors what a zodios style client template needs: a flat list of
endpoints, the component schemas rendered as zod expressions and as
TypeScript types, and (when a grouping strategy is selected) the endpoints
split into groups together with the schema names shared between groups.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

import jsonschema

__all__ = [
    "EndpointGroup",
    "InvalidDocumentError",
    "TemplateContext",
    "build_template_context",
    "group_strategy_of",
]

LOGGER = logging.getLogger(__name__)

OPENAPI_SHAPE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["openapi", "paths"],
    "properties": {
        "openapi": {"type": "string", "pattern": r"^3\."},
        "paths": {"type": "object"},
        "components": {"type": "object"},
    },
}

_HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")
_PARAMETER_KINDS = {"path": "Path", "query": "Query", "header": "Header"}
_SCHEMA_REF_PREFIX = "#/components/schemas/"
_IDENTIFIER = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_UNSAFE_GROUP_CHARS = re.compile(r"[^\w-]+")


class InvalidDocumentError(ValueError):
    """Raised when a parsed document does not look like an OpenAPI 3 description."""


def group_strategy_of(options: Mapping[str, Any]) -> str:
    return str(options.get("group_strategy") or "none")


@dataclass(slots=True)
class EndpointGroup:
    """Endpoints sharing a group key plus the schemas only they need."""

    endpoints: list[dict[str, Any]] = field(default_factory=list)
    schemas: dict[str, str] = field(default_factory=dict)
    types: dict[str, str] = field(default_factory=dict)
    imports: list[str] = field(default_factory=list)

    def as_mapping(self) -> dict[str, Any]:
        return {
            "endpoints": list(self.endpoints),
            "schemas": dict(self.schemas),
            "types": dict(self.types),
            "imports": list(self.imports),
        }


@dataclass(slots=True)
class TemplateContext:
    endpoints: list[dict[str, Any]]
    endpoints_groups: dict[str, EndpointGroup]
    schemas: dict[str, str]
    types: dict[str, str]
    common_schema_names: tuple[str, ...]
    options: dict[str, Any]

    def as_mapping(self) -> dict[str, Any]:
        """Return the plain mapping handed to templates."""

        return {
            "endpoints": list(self.endpoints),
            "endpoints_groups": {
                name: group.as_mapping() for name, group in self.endpoints_groups.items()
            },
            "schemas": dict(self.schemas),
            "types": dict(self.types),
            "common_schema_names": list(self.common_schema_names),
            "options": dict(self.options),
        }

    def pick(self, names: Iterable[str]) -> dict[str, Any]:
        """Return ``schemas``/``types`` restricted to ``names``."""

        wanted = list(names)
        return {
            "schemas": {name: self.schemas[name] for name in wanted if name in self.schemas},
            "types": {name: self.types[name] for name in wanted if name in self.types},
        }


def build_template_context(document: Any, options: Mapping[str, Any]) -> TemplateContext:
    """Build the template context for ``document``.

    Raises:
        InvalidDocumentError: if ``document`` fails the minimal OpenAPI shape check.
    """

    _check_shape(document)
    components = document.get("components") or {}
    component_schemas: dict[str, Any] = dict(components.get("schemas") or {})
    renderer = _SchemaRenderer(options)
    resolver = _RefResolver(document)

    endpoints: list[dict[str, Any]] = []
    endpoint_refs: list[set[str]] = []
    endpoint_keys: list[str | None] = []
    strategy = group_strategy_of(options)

    for path, item in (document.get("paths") or {}).items():
        if not isinstance(item, Mapping):
            continue
        shared_parameters = item.get("parameters") or []
        for method in _HTTP_METHODS:
            operation = item.get(method)
            if not isinstance(operation, Mapping):
                continue
            refs: set[str] = set()
            endpoints.append(
                _build_endpoint(str(path), method, operation, shared_parameters, renderer, resolver, refs, options)
            )
            endpoint_refs.append(refs)
            endpoint_keys.append(_group_key(strategy, method, operation))

    dependencies = _SchemaGraph(component_schemas)
    if options.get("export_all_named_schemas"):
        included = set(component_schemas)
    else:
        included = dependencies.closure(set().union(*endpoint_refs) if endpoint_refs else set())

    schemas: dict[str, str] = {}
    types: dict[str, str] = {}
    for name, schema in component_schemas.items():
        if name not in included:
            continue
        schemas[name] = renderer.to_zod(schema)
        types[name] = renderer.to_ts(schema)

    groups: dict[str, EndpointGroup] = {}
    group_refs: dict[str, set[str]] = {}
    for endpoint, refs, key in zip(endpoints, endpoint_refs, endpoint_keys):
        if key is None:
            continue
        group = groups.setdefault(key, EndpointGroup())
        group.endpoints.append(endpoint)
        group_refs.setdefault(key, set()).update(refs)

    usage: dict[str, int] = {}
    closures: dict[str, set[str]] = {}
    for key, refs in group_refs.items():
        closures[key] = dependencies.closure(refs)
        for name in closures[key]:
            usage[name] = usage.get(name, 0) + 1
    common = tuple(name for name in schemas if usage.get(name, 0) > 1)

    for key, group in groups.items():
        for name in schemas:
            if name not in closures[key]:
                continue
            if name in common:
                group.imports.append(name)
            else:
                group.schemas[name] = schemas[name]
                group.types[name] = types[name]

    LOGGER.debug(
        "Built template context: %d endpoint(s), %d schema(s), %d group(s), %d common",
        len(endpoints),
        len(schemas),
        len(groups),
        len(common),
    )
    return TemplateContext(
        endpoints=endpoints,
        endpoints_groups=groups,
        schemas=schemas,
        types=types,
        common_schema_names=common,
        options=dict(options),
    )


# ---------------------------------------------------------------------------
# Endpoint helpers
# ---------------------------------------------------------------------------
def _check_shape(document: Any) -> None:
    validator = jsonschema.Draft202012Validator(OPENAPI_SHAPE_SCHEMA)
    issue = jsonschema.exceptions.best_match(validator.iter_errors(document))
    if issue is not None:
        path = ".".join(str(part) for part in issue.absolute_path)
        detail = f"{path}: {issue.message}" if path else issue.message
        raise InvalidDocumentError(f"Not an OpenAPI 3 document ({detail})")


def _group_key(strategy: str, method: str, operation: Mapping[str, Any]) -> str | None:
    base = strategy.removesuffix("-file")
    if base == "tag":
        tags = operation.get("tags") or []
        if not tags:
            return "Default"
        return _UNSAFE_GROUP_CHARS.sub("_", str(tags[0]).strip()) or "Default"
    if base == "method":
        return method
    return None


def _build_endpoint(
    path: str,
    method: str,
    operation: Mapping[str, Any],
    shared_parameters: Iterable[Any],
    renderer: "_SchemaRenderer",
    resolver: "_RefResolver",
    refs: set[str],
    options: Mapping[str, Any],
) -> dict[str, Any]:
    merged: dict[tuple[str, str], Mapping[str, Any]] = {}
    for raw in [*shared_parameters, *(operation.get("parameters") or [])]:
        parameter = resolver.resolve(raw)
        if not isinstance(parameter, Mapping) or parameter.get("in") not in _PARAMETER_KINDS:
            continue
        merged[(str(parameter.get("name")), str(parameter["in"]))] = parameter

    parameters: list[dict[str, Any]] = []
    for (name, location), parameter in merged.items():
        schema = parameter.get("schema") or {}
        expression = renderer.to_zod(schema, refs)
        if location != "path" and not parameter.get("required"):
            expression = f"{expression}.optional()"
        parameters.append({"name": name, "type": _PARAMETER_KINDS[location], "schema": expression})

    body = resolver.resolve(operation.get("requestBody"))
    if isinstance(body, Mapping):
        body_schema = _media_schema(body.get("content"))
        if body_schema is not None:
            parameters.append({"name": "body", "type": "Body", "schema": renderer.to_zod(body_schema, refs)})

    response = "z.void()"
    errors: list[dict[str, Any]] = []
    found_main = False
    for status, raw_response in (operation.get("responses") or {}).items():
        resolved = resolver.resolve(raw_response)
        schema = _media_schema(resolved.get("content")) if isinstance(resolved, Mapping) else None
        expression = renderer.to_zod(schema, refs) if schema is not None else "z.void()"
        code = str(status)
        if code.startswith("2") and not found_main:
            response = expression
            found_main = True
        elif not code.startswith("2"):
            errors.append({"status": int(code) if code.isdigit() else code, "schema": expression})

    description = None
    if options.get("with_description"):
        description = operation.get("description") or operation.get("summary")

    return {
        "method": method,
        "path": re.sub(r"\{([^}]+)\}", r":\1", path),
        "alias": operation.get("operationId") or _default_alias(method, path),
        "description": description,
        "parameters": parameters,
        "response": response,
        "errors": errors,
    }


def _default_alias(method: str, path: str) -> str:
    words = [part for part in re.split(r"[^A-Za-z0-9]+", path) if part]
    return method + "".join(word[:1].upper() + word[1:] for word in words)


def _media_schema(content: Any) -> Any | None:
    if not isinstance(content, Mapping) or not content:
        return None
    media = content.get("application/json") or next(iter(content.values()))
    if isinstance(media, Mapping):
        return media.get("schema")
    return None


class _RefResolver:
    """Resolves local non-schema ``$ref`` pointers (parameters, bodies, responses)."""

    def __init__(self, document: Mapping[str, Any]) -> None:
        self._document = document

    def resolve(self, node: Any, depth: int = 0) -> Any:
        if not isinstance(node, Mapping) or "$ref" not in node or depth > 16:
            return node
        pointer = str(node["$ref"])
        if not pointer.startswith("#/"):
            return {}
        target: Any = self._document
        for part in pointer[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            if not isinstance(target, Mapping) or part not in target:
                return {}
            target = target[part]
        return self.resolve(target, depth + 1)


class _SchemaGraph:
    """Reference graph between component schemas."""

    def __init__(self, component_schemas: Mapping[str, Any]) -> None:
        self._edges = {name: _collect_refs(schema) for name, schema in component_schemas.items()}

    def closure(self, roots: set[str]) -> set[str]:
        seen: set[str] = set()
        pending = [name for name in roots if name in self._edges]
        while pending:
            name = pending.pop()
            if name in seen:
                continue
            seen.add(name)
            pending.extend(ref for ref in self._edges.get(name, ()) if ref in self._edges)
        return seen


def _collect_refs(node: Any) -> set[str]:
    found: set[str] = set()
    if isinstance(node, Mapping):
        ref = node.get("$ref")
        if isinstance(ref, str) and ref.startswith(_SCHEMA_REF_PREFIX):
            found.add(ref[len(_SCHEMA_REF_PREFIX):])
        for value in node.values():
            found |= _collect_refs(value)
    elif isinstance(node, list):
        for value in node:
            found |= _collect_refs(value)
    return found


# ---------------------------------------------------------------------------
# Schema rendering
# ---------------------------------------------------------------------------
class _SchemaRenderer:
    """Renders JSON schemas as zod expressions and TypeScript types."""

    def __init__(self, options: Mapping[str, Any]) -> None:
        self._strict = bool(options.get("strict_objects"))
        self._defaults = bool(options.get("with_default_values", True))

    def to_zod(self, schema: Any, refs: set[str] | None = None) -> str:
        if not isinstance(schema, Mapping):
            return "z.unknown()"
        ref = schema.get("$ref")
        if isinstance(ref, str):
            name = ref.rsplit("/", 1)[-1]
            if refs is not None and ref.startswith(_SCHEMA_REF_PREFIX):
                refs.add(name)
            return name
        expression = self._zod_body(schema, refs)
        if schema.get("nullable"):
            expression += ".nullable()"
        if self._defaults and "default" in schema:
            expression += f".default({json.dumps(schema['default'], default=str)})"
        return expression

    def _zod_body(self, schema: Mapping[str, Any], refs: set[str] | None) -> str:
        if "allOf" in schema:
            parts = [self.to_zod(part, refs) for part in schema["allOf"]] or ["z.unknown()"]
            return parts[0] + "".join(f".and({part})" for part in parts[1:])
        for key in ("oneOf", "anyOf"):
            if key in schema:
                parts = [self.to_zod(part, refs) for part in schema[key]]
                if len(parts) == 1:
                    return parts[0]
                return f"z.union([{', '.join(parts)}])"
        if "enum" in schema:
            values = list(schema["enum"])
            if values and all(isinstance(value, str) for value in values):
                return f"z.enum([{', '.join(json.dumps(value) for value in values)}])"
            literals = ", ".join(f"z.literal({json.dumps(value, default=str)})" for value in values)
            return f"z.union([{literals}])" if len(values) > 1 else literals or "z.never()"

        kind = schema.get("type")
        if kind == "string":
            return "z.string()"
        if kind == "integer":
            return "z.number().int()"
        if kind == "number":
            return "z.number()"
        if kind == "boolean":
            return "z.boolean()"
        if kind == "array":
            return f"z.array({self.to_zod(schema.get('items'), refs)})"
        if kind == "object" or "properties" in schema:
            properties = schema.get("properties") or {}
            if not properties and isinstance(schema.get("additionalProperties"), Mapping):
                return f"z.record({self.to_zod(schema['additionalProperties'], refs)})"
            required = set(schema.get("required") or [])
            fields = []
            for key, value in properties.items():
                expression = self.to_zod(value, refs)
                if key not in required:
                    expression += ".optional()"
                fields.append(f"{_property_key(key)}: {expression}")
            body = f"z.object({{ {', '.join(fields)} }})" if fields else "z.object({})"
            return body + ".strict()" if self._strict else body + ".passthrough()"
        return "z.unknown()"

    def to_ts(self, schema: Any) -> str:
        if not isinstance(schema, Mapping):
            return "unknown"
        ref = schema.get("$ref")
        if isinstance(ref, str):
            return ref.rsplit("/", 1)[-1]
        expression = self._ts_body(schema)
        if schema.get("nullable"):
            expression = f"{expression} | null"
        return expression

    def _ts_body(self, schema: Mapping[str, Any]) -> str:
        if "allOf" in schema:
            return " & ".join(self.to_ts(part) for part in schema["allOf"]) or "unknown"
        for key in ("oneOf", "anyOf"):
            if key in schema:
                return " | ".join(self.to_ts(part) for part in schema[key]) or "unknown"
        if "enum" in schema:
            return " | ".join(json.dumps(value, default=str) for value in schema["enum"]) or "never"
        kind = schema.get("type")
        if kind == "string":
            return "string"
        if kind in ("integer", "number"):
            return "number"
        if kind == "boolean":
            return "boolean"
        if kind == "array":
            return f"Array<{self.to_ts(schema.get('items'))}>"
        if kind == "object" or "properties" in schema:
            properties = schema.get("properties") or {}
            if not properties and isinstance(schema.get("additionalProperties"), Mapping):
                return f"Record<string, {self.to_ts(schema['additionalProperties'])}>"
            required = set(schema.get("required") or [])
            fields = [
                f"{_property_key(key)}{'' if key in required else '?'}: {self.to_ts(value)}"
                for key, value in properties.items()
            ]
            return f"{{ {'; '.join(fields)} }}" if fields else "{}"
        return "unknown"


def _property_key(key: str) -> str:
    return key if _IDENTIFIER.match(key) else json.dumps(key)
