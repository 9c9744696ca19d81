"""Bundled presets: templates, the seeded input tabs and the default output name."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

from ..editor.tabs import FileTab

__all__ = [
    "PresetTemplate",
    "PRESET_TEMPLATES",
    "BUNDLED_TEMPLATES",
    "GROUPED_INDEX_TEMPLATE",
    "GROUPED_COMMON_TEMPLATE",
    "DEFAULT_DOCUMENT",
    "DEFAULT_FORMATTER_CONFIG",
    "DEFAULT_OUTPUT_NAME",
    "find_preset",
    "preset_template_keys",
    "initial_input_tabs",
]


@dataclass(frozen=True, slots=True)
class PresetTemplate:
    """A selectable preset: ``value`` is what the template role points at,
    ``template`` the catalog key holding its text."""

    value: str
    label: str
    template: str
    options: Mapping[str, Any] = field(default_factory=dict)


GROUPED_INDEX_TEMPLATE = "template-grouped-index"
GROUPED_COMMON_TEMPLATE = "template-grouped-common"
DEFAULT_OUTPUT_NAME = "api.client.ts"

_ENDPOINTS_BLOCK = """\
const endpoints = makeApi([
{% for endpoint in endpoints %}
  {
    method: "{{ endpoint.method }}",
    path: "{{ endpoint.path }}",
{% if options.with_alias %}
    alias: "{{ endpoint.alias }}",
{% endif %}
{% if endpoint.description %}
    description: {{ endpoint.description | tojson }},
{% endif %}
{% if endpoint.parameters %}
    parameters: [
{% for parameter in endpoint.parameters %}
      { name: "{{ parameter.name }}", type: "{{ parameter.type }}", schema: {{ parameter.schema }} },
{% endfor %}
    ],
{% endif %}
    response: {{ endpoint.response }},
{% if endpoint.errors %}
    errors: [
{% for error in endpoint.errors %}
      { status: {{ error.status | tojson }}, schema: {{ error.schema }} },
{% endfor %}
    ],
{% endif %}
  },
{% endfor %}
]);
"""

_DEFAULT_TEMPLATE = (
    """\
import { makeApi, Zodios, type ZodiosOptions } from "@zodios/core";
import { z } from "zod";

{% for name, schema in schemas.items() %}
const {{ name }} = {{ schema }};
{% endfor %}

export const schemas = {
{% for name in schemas %}
  {{ name }},
{% endfor %}
};

"""
    + _ENDPOINTS_BLOCK
    + """
export const {{ options.api_client_name }} = new Zodios({% if options.base_url %}"{{ options.base_url }}", {% endif %}endpoints);

export function createApiClient(baseUrl: string, options?: ZodiosOptions) {
  return new Zodios(baseUrl, endpoints, options);
}
"""
)

_GROUPED_TEMPLATE = (
    """\
import { makeApi, Zodios, type ZodiosOptions } from "@zodios/core";
import { z } from "zod";
{% if imports %}
import { {{ imports | join(", ") }} } from "./common";
{% endif %}

{% for name, schema in schemas.items() %}
export const {{ name }} = {{ schema }};
{% endfor %}

"""
    + _ENDPOINTS_BLOCK
    + """
export const {{ options.api_client_name }} = new Zodios(endpoints);

export function create{{ options.api_client_name }}(baseUrl: string, options?: ZodiosOptions) {
  return new Zodios(baseUrl, endpoints, options);
}
"""
)

_SCHEMAS_ONLY_TEMPLATE = """\
import { z } from "zod";

{% for name, schema in schemas.items() %}
export const {{ name }} = {{ schema }};
{% endfor %}
"""

_TYPES_ONLY_TEMPLATE = """\
{% for name, type in types.items() %}
export type {{ name }} = {{ type }};
{% endfor %}
"""

_GROUPED_INDEX = """\
{% for api_name, group in group_names.items() %}
export { {{ api_name }} } from "./{{ group }}";
{% endfor %}
"""

_GROUPED_COMMON = """\
import { z } from "zod";

{% for name, schema in schemas.items() %}
export const {{ name }} = {{ schema }};
{% endfor %}

{% for name, type in types.items() %}
export type {{ name }} = {{ type }};
{% endfor %}
"""

BUNDLED_TEMPLATES: Mapping[str, str] = {
    "template-default": _DEFAULT_TEMPLATE,
    "template-grouped": _GROUPED_TEMPLATE,
    "schemas-only": _SCHEMAS_ONLY_TEMPLATE,
    "types-only": _TYPES_ONLY_TEMPLATE,
    GROUPED_INDEX_TEMPLATE: _GROUPED_INDEX,
    GROUPED_COMMON_TEMPLATE: _GROUPED_COMMON,
}

PRESET_TEMPLATES: tuple[PresetTemplate, ...] = (
    PresetTemplate("default", "Zodios client", "template-default"),
    PresetTemplate("schemas-only", "Schemas only", "schemas-only"),
    PresetTemplate("types-only", "TypeScript types only", "types-only"),
    PresetTemplate(
        "grouped",
        "One client per tag",
        "template-grouped",
        options={"group_strategy": "tag-file"},
    ),
)

DEFAULT_DOCUMENT = """\
openapi: "3.0.0"
info:
  version: 1.0.0
  title: Swagger Petstore
  license:
    name: MIT
servers:
  - url: http://petstore.swagger.io/v1
paths:
  /pets:
    get:
      summary: List all pets
      operationId: listPets
      tags:
        - pets
      parameters:
        - name: limit
          in: query
          description: How many items to return at one time (max 100)
          required: false
          schema:
            type: integer
            format: int32
      responses:
        "200":
          description: A paged array of pets
          content:
            application/json:
              schema:
                $ref: "#/components/schemas/Pets"
        default:
          description: unexpected error
          content:
            application/json:
              schema:
                $ref: "#/components/schemas/Error"
    post:
      summary: Create a pet
      operationId: createPets
      tags:
        - pets
      requestBody:
        required: true
        content:
          application/json:
            schema:
              $ref: "#/components/schemas/NewPet"
      responses:
        "201":
          description: Null response
        default:
          description: unexpected error
          content:
            application/json:
              schema:
                $ref: "#/components/schemas/Error"
  /pets/{petId}:
    get:
      summary: Info for a specific pet
      operationId: showPetById
      tags:
        - pets
      parameters:
        - name: petId
          in: path
          required: true
          description: The id of the pet to retrieve
          schema:
            type: string
      responses:
        "200":
          description: Expected response to a valid request
          content:
            application/json:
              schema:
                $ref: "#/components/schemas/Pet"
        default:
          description: unexpected error
          content:
            application/json:
              schema:
                $ref: "#/components/schemas/Error"
  /store/orders:
    post:
      summary: Place an order for a pet
      operationId: placeOrder
      tags:
        - store
      requestBody:
        content:
          application/json:
            schema:
              $ref: "#/components/schemas/Order"
      responses:
        "200":
          description: The placed order
          content:
            application/json:
              schema:
                $ref: "#/components/schemas/Order"
        default:
          description: unexpected error
          content:
            application/json:
              schema:
                $ref: "#/components/schemas/Error"
components:
  schemas:
    Pet:
      type: object
      required:
        - id
        - name
      properties:
        id:
          type: integer
          format: int64
        name:
          type: string
        tag:
          type: string
    Pets:
      type: array
      items:
        $ref: "#/components/schemas/Pet"
    NewPet:
      type: object
      required:
        - name
      properties:
        name:
          type: string
        tag:
          type: string
    Order:
      type: object
      properties:
        id:
          type: integer
        petId:
          type: integer
        quantity:
          type: integer
        status:
          type: string
          enum:
            - placed
            - approved
            - delivered
        complete:
          type: boolean
          default: false
    Error:
      type: object
      required:
        - code
        - message
      properties:
        code:
          type: integer
          format: int32
        message:
          type: string
"""

DEFAULT_FORMATTER_CONFIG: Mapping[str, Any] = {
    "printWidth": 120,
    "tabWidth": 2,
    "useTabs": False,
    "semi": True,
    "trailingComma": "all",
}


def find_preset(value: str) -> PresetTemplate | None:
    for preset in PRESET_TEMPLATES:
        if preset.value == value:
            return preset
    return None


def preset_template_keys() -> dict[str, str]:
    """Map every preset identifier to the catalog key of its template text."""

    return {preset.value: preset.template for preset in PRESET_TEMPLATES}


def initial_input_tabs() -> list[FileTab]:
    """The three tabs every new session starts with: document, template, formatter config."""

    return [
        FileTab(name="api.doc.yaml", content=DEFAULT_DOCUMENT, index=0, preset="petstore.yaml"),
        FileTab(name="template.hbs", content=_DEFAULT_TEMPLATE, index=1, preset="default"),
        FileTab(
            name=".prettierrc.json",
            content=json.dumps(DEFAULT_FORMATTER_CONFIG, indent=4),
            index=2,
            preset="prettier",
        ),
    ]
