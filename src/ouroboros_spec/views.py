"""Conversion between the persisted document form and the JSON view.

Clients see ``ref`` instead of ``$ref`` and Ouroboros fields without their
``x-ouroboros-`` prefix. Keys of name maps (schema properties, component
tables) are user names and are never renamed, only their values.
"""

from typing import Any

from .models import SCHEMA_REF_PREFIX

EXTENSION_PREFIX = "x-ouroboros-"

# Fields that get the extension prefix back when converting from the JSON view
OUROBOROS_FIELDS = frozenset({
    "id", "diff", "progress", "tag", "entrypoint", "orders",
    "response", "req-log", "res-log",
})

NAME_MAPS = frozenset({
    "properties", "schemas", "messages", "channels", "operations",
    "servers", "securitySchemes", "paths", "responses", "content",
})


def to_json_view(node: Any, _names: bool = False) -> Any:
    """Persisted form to the client-facing form."""
    if isinstance(node, list):
        return [to_json_view(item) for item in node]
    if not isinstance(node, dict):
        return node

    view = {}
    for key, value in node.items():
        out_key = key
        if not _names and isinstance(key, str):
            if key == "$ref":
                out_key = "ref"
            elif key.startswith(EXTENSION_PREFIX):
                out_key = key[len(EXTENSION_PREFIX):]
        view[out_key] = to_json_view(value, _names=not _names and key in NAME_MAPS)
    return view


def from_json_view(node: Any, _names: bool = False) -> Any:
    """Client-facing form back to the persisted form.

    A bare ``ref`` name such as ``User`` expands to ``#/components/schemas/User``.
    """
    if isinstance(node, list):
        return [from_json_view(item) for item in node]
    if not isinstance(node, dict):
        return node

    document = {}
    for key, value in node.items():
        out_key = key
        if not _names and isinstance(key, str):
            if key == "ref":
                out_key = "$ref"
                if isinstance(value, str) and not value.startswith("#"):
                    value = SCHEMA_REF_PREFIX + value
            elif key in OUROBOROS_FIELDS:
                out_key = EXTENSION_PREFIX + key
        document[out_key] = from_json_view(value, _names=not _names and key in NAME_MAPS)
    return document
