"""Helpers for the AsyncAPI 3.0 document tree.

WebSocket documents stay plain dicts: channel bindings, message payloads and
vendor extensions are passed through verbatim. These helpers give typed-ish
access to the sections the services touch.
"""

from ..storage import ensure_section

CHANNEL_REF_PREFIX = "#/channels/"
SERVER_REF_PREFIX = "#/servers/"
MESSAGE_REF_PREFIX = "#/components/messages/"
SCHEMA_REF_PREFIX = "#/components/schemas/"

ID_FIELD = "x-ouroboros-id"
ENTRYPOINT_FIELD = "x-ouroboros-entrypoint"
DIFF_FIELD = "x-ouroboros-diff"
PROGRESS_FIELD = "x-ouroboros-progress"

DEFAULT_INFO = {"title": "WebSocket API Documentation", "version": "1.0.0"}


class AsyncApiLayout:
    """Minimal AsyncAPI document and its required sections."""

    def create(self) -> dict:
        return {
            "asyncapi": "3.0.0",
            "info": dict(DEFAULT_INFO),
            "defaultContentType": "application/json",
            "servers": {},
            "channels": {},
            "operations": {},
            "components": {"schemas": {}, "messages": {}},
        }

    def repair(self, document: dict) -> list[str]:
        repaired = []
        if not document.get("asyncapi"):
            document["asyncapi"] = "3.0.0"
            repaired.append("asyncapi")
        if not isinstance(document.get("info"), dict):
            document["info"] = dict(DEFAULT_INFO)
            repaired.append("info")
        if not document.get("defaultContentType"):
            document["defaultContentType"] = "application/json"
            repaired.append("defaultContentType")
        for key in ("servers", "channels", "operations", "components"):
            if ensure_section(document, key)[1]:
                repaired.append(key)
        components = document["components"]
        for key in ("schemas", "messages"):
            if ensure_section(components, key)[1]:
                repaired.append(f"components.{key}")
        return repaired


def section(document: dict, key: str) -> dict:
    return ensure_section(document, key)[0]


def component_section(document: dict, key: str) -> dict:
    return ensure_section(section(document, "components"), key)[0]


def name_from_ref(ref: object, prefix: str) -> str | None:
    if not isinstance(ref, str) or not ref.startswith(prefix):
        return None
    return ref[len(prefix):] or None


def channel_ref(name: str) -> dict:
    return {"$ref": CHANNEL_REF_PREFIX + name}


def channel_message_ref(channel: str, message: str) -> dict:
    return {"$ref": f"{CHANNEL_REF_PREFIX}{channel}/messages/{message}"}


def channel_name_of(operation_part: dict | None) -> str | None:
    """Channel name referenced by an operation or its ``reply`` block."""
    if not isinstance(operation_part, dict):
        return None
    channel = operation_part.get("channel")
    if not isinstance(channel, dict):
        return None
    return name_from_ref(channel.get("$ref"), CHANNEL_REF_PREFIX)


def referenced_channels(operation: dict) -> set[str]:
    """Main and reply channel names used by one operation."""
    names = {channel_name_of(operation), channel_name_of(operation.get("reply"))}
    names.discard(None)
    return names


def find_operation(document: dict, operation_id: str) -> tuple[str, dict] | None:
    """Locate an operation by its ``x-ouroboros-id``."""
    for name, operation in section(document, "operations").items():
        if isinstance(operation, dict) and operation.get(ID_FIELD) == operation_id:
            return name, operation
    return None
