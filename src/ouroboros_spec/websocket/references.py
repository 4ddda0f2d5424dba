"""Rewrite ``$ref`` strings after items are renamed."""

from typing import Any, Callable

from .document import CHANNEL_REF_PREFIX, MESSAGE_REF_PREFIX, SCHEMA_REF_PREFIX, SERVER_REF_PREFIX

CHANNEL_MESSAGES_SEGMENT = "/messages/"


def _walk_refs(node: Any, rewrite: Callable[[str], str | None]) -> int:
    """Apply ``rewrite`` to every ``$ref`` string under ``node``; returns the change count."""
    changed = 0
    if isinstance(node, dict):
        ref = node.get("$ref")
        if isinstance(ref, str):
            new_ref = rewrite(ref)
            if new_ref is not None and new_ref != ref:
                node["$ref"] = new_ref
                changed += 1
        for key, value in node.items():
            if key != "$ref":
                changed += _walk_refs(value, rewrite)
    elif isinstance(node, list):
        for item in node:
            changed += _walk_refs(item, rewrite)
    return changed


def rewrite_schema_refs(node: Any, renames: dict[str, str]) -> int:
    def rewrite(ref: str) -> str | None:
        if ref.startswith(SCHEMA_REF_PREFIX):
            name = ref[len(SCHEMA_REF_PREFIX):]
            if name in renames:
                return SCHEMA_REF_PREFIX + renames[name]
        return None

    return _walk_refs(node, rewrite) if renames else 0


def rewrite_message_refs(node: Any, renames: dict[str, str]) -> int:
    """Handle both ``#/components/messages/X`` and ``#/channels/Y/messages/X``."""

    def rewrite(ref: str) -> str | None:
        if ref.startswith(MESSAGE_REF_PREFIX):
            name = ref[len(MESSAGE_REF_PREFIX):]
            if name in renames:
                return MESSAGE_REF_PREFIX + renames[name]
        elif ref.startswith(CHANNEL_REF_PREFIX) and CHANNEL_MESSAGES_SEGMENT in ref:
            head, _, name = ref.rpartition(CHANNEL_MESSAGES_SEGMENT)
            if name in renames:
                return f"{head}{CHANNEL_MESSAGES_SEGMENT}{renames[name]}"
        return None

    return _walk_refs(node, rewrite) if renames else 0


def rewrite_channel_refs(node: Any, renames: dict[str, str]) -> int:
    """Handle ``#/channels/Y`` and the channel part of ``#/channels/Y/messages/X``."""

    def rewrite(ref: str) -> str | None:
        if not ref.startswith(CHANNEL_REF_PREFIX):
            return None
        rest = ref[len(CHANNEL_REF_PREFIX):]
        channel, sep, tail = rest.partition("/")
        if channel in renames:
            return f"{CHANNEL_REF_PREFIX}{renames[channel]}{sep}{tail}"
        return None

    return _walk_refs(node, rewrite) if renames else 0


def rewrite_server_refs(node: Any, renames: dict[str, str]) -> int:
    def rewrite(ref: str) -> str | None:
        if ref.startswith(SERVER_REF_PREFIX):
            name = ref[len(SERVER_REF_PREFIX):]
            if name in renames:
                return SERVER_REF_PREFIX + renames[name]
        return None

    return _walk_refs(node, rewrite) if renames else 0


def rename_keys(mapping: dict, renames: dict[str, str]) -> dict:
    """Copy of ``mapping`` with renamed keys, keeping order."""
    return {renames.get(key, key): value for key, value in mapping.items()}
