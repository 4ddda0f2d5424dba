"""Import an external AsyncAPI 3.0 document into the persisted one.

Validation runs first and reports every problem at once. Merging then goes
schemas, messages, servers, channels, operations: each later section's
references are rewritten against the renames made by earlier sections.
Colliding names get an ``-import`` suffix.
"""

import copy
import uuid

import structlog

from ..errors import ImportValidationError
from ..importing import (
    ItemType,
    RenamedItem,
    ValidationIssue,
    check_info,
    check_version,
    issue,
    load_upload,
    unique_import_name,
)
from ..storage import SpecStore
from .document import (
    DIFF_FIELD,
    ENTRYPOINT_FIELD,
    ID_FIELD,
    PROGRESS_FIELD,
    component_section,
    section,
)
from .models import ImportResult
from .references import (
    rename_keys,
    rewrite_channel_refs,
    rewrite_message_refs,
    rewrite_schema_refs,
    rewrite_server_refs,
)
from .servers import first_server_pathname

logger = structlog.get_logger()

VALID_ACTIONS = ("send", "receive")


def validate_document(data: dict) -> list[ValidationIssue]:
    """Check the required top-level AsyncAPI structure."""
    issues = check_version(data, "asyncapi", "AsyncAPI") + check_info(data)

    channels = data.get("channels")
    if channels is None:
        issues.append(issue("channels", "MISSING_REQUIRED_FIELD", "'channels' field is required"))
    elif not isinstance(channels, dict):
        issues.append(issue("channels", "INVALID_DATA_TYPE", "'channels' must be a map"))

    for key in ("servers", "components"):
        if data.get(key) is not None and not isinstance(data[key], dict):
            issues.append(issue(key, "INVALID_DATA_TYPE", f"'{key}' must be a map"))

    operations = data.get("operations")
    if operations is not None:
        if not isinstance(operations, dict):
            issues.append(issue("operations", "INVALID_DATA_TYPE", "'operations' must be a map"))
        else:
            for name, operation in operations.items():
                issues.extend(_validate_operation(f"operations.{name}", operation))
    return issues


def _validate_operation(location: str, operation) -> list[ValidationIssue]:
    if not isinstance(operation, dict):
        return [issue(location, "INVALID_DATA_TYPE", "operation must be a map")]
    issues = []
    action = operation.get("action")
    if action is None:
        issues.append(issue(f"{location}.action", "MISSING_REQUIRED_FIELD", "'action' field is required"))
    elif action not in VALID_ACTIONS:
        issues.append(issue(f"{location}.action", "INVALID_ACTION", f"action must be send or receive, got '{action}'"))
    if operation.get("channel") is None:
        issues.append(issue(f"{location}.channel", "MISSING_REQUIRED_FIELD", "'channel' field is required"))
    return issues


def parse_import(content: str, filename: str | None = None) -> dict:
    """Validate uploaded content, raising ImportValidationError with every issue found."""
    data = load_upload(content, filename)
    issues = validate_document(data)
    if issues:
        raise ImportValidationError(issues)
    return data


def _merge(target: dict, incoming: dict, kind: ItemType, renamed: list[RenamedItem]) -> dict[str, str]:
    """Add ``incoming`` items to ``target``, renaming collisions. Returns old -> new names."""
    renames = {}
    for name, item in incoming.items():
        new_name = name
        if name in target:
            new_name = unique_import_name(name, target)
            renames[name] = new_name
            action = item.get("action") if kind == "operation" and isinstance(item, dict) else None
            renamed.append(RenamedItem(type=kind, original=name, renamed=new_name, action=action))
            logger.info("import_renamed", kind=kind, original=name, renamed=new_name)
        target[new_name] = item
    return renames


def _summary(result: ImportResult) -> str:
    text = (
        f"Successfully imported {result.imported_channels} channels, "
        f"{result.imported_operations} operations, {result.imported_schemas} schemas, "
        f"{result.imported_messages} messages"
    )
    if result.renamed:
        text += f", renamed {len(result.renamed)} items due to duplicates"
    return text


class ImportService:
    def __init__(self, store: SpecStore):
        self.store = store

    def import_yaml(self, content: str, filename: str | None = None) -> ImportResult:
        imported = copy.deepcopy(parse_import(content, filename))
        components = imported.get("components") or {}
        schemas = components.get("schemas") or {}
        messages = components.get("messages") or {}
        servers = imported.get("servers") or {}
        channels = imported.get("channels") or {}
        operations = imported.get("operations") or {}

        with self.store.write_locked():
            document = self.store.read()
            result = ImportResult()

            schema_renames = _merge(component_section(document, "schemas"), schemas, "schema", result.renamed)
            result.imported_schemas = len(schemas)

            for message in messages.values():
                rewrite_schema_refs(message, schema_renames)
            message_renames = _merge(component_section(document, "messages"), messages, "message", result.renamed)
            result.imported_messages = len(messages)

            server_renames = _merge(section(document, "servers"), servers, "server", result.renamed)
            result.imported_servers = len(servers)

            for channel in channels.values():
                if not isinstance(channel, dict):
                    continue
                rewrite_message_refs(channel, message_renames)
                rewrite_server_refs(channel, server_renames)
                if isinstance(channel.get("messages"), dict):
                    channel["messages"] = rename_keys(channel["messages"], message_renames)
            channel_renames = _merge(section(document, "channels"), channels, "channel", result.renamed)
            result.imported_channels = len(channels)

            entrypoint = first_server_pathname(servers)
            for operation in operations.values():
                if not isinstance(operation, dict):
                    continue
                rewrite_message_refs(operation, message_renames)
                rewrite_channel_refs(operation, channel_renames)
                _enrich_operation(operation, entrypoint)
            _merge(section(document, "operations"), operations, "operation", result.renamed)
            result.imported_operations = len(operations)

            self.store.write(document)

        result.summary = _summary(result)
        logger.info("import_completed", summary=result.summary, renamed=len(result.renamed))
        return result


def _enrich_operation(operation: dict, entrypoint: str | None) -> None:
    if not operation.get(ID_FIELD):
        operation[ID_FIELD] = str(uuid.uuid4())
    operation.setdefault(PROGRESS_FIELD, "none")
    operation.setdefault(DIFF_FIELD, "none")
    if entrypoint and not operation.get(ENTRYPOINT_FIELD):
        operation[ENTRYPOINT_FIELD] = entrypoint
