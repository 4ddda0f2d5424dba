"""Schema and message CRUD for the AsyncAPI components section."""

import structlog

from ..components import ComponentTable
from ..storage import SpecStore
from .document import MESSAGE_REF_PREFIX, name_from_ref, section
from .references import rename_keys, rewrite_message_refs, rewrite_schema_refs

logger = structlog.get_logger()


class MessageTable(ComponentTable):
    """Messages also appear as keys of channel message maps."""

    def __init__(self, store: SpecStore):
        super().__init__(store, "messages", "message", rewrite_message_refs)

    def after_rename(self, document: dict, renames: dict[str, str]) -> None:
        for channel in section(document, "channels").values():
            if isinstance(channel, dict) and isinstance(channel.get("messages"), dict):
                channel["messages"] = rename_keys(channel["messages"], renames)

    def after_delete(self, document: dict, name: str) -> None:
        for channel_name, channel in section(document, "channels").items():
            if not isinstance(channel, dict) or not isinstance(channel.get("messages"), dict):
                continue
            messages = channel["messages"]
            for key in list(messages):
                entry = messages[key]
                points_at = name_from_ref(entry.get("$ref"), MESSAGE_REF_PREFIX) if isinstance(entry, dict) else None
                if key == name or points_at == name:
                    del messages[key]
                    logger.debug("channel_message_removed", channel=channel_name, message=name)


class ComponentService:
    def __init__(self, store: SpecStore):
        self.store = store
        self.schemas = ComponentTable(store, "schemas", "schema", rewrite_schema_refs)
        self.messages = MessageTable(store)

    # Schemas

    def list_schemas(self) -> dict[str, dict]:
        return self.schemas.entries()

    def get_schema(self, name: str) -> dict:
        return self.schemas.get(name)

    def create_schema(self, name: str, definition: dict) -> dict:
        return self.schemas.create(name, definition)

    def update_schema(self, name: str, definition: dict | None = None, new_name: str | None = None) -> dict:
        return self.schemas.update(name, definition, new_name)

    def delete_schema(self, name: str) -> None:
        self.schemas.delete(name)

    # Messages

    def list_messages(self) -> dict[str, dict]:
        return self.messages.entries()

    def get_message(self, name: str) -> dict:
        return self.messages.get(name)

    def create_message(self, name: str, definition: dict) -> dict:
        return self.messages.create(name, definition)

    def update_message(self, name: str, definition: dict | None = None, new_name: str | None = None) -> dict:
        return self.messages.update(name, definition, new_name)

    def delete_message(self, name: str) -> None:
        """Delete a message and drop it from every channel's message map."""
        self.messages.delete(name)
