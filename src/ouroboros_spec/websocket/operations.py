"""WebSocket operation CRUD over the AsyncAPI document.

Operations are created from receive/reply channel pairs. Channels and
servers they name are created on demand; channels an edit leaves unused
are garbage collected.
"""

import uuid

import structlog

from ..errors import InvalidRequestError, NotFoundError
from ..storage import SpecStore
from .channels import ChannelManager
from .document import (
    DIFF_FIELD,
    ENTRYPOINT_FIELD,
    ID_FIELD,
    PROGRESS_FIELD,
    channel_message_ref,
    channel_name_of,
    channel_ref,
    find_operation,
    referenced_channels,
    section,
)
from .models import ChannelInfo, OperationEntry
from .servers import ServerManager

logger = structlog.get_logger()


def generate_operation_name(receive: str | None, reply: str | None, operations: dict) -> str:
    """``{receive}_to_{reply}``, ``{receive}_receive`` or ``{reply}_send``, suffixed until unique."""
    if receive and reply:
        base = f"{receive}_to_{reply}"
    elif receive:
        base = f"{receive}_receive"
    elif reply:
        base = f"{reply}_send"
    else:
        raise InvalidRequestError("receive or reply channel is required")

    name = base
    counter = 1
    while name in operations:
        name = f"{base}_{counter}"
        counter += 1
    return name


def operation_tag(operation: dict) -> str:
    action = operation.get("action")
    if action == "send":
        return "sendto"
    if action == "receive" and operation.get("reply"):
        return "duplicate"
    return "receive"


def _message_refs(channel: str, messages: list[str]) -> list[dict]:
    return [channel_message_ref(channel, message) for message in messages]


def build_operation(
    receive_channel: str | None,
    receive_messages: list[str],
    reply_channel: str | None,
    reply_messages: list[str],
    entrypoint: str,
) -> dict:
    operation: dict = {}
    if receive_channel:
        operation["action"] = "receive"
        operation["channel"] = channel_ref(receive_channel)
        if receive_messages:
            operation["messages"] = _message_refs(receive_channel, receive_messages)
    else:
        # Send-only: the reply channel is the main channel
        operation["action"] = "send"
        operation["channel"] = channel_ref(reply_channel)
        if reply_messages:
            operation["messages"] = _message_refs(reply_channel, reply_messages)

    if receive_channel and reply_channel:
        reply: dict = {"channel": channel_ref(reply_channel)}
        if reply_messages:
            reply["messages"] = _message_refs(reply_channel, reply_messages)
        operation["reply"] = reply

    operation[ID_FIELD] = str(uuid.uuid4())
    operation[ENTRYPOINT_FIELD] = entrypoint
    operation["bindings"] = {"stomp": {}}
    operation[DIFF_FIELD] = "none"
    operation[PROGRESS_FIELD] = "none"
    return operation


class OperationService:
    def __init__(
        self,
        store: SpecStore,
        channels: ChannelManager | None = None,
        servers: ServerManager | None = None,
    ):
        self.store = store
        self.channels = channels or ChannelManager(store)
        self.servers = servers or ServerManager()

    def create_operations(
        self,
        protocol: str,
        pathname: str,
        receives: list[ChannelInfo] | None = None,
        replies: list[ChannelInfo] | None = None,
    ) -> list[OperationEntry]:
        """Create every receive x reply combination, or one-sided operations."""
        receives = receives or []
        replies = replies or []
        if not receives and not replies:
            raise InvalidRequestError("At least one receive or reply channel must be provided")

        with self.store.write_locked():
            document = self.store.read()
            self.servers.ensure_server_exists(document, protocol, pathname)
            operations = section(document, "operations")

            pairs: list[tuple[ChannelInfo | None, ChannelInfo | None]]
            if not receives:
                pairs = [(None, reply) for reply in replies]
            elif not replies:
                pairs = [(receive, None) for receive in receives]
            else:
                pairs = [(receive, reply) for receive in receives for reply in replies]

            created = []
            for receive, reply in pairs:
                receive_name = self.channels.ensure_channel_exists(document, receive) if receive else None
                reply_name = self.channels.ensure_channel_exists(document, reply) if reply else None
                name = generate_operation_name(receive_name, reply_name, operations)
                operation = build_operation(
                    receive_name,
                    receive.messages if receive else [],
                    reply_name,
                    reply.messages if reply else [],
                    pathname,
                )
                operations[name] = operation
                created.append(OperationEntry(name=name, tag=operation_tag(operation), operation=operation))
                logger.info("operation_created", operation=name, receive=receive_name, reply=reply_name)

            self.store.write(document)
        return created

    def list_operations(self) -> list[OperationEntry]:
        with self.store.read_locked():
            operations = section(self.store.read(), "operations")
        return [
            OperationEntry(name=name, tag=operation_tag(operation), operation=operation)
            for name, operation in operations.items()
            if isinstance(operation, dict)
        ]

    def get_operation(self, operation_id: str) -> OperationEntry:
        with self.store.read_locked():
            found = find_operation(self.store.read(), operation_id)
        if found is None:
            raise NotFoundError("operation", operation_id)
        name, operation = found
        return OperationEntry(name=name, tag=operation_tag(operation), operation=operation)

    def update_operation(
        self,
        operation_id: str,
        receive: ChannelInfo | None = None,
        reply: ChannelInfo | None = None,
        protocol: str | None = None,
        pathname: str | None = None,
    ) -> OperationEntry:
        """Repoint an operation; a reply without a receive makes it send-only."""
        if bool(protocol) != bool(pathname):
            raise InvalidRequestError("protocol and pathname must be given together")

        with self.store.write_locked():
            document = self.store.read()
            found = find_operation(document, operation_id)
            if found is None:
                raise NotFoundError("operation", operation_id)
            name, existing = found
            before = referenced_channels(existing)
            updated = dict(existing)

            if protocol and pathname:
                self.servers.ensure_server_exists(document, protocol, pathname)
                updated[ENTRYPOINT_FIELD] = pathname

            if receive is not None:
                updated["action"] = "receive"
                receive_name = self.channels.ensure_channel_exists(document, receive)
                self._repoint(updated, receive_name, receive.messages)

            if reply is not None:
                reply_name = self.channels.ensure_channel_exists(document, reply)
                if receive is None:
                    updated["action"] = "send"
                    self._repoint(updated, reply_name, reply.messages)
                    updated.pop("reply", None)
                else:
                    reply_block: dict = {"channel": channel_ref(reply_name)}
                    if reply.messages:
                        reply_block["messages"] = _message_refs(reply_name, reply.messages)
                    updated["reply"] = reply_block

            section(document, "operations")[name] = updated
            self.channels.remove_unused_channels(document, before, referenced_channels(updated))
            self.store.write(document)

        logger.info("operation_updated", operation=name)
        return OperationEntry(name=name, tag=operation_tag(updated), operation=updated)

    def _repoint(self, operation: dict, channel: str, messages: list[str]) -> None:
        old_channel = channel_name_of(operation)
        operation["channel"] = channel_ref(channel)
        if messages:
            operation["messages"] = _message_refs(channel, messages)
        elif old_channel != channel:
            # Channel-scoped refs into the old channel no longer resolve
            operation.pop("messages", None)

    def delete_operation(self, operation_id: str) -> None:
        with self.store.write_locked():
            document = self.store.read()
            found = find_operation(document, operation_id)
            if found is None:
                raise NotFoundError("operation", operation_id)
            name, operation = found
            del section(document, "operations")[name]
            self.channels.remove_unused_channels(document, referenced_channels(operation), set())
            self.store.write(document)
        logger.info("operation_deleted", operation=name)
