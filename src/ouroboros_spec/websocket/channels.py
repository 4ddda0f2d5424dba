"""Channel creation and garbage collection.

Channels are created on demand when an operation names an unseen address
and removed once no operation uses them as main or reply channel.
"""

import structlog

from ..errors import InvalidRequestError, NotFoundError
from ..storage import SpecStore
from .document import MESSAGE_REF_PREFIX, referenced_channels, section
from .models import ChannelEntry, ChannelInfo

logger = structlog.get_logger()


def channel_name_for_address(address: str) -> str:
    """``/chat.send`` -> ``_chat.send``."""
    return "_" + address.lstrip("/").replace("/", "_")


def _message_entry(message: str) -> dict:
    return {"$ref": MESSAGE_REF_PREFIX + message}


class ChannelManager:
    def __init__(self, store: SpecStore | None = None):
        self.store = store

    def ensure_channel_exists(self, document: dict, info: ChannelInfo) -> str:
        """Resolve ``info`` to a channel name, creating the channel for a new address."""
        channels = section(document, "channels")

        if info.channel_ref:
            channel = channels.get(info.channel_ref)
            if not isinstance(channel, dict):
                raise NotFoundError("channel", info.channel_ref)
            self._add_messages(channel, info.messages)
            return info.channel_ref

        if not info.address:
            raise InvalidRequestError("channel reference or address is required")

        name = channel_name_for_address(info.address)
        channel = channels.get(name)
        if isinstance(channel, dict):
            self._add_messages(channel, info.messages)
            return name

        channels[name] = {
            "address": info.address,
            "messages": {message: _message_entry(message) for message in info.messages},
            "bindings": {"stomp": {}},
        }
        logger.info("channel_created", channel=name, address=info.address)
        return name

    def _add_messages(self, channel: dict, messages: list[str]) -> None:
        existing = channel.get("messages")
        if not isinstance(existing, dict):
            existing = {}
            channel["messages"] = existing
        for message in messages:
            existing.setdefault(message, _message_entry(message))

    def remove_unused_channels(self, document: dict, before: set[str], after: set[str]) -> list[str]:
        """Delete channels dropped by an edit that no operation still uses."""
        in_use: set[str] = set()
        for operation in section(document, "operations").values():
            if isinstance(operation, dict):
                in_use |= referenced_channels(operation)

        channels = section(document, "channels")
        removed = []
        for name in sorted(before - after):
            if name in in_use or name not in channels:
                continue
            del channels[name]
            removed.append(name)
            logger.info("channel_removed", channel=name)
        return removed

    def list_channels(self) -> list[ChannelEntry]:
        with self.store.read_locked():
            channels = section(self.store.read(), "channels")
        return [ChannelEntry(name=name, channel=channel or {}) for name, channel in channels.items()]

    def get_channel(self, name: str) -> ChannelEntry:
        with self.store.read_locked():
            channel = section(self.store.read(), "channels").get(name)
        if not isinstance(channel, dict):
            raise NotFoundError("channel", name)
        return ChannelEntry(name=name, channel=channel)
