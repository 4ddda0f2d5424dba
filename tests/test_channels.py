import shutil
from pathlib import Path

import pytest

from ouroboros_spec.errors import InvalidRequestError, NotFoundError
from ouroboros_spec.storage import SpecStore
from ouroboros_spec.websocket.channels import ChannelManager, channel_name_for_address
from ouroboros_spec.websocket.document import AsyncApiLayout, channel_ref
from ouroboros_spec.websocket.models import ChannelInfo

FIXTURES = Path(__file__).parent / "fixtures"


class TestChannelName:
    def test_address_to_name(self):
        assert channel_name_for_address("/chat.send") == "_chat.send"
        assert channel_name_for_address("/topic/room/1") == "_topic_room_1"
        assert channel_name_for_address("queue") == "_queue"


class TestEnsureChannelExists:
    def test_creates_channel_for_address(self):
        document = AsyncApiLayout().create()
        name = ChannelManager().ensure_channel_exists(document, ChannelInfo(address="/chat.send", messages=["ChatMessage"]))

        assert name == "_chat.send"
        assert document["channels"]["_chat.send"] == {
            "address": "/chat.send",
            "messages": {"ChatMessage": {"$ref": "#/components/messages/ChatMessage"}},
            "bindings": {"stomp": {}},
        }

    def test_existing_address_adds_messages(self):
        document = AsyncApiLayout().create()
        manager = ChannelManager()
        manager.ensure_channel_exists(document, ChannelInfo(address="/chat.send", messages=["A"]))
        manager.ensure_channel_exists(document, ChannelInfo(address="/chat.send", messages=["B"]))

        assert list(document["channels"]["_chat.send"]["messages"]) == ["A", "B"]

    def test_existing_channel_ref(self):
        document = AsyncApiLayout().create()
        document["channels"]["room"] = {"address": "/room"}

        name = ChannelManager().ensure_channel_exists(document, ChannelInfo(channel_ref="room", messages=["Join"]))
        assert name == "room"
        assert document["channels"]["room"]["messages"] == {"Join": {"$ref": "#/components/messages/Join"}}

    def test_unknown_channel_ref(self):
        with pytest.raises(NotFoundError, match="Channel 'ghost' not found"):
            ChannelManager().ensure_channel_exists(AsyncApiLayout().create(), ChannelInfo(channel_ref="ghost"))

    def test_requires_ref_or_address(self):
        with pytest.raises(InvalidRequestError):
            ChannelManager().ensure_channel_exists(AsyncApiLayout().create(), ChannelInfo())


class TestRemoveUnusedChannels:
    def _document(self) -> dict:
        document = AsyncApiLayout().create()
        document["channels"] = {"_a": {}, "_b": {}, "_c": {}}
        document["operations"] = {
            "op1": {"action": "receive", "channel": channel_ref("_a"), "reply": {"channel": channel_ref("_b")}},
        }
        return document

    def test_removes_channels_no_longer_used(self):
        document = self._document()
        removed = ChannelManager().remove_unused_channels(document, {"_a", "_c"}, set())
        assert removed == ["_c"]
        assert set(document["channels"]) == {"_a", "_b"}

    def test_reply_channel_counts_as_used(self):
        document = self._document()
        assert ChannelManager().remove_unused_channels(document, {"_b"}, set()) == []

    def test_channels_kept_after_edit_are_untouched(self):
        document = self._document()
        assert ChannelManager().remove_unused_channels(document, {"_c"}, {"_c"}) == []
        assert "_c" in document["channels"]


class TestChannelReads:
    def test_list_and_get(self, tmp_path):
        path = tmp_path / "ws.yml"
        shutil.copy(FIXTURES / "asyncapi_existing.yaml", path)
        manager = ChannelManager(SpecStore(path, AsyncApiLayout()))

        assert [entry.name for entry in manager.list_channels()] == ["_chat.send"]
        assert manager.get_channel("_chat.send").channel["address"] == "/chat.send"
        with pytest.raises(NotFoundError):
            manager.get_channel("_missing")
