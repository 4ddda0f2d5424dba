import shutil
from pathlib import Path

import pytest
import yaml

from ouroboros_spec.errors import DuplicateError, NotFoundError
from ouroboros_spec.storage import SpecStore
from ouroboros_spec.websocket.components import ComponentService
from ouroboros_spec.websocket.document import AsyncApiLayout

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def service(tmp_path) -> ComponentService:
    path = tmp_path / "ws.yml"
    shutil.copy(FIXTURES / "asyncapi_existing.yaml", path)
    return ComponentService(SpecStore(path, AsyncApiLayout()))


def _on_disk(service: ComponentService) -> dict:
    return yaml.safe_load(service.store.path.read_text(encoding="utf-8"))


class TestSchemas:
    def test_create_and_get(self, service):
        service.create_schema("Room", {"type": "object", "properties": {"name": {"type": "string"}}})
        assert service.get_schema("Room")["properties"]["name"] == {"type": "string"}
        assert set(service.list_schemas()) == {"User", "Room"}

    def test_create_duplicate_rejected(self, service):
        before = service.store.path.read_text(encoding="utf-8")
        with pytest.raises(DuplicateError, match="Schema 'User' already exists"):
            service.create_schema("User", {"type": "object"})
        assert service.store.path.read_text(encoding="utf-8") == before

    def test_get_unknown(self, service):
        with pytest.raises(NotFoundError, match="Schema 'Ghost' not found"):
            service.get_schema("Ghost")

    def test_update_definition(self, service):
        service.update_schema("User", {"type": "object", "properties": {"id": {"type": "string"}}})
        assert _on_disk(service)["components"]["schemas"]["User"]["properties"]["id"] == {"type": "string"}

    def test_rename_rewrites_refs(self, service):
        service.update_schema("User", new_name="Account")

        document = _on_disk(service)
        assert list(document["components"]["schemas"]) == ["Account"]
        assert document["components"]["messages"]["ChatMessage"]["payload"] == {"$ref": "#/components/schemas/Account"}

    def test_rename_onto_existing_rejected(self, service):
        service.create_schema("Account", {"type": "object"})
        with pytest.raises(DuplicateError):
            service.update_schema("User", new_name="Account")

    def test_delete(self, service):
        service.delete_schema("User")
        assert _on_disk(service)["components"]["schemas"] == {}
        with pytest.raises(NotFoundError):
            service.delete_schema("User")


class TestMessages:
    def test_create_and_list(self, service):
        service.create_message("Join", {"payload": {"type": "string"}})
        assert list(service.list_messages()) == ["ChatMessage", "Join"]

    def test_create_duplicate_rejected(self, service):
        with pytest.raises(DuplicateError, match="Message 'ChatMessage' already exists"):
            service.create_message("ChatMessage", {})

    def test_rename_updates_channels_and_operations(self, service):
        service.update_message("ChatMessage", new_name="Chat")

        document = _on_disk(service)
        assert list(document["components"]["messages"]) == ["Chat"]
        assert document["channels"]["_chat.send"]["messages"] == {"Chat": {"$ref": "#/components/messages/Chat"}}
        assert document["operations"]["_chat.send_receive"]["messages"] == [
            {"$ref": "#/channels/_chat.send/messages/Chat"},
        ]

    def test_delete_removes_from_channels(self, service):
        service.delete_message("ChatMessage")

        document = _on_disk(service)
        assert document["components"]["messages"] == {}
        assert document["channels"]["_chat.send"]["messages"] == {}

    def test_get_unknown(self, service):
        with pytest.raises(NotFoundError, match="Message 'Nope' not found"):
            service.get_message("Nope")
