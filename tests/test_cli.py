import json
import shutil
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from ouroboros_spec.cli import main

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def _no_logging_setup():
    with patch("ouroboros_spec.cli.configure_logging"):
        yield


class TestCliSync:
    def test_sync_reports_counts(self, tmp_path):
        spec_path = tmp_path / "ourorest.yml"
        shutil.copy(FIXTURES / "rest_file.yaml", spec_path)

        result = CliRunner().invoke(main, ["sync", str(FIXTURES / "rest_scan.yaml"), "--spec", str(spec_path)])

        assert result.exit_code == 0
        assert f"Reconciled {spec_path}" in result.output
        assert "  endpoint: 1" in result.output
        assert "  request: 1" in result.output
        assert "  none: 1" in result.output

    def test_sync_unparseable_spec_fails(self, tmp_path):
        spec_path = tmp_path / "ourorest.yml"
        spec_path.write_text("paths: [unclosed\n", encoding="utf-8")

        result = CliRunner().invoke(main, ["sync", str(FIXTURES / "rest_scan.yaml"), "--spec", str(spec_path)])

        assert result.exit_code == 1
        assert "Failed to parse" in result.output

    def test_sync_missing_scan(self, tmp_path):
        result = CliRunner().invoke(main, ["sync", str(tmp_path / "nope.yaml")])
        assert result.exit_code != 0


class TestCliWebSocket:
    def test_import_yaml(self, tmp_path):
        spec_path = tmp_path / "ws.yml"
        shutil.copy(FIXTURES / "asyncapi_existing.yaml", spec_path)

        result = CliRunner().invoke(main, ["import-yaml", str(FIXTURES / "asyncapi_import.yaml"), "--spec", str(spec_path)])

        assert result.exit_code == 0
        assert "Successfully imported 2 channels" in result.output
        assert "  schema: User -> User-import" in result.output

    def test_import_invalid_lists_issues(self, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("asyncapi: 2.0.0\n", encoding="utf-8")

        result = CliRunner().invoke(main, ["import-yaml", str(bad), "--spec", str(tmp_path / "ws.yml")])

        assert result.exit_code == 1
        assert "[UNSUPPORTED_VERSION] asyncapi" in result.output
        assert not (tmp_path / "ws.yml").exists()

    def test_operations_listing(self, tmp_path):
        spec_path = tmp_path / "ws.yml"
        shutil.copy(FIXTURES / "asyncapi_existing.yaml", spec_path)

        result = CliRunner().invoke(main, ["operations", "--spec", str(spec_path)])

        assert result.exit_code == 0
        assert "_chat.send_receive\treceive\t11111111-1111-1111-1111-111111111111" in result.output

    def test_operations_empty(self, tmp_path):
        result = CliRunner().invoke(main, ["operations", "--spec", str(tmp_path / "ws.yml")])
        assert "No operations." in result.output

    def test_channels_listing(self, tmp_path):
        spec_path = tmp_path / "ws.yml"
        shutil.copy(FIXTURES / "asyncapi_existing.yaml", spec_path)

        result = CliRunner().invoke(main, ["channels", "--spec", str(spec_path)])

        assert "_chat.send\t/chat.send" in result.output

    def test_delete_operation(self, tmp_path):
        spec_path = tmp_path / "ws.yml"
        shutil.copy(FIXTURES / "asyncapi_existing.yaml", spec_path)

        result = CliRunner().invoke(
            main, ["delete-operation", "11111111-1111-1111-1111-111111111111", "--spec", str(spec_path)]
        )

        assert result.exit_code == 0
        document = yaml.safe_load(spec_path.read_text(encoding="utf-8"))
        assert document["operations"] == {}
        assert document["channels"] == {}

    def test_delete_unknown_operation(self, tmp_path):
        spec_path = tmp_path / "ws.yml"
        shutil.copy(FIXTURES / "asyncapi_existing.yaml", spec_path)

        result = CliRunner().invoke(main, ["delete-operation", "missing", "--spec", str(spec_path)])

        assert result.exit_code == 1
        assert "Operation 'missing' not found" in result.output

    def test_operations_json_view(self, tmp_path):
        spec_path = tmp_path / "ws.yml"
        shutil.copy(FIXTURES / "asyncapi_existing.yaml", spec_path)

        result = CliRunner().invoke(main, ["operations", "--spec", str(spec_path), "--json"])

        assert result.exit_code == 0
        [entry] = json.loads(result.output)
        assert entry["name"] == "_chat.send_receive"
        assert entry["operation"]["id"] == "11111111-1111-1111-1111-111111111111"
        assert entry["operation"]["channel"] == {"ref": "#/channels/_chat.send"}

    def test_schemas_listing(self, tmp_path):
        spec_path = tmp_path / "ws.yml"
        shutil.copy(FIXTURES / "asyncapi_existing.yaml", spec_path)

        result = CliRunner().invoke(main, ["schemas", "--spec", str(spec_path)])

        assert result.exit_code == 0
        assert result.output.splitlines() == ["User"]

    def test_messages_json_view(self, tmp_path):
        spec_path = tmp_path / "ws.yml"
        shutil.copy(FIXTURES / "asyncapi_existing.yaml", spec_path)

        result = CliRunner().invoke(main, ["messages", "--spec", str(spec_path), "--json"])

        assert result.exit_code == 0
        assert json.loads(result.output) == {
            "ChatMessage": {"name": "ChatMessage", "payload": {"ref": "#/components/schemas/User"}},
        }

    def test_messages_empty(self, tmp_path):
        result = CliRunner().invoke(main, ["messages", "--spec", str(tmp_path / "ws.yml")])
        assert "No messages." in result.output

    def test_channels_json_view(self, tmp_path):
        spec_path = tmp_path / "ws.yml"
        shutil.copy(FIXTURES / "asyncapi_existing.yaml", spec_path)

        result = CliRunner().invoke(main, ["channels", "--spec", str(spec_path), "--json"])

        channels = json.loads(result.output)
        assert channels["_chat.send"]["messages"]["ChatMessage"] == {"ref": "#/components/messages/ChatMessage"}


class TestCliRest:
    def test_rest_operations_listing(self, tmp_path):
        spec_path = tmp_path / "ourorest.yml"
        shutil.copy(FIXTURES / "rest_file.yaml", spec_path)

        result = CliRunner().invoke(main, ["rest-operations", "--spec", str(spec_path)])

        assert result.exit_code == 0
        assert "GET /users\tnone\t5c2e8d0a-1111-4a3b-8c9d-000000000001" in result.output

    def test_rest_operations_json_view(self, tmp_path):
        spec_path = tmp_path / "ourorest.yml"
        shutil.copy(FIXTURES / "rest_file.yaml", spec_path)

        result = CliRunner().invoke(main, ["rest-operations", "--spec", str(spec_path), "--json"])

        entries = json.loads(result.output)
        assert [(e["method"], e["path"]) for e in entries] == [("get", "/users/{id}"), ("get", "/users")]
        schema = entries[0]["operation"]["responses"]["200"]["content"]["application/json"]["schema"]
        assert schema == {"ref": "#/components/schemas/User"}
        assert entries[0]["operation"]["progress"] == "mock"

    def test_rest_import(self, tmp_path):
        spec_path = tmp_path / "ourorest.yml"
        shutil.copy(FIXTURES / "rest_file.yaml", spec_path)

        result = CliRunner().invoke(main, ["rest-import", str(FIXTURES / "openapi_import.yaml"), "--spec", str(spec_path)])

        assert result.exit_code == 0
        assert "Successfully imported 2 APIs and 2 schemas" in result.output
        assert "  api GET: /users -> /users-import" in result.output
        assert "  schema: User -> User-import" in result.output

    def test_rest_delete_operation(self, tmp_path):
        spec_path = tmp_path / "ourorest.yml"
        shutil.copy(FIXTURES / "rest_file.yaml", spec_path)

        result = CliRunner().invoke(
            main, ["rest-delete-operation", "5c2e8d0a-1111-4a3b-8c9d-000000000001", "--spec", str(spec_path)]
        )

        assert result.exit_code == 0
        assert "/users" not in yaml.safe_load(spec_path.read_text(encoding="utf-8"))["paths"]

    def test_rest_delete_unknown(self, tmp_path):
        spec_path = tmp_path / "ourorest.yml"
        shutil.copy(FIXTURES / "rest_file.yaml", spec_path)

        result = CliRunner().invoke(main, ["rest-delete-operation", "ghost", "--spec", str(spec_path)])

        assert result.exit_code == 1
        assert "Operation 'ghost' not found" in result.output
