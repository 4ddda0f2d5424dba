"""CLI entry point for ouroboros-spec."""

import json
import sys
from pathlib import Path

import click

from ouroboros_spec.config import get_settings
from ouroboros_spec.errors import ImportValidationError, SpecError
from ouroboros_spec.logging_setup import configure_logging
from ouroboros_spec.models import DiffState
from ouroboros_spec.rest.importer import RestImportService
from ouroboros_spec.rest.operations import RestOperationService
from ouroboros_spec.rest.service import OpenApiLayout, RestSyncService
from ouroboros_spec.scanner import YamlFileScanner
from ouroboros_spec.storage import SpecStore
from ouroboros_spec.views import to_json_view
from ouroboros_spec.websocket.channels import ChannelManager
from ouroboros_spec.websocket.components import ComponentService
from ouroboros_spec.websocket.document import AsyncApiLayout
from ouroboros_spec.websocket.importer import ImportService
from ouroboros_spec.websocket.operations import OperationService
from ouroboros_spec.websocket.servers import ServerManager

SPEC_HELP = "Spec file (defaults to the configured path)."
json_option = click.option("--json", "as_json", is_flag=True, help="Print the JSON view instead of a table.")


def _fail(error: SpecError):
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, ImportValidationError):
        for issue in error.issues:
            click.echo(f"  [{issue.error_code}] {issue.location}: {issue.message}", err=True)
    sys.exit(1)


def _echo_json(data) -> None:
    click.echo(json.dumps(to_json_view(data), indent=2, ensure_ascii=False))


def _rest_store(spec: Path | None) -> SpecStore:
    return SpecStore(spec or get_settings().rest_spec_path, OpenApiLayout())


def _websocket_store(spec: Path | None) -> SpecStore:
    return SpecStore(spec or get_settings().websocket_spec_path, AsyncApiLayout())


@click.group()
def main():
    """Ouroboros: keep OpenAPI / AsyncAPI spec files in sync with the service."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_json)


# REST

@main.command()
@click.argument("scanned", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--spec", type=click.Path(dir_okay=False, path_type=Path), default=None, help="REST spec file to reconcile.")
def sync(scanned: Path, spec: Path | None):
    """Reconcile the REST spec file against a scanned spec."""
    store = _rest_store(spec)
    service = RestSyncService(store, YamlFileScanner(scanned))
    try:
        result = service.sync()
    except SpecError as e:
        _fail(e)

    counts: dict[str, int] = {}
    for item in (result.paths or {}).values():
        if item is None:
            continue
        for _, operation in item.operations():
            diff = DiffState(operation.diff or DiffState.NONE).value
            counts[diff] = counts.get(diff, 0) + 1
    click.echo(f"Reconciled {store.path}")
    for diff, count in sorted(counts.items()):
        click.echo(f"  {diff}: {count}")


@main.command("rest-operations")
@click.option("--spec", type=click.Path(dir_okay=False, path_type=Path), default=None, help=SPEC_HELP)
@json_option
def rest_operations(spec: Path | None, as_json: bool):
    """List REST operations with their diff state."""
    service = RestOperationService(_rest_store(spec))
    try:
        entries = service.list_operations()
    except SpecError as e:
        _fail(e)

    if as_json:
        _echo_json([
            {"path": entry.path, "method": entry.method.value, "operation": entry.operation.to_document()}
            for entry in entries
        ])
        return
    if not entries:
        click.echo("No operations.")
        return
    for entry in entries:
        operation = entry.operation
        click.echo(f"{entry.method.value.upper()} {entry.path}\t{operation.diff or 'none'}\t{operation.id or '-'}")


@main.command("rest-import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--spec", type=click.Path(dir_okay=False, path_type=Path), default=None, help="REST spec file to import into.")
def rest_import(file: Path, spec: Path | None):
    """Merge an OpenAPI document into the REST spec."""
    service = RestImportService(_rest_store(spec))
    try:
        result = service.import_yaml(file.read_text(encoding="utf-8"), file.name)
    except SpecError as e:
        _fail(e)

    click.echo(result.summary)
    for item in result.renamed:
        label = f"{item.type} {item.method}" if item.method else item.type
        click.echo(f"  {label}: {item.original} -> {item.renamed}")


@main.command("rest-delete-operation")
@click.argument("operation_id")
@click.option("--spec", type=click.Path(dir_okay=False, path_type=Path), default=None, help=SPEC_HELP)
def rest_delete_operation(operation_id: str, spec: Path | None):
    """Delete a REST operation by its id."""
    try:
        RestOperationService(_rest_store(spec)).delete_operation(operation_id)
    except SpecError as e:
        _fail(e)
    click.echo(f"Deleted operation {operation_id}")


# WebSocket

@main.command("import-yaml")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--spec", type=click.Path(dir_okay=False, path_type=Path), default=None, help="WebSocket spec file to import into.")
def import_yaml(file: Path, spec: Path | None):
    """Merge an AsyncAPI document into the WebSocket spec."""
    service = ImportService(_websocket_store(spec))
    try:
        result = service.import_yaml(file.read_text(encoding="utf-8"), file.name)
    except SpecError as e:
        _fail(e)

    click.echo(result.summary)
    for item in result.renamed:
        click.echo(f"  {item.type}: {item.original} -> {item.renamed}")


@main.command()
@click.option("--spec", type=click.Path(dir_okay=False, path_type=Path), default=None, help="WebSocket spec file.")
@json_option
def operations(spec: Path | None, as_json: bool):
    """List WebSocket operations."""
    service = OperationService(_websocket_store(spec), servers=ServerManager(get_settings().default_server_host))
    try:
        entries = service.list_operations()
    except SpecError as e:
        _fail(e)

    if as_json:
        _echo_json([entry.model_dump() for entry in entries])
        return
    if not entries:
        click.echo("No operations.")
        return
    for entry in entries:
        operation_id = entry.operation.get("x-ouroboros-id", "-")
        click.echo(f"{entry.name}\t{entry.tag}\t{operation_id}")


@main.command()
@click.option("--spec", type=click.Path(dir_okay=False, path_type=Path), default=None, help="WebSocket spec file.")
@json_option
def channels(spec: Path | None, as_json: bool):
    """List WebSocket channels."""
    try:
        entries = ChannelManager(_websocket_store(spec)).list_channels()
    except SpecError as e:
        _fail(e)

    if as_json:
        _echo_json({entry.name: entry.channel for entry in entries})
        return
    for entry in entries:
        click.echo(f"{entry.name}\t{entry.channel.get('address', '-')}")


def _list_components(items: dict[str, dict], as_json: bool, empty: str) -> None:
    if as_json:
        _echo_json(items)
        return
    if not items:
        click.echo(empty)
        return
    for name in items:
        click.echo(name)


@main.command()
@click.option("--spec", type=click.Path(dir_okay=False, path_type=Path), default=None, help="WebSocket spec file.")
@json_option
def schemas(spec: Path | None, as_json: bool):
    """List WebSocket component schemas."""
    try:
        items = ComponentService(_websocket_store(spec)).list_schemas()
    except SpecError as e:
        _fail(e)
    _list_components(items, as_json, "No schemas.")


@main.command()
@click.option("--spec", type=click.Path(dir_okay=False, path_type=Path), default=None, help="WebSocket spec file.")
@json_option
def messages(spec: Path | None, as_json: bool):
    """List WebSocket component messages."""
    try:
        items = ComponentService(_websocket_store(spec)).list_messages()
    except SpecError as e:
        _fail(e)
    _list_components(items, as_json, "No messages.")


@main.command("delete-operation")
@click.argument("operation_id")
@click.option("--spec", type=click.Path(dir_okay=False, path_type=Path), default=None, help="WebSocket spec file.")
def delete_operation(operation_id: str, spec: Path | None):
    """Delete a WebSocket operation and any channels it leaves unused."""
    service = OperationService(_websocket_store(spec))
    try:
        service.delete_operation(operation_id)
    except SpecError as e:
        _fail(e)
    click.echo(f"Deleted operation {operation_id}")
