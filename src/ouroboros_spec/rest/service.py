"""REST specification service: reconciliation passes and spec loading."""

import structlog
from pydantic import ValidationError

from ..errors import SpecParseError
from ..models import RestApiSpec, RestOperationEntry
from ..scanner import Scanner
from ..storage import SpecStore, ensure_section
from .pipeline import RestSpecSyncPipeline

logger = structlog.get_logger()

DEFAULT_INFO = {"title": "Ouroboros API", "version": "1.0.0"}


class OpenApiLayout:
    """Minimal OpenAPI document and its required sections."""

    def create(self) -> dict:
        return {
            "openapi": "3.1.0",
            "info": dict(DEFAULT_INFO),
            "paths": {},
            "components": {"schemas": {}},
        }

    def repair(self, document: dict) -> list[str]:
        repaired = []
        if not document.get("openapi"):
            document["openapi"] = "3.1.0"
            repaired.append("openapi")
        if not isinstance(document.get("info"), dict):
            document["info"] = dict(DEFAULT_INFO)
            repaired.append("info")
        if ensure_section(document, "paths")[1]:
            repaired.append("paths")
        components, created = ensure_section(document, "components")
        if created:
            repaired.append("components")
        if ensure_section(components, "schemas")[1]:
            repaired.append("components.schemas")
        return repaired


def _parse(document: dict, source: str) -> RestApiSpec:
    try:
        return RestApiSpec.from_document(document)
    except ValidationError as e:
        raise SpecParseError(source, str(e)) from e


def load_spec(store: SpecStore) -> RestApiSpec:
    """Parse the stored document; a repair is written back only once it parses."""
    document, repaired = store.load()
    spec = _parse(document, str(store.path))
    if repaired:
        store.save_repaired(document, repaired)
    return spec


class RestSyncService:
    def __init__(self, store: SpecStore, scanner: Scanner, pipeline: RestSpecSyncPipeline | None = None):
        self.store = store
        self.scanner = scanner
        self.pipeline = pipeline or RestSpecSyncPipeline()

    def sync(self) -> RestApiSpec:
        """Run one reconciliation pass and persist the result.

        A file that cannot be parsed aborts the pass with SpecParseError
        and is left untouched on disk.
        """
        with self.store.write_locked():
            source = str(self.store.path)
            try:
                file_spec = load_spec(self.store) if self.store.exists() else None
                scan_spec = _parse(self.scanner.scan(), "scanned spec")
            except SpecParseError as e:
                logger.error("sync_aborted", path=source, reason=e.reason)
                raise

            result = self.pipeline.validate(file_spec, scan_spec)
            self.store.write(result.to_document())
            logger.info("sync_completed", path=source, operations=len(operation_entries(result)))
            return result


def operation_entries(spec: RestApiSpec) -> list[RestOperationEntry]:
    entries = []
    for url, item in (spec.paths or {}).items():
        if item is None:
            continue
        for method, operation in item.operations():
            entries.append(RestOperationEntry(path=url, method=method, operation=operation))
    return entries
