"""One reconciliation pass of the REST file spec against a scanned spec."""

import uuid

import structlog

from ..models import (
    RESPONSE_MARKER_USE,
    Components,
    DiffState,
    HttpMethod,
    Operation,
    PathItem,
    Progress,
    RestApiSpec,
    Schema,
    schema_name_from_ref,
)
from .flattener import flatten_schemas
from .request_comparator import NO_TAG, compare_and_mark_request
from .response_comparator import compare_responses_for_method
from .schema_comparator import compare_flattened

logger = structlog.get_logger()


def _schema_refs(schema: Schema | None, found: set[str]) -> None:
    if schema is None:
        return
    name = schema_name_from_ref(schema.ref)
    if name:
        found.add(name)
    for prop in (schema.properties or {}).values():
        _schema_refs(prop, found)
    _schema_refs(schema.items, found)


def operation_schema_refs(operation: Operation) -> set[str]:
    """Schema names referenced directly by parameters, body or responses."""
    found: set[str] = set()
    for param in operation.parameters or []:
        if param is not None:
            _schema_refs(param.schema_, found)
    if operation.request_body is not None:
        for media in (operation.request_body.content or {}).values():
            if media is not None:
                _schema_refs(media.schema_, found)
    for response in (operation.responses or {}).values():
        if response is not None:
            for media in (response.content or {}).values():
                if media is not None:
                    _schema_refs(media.schema_, found)
    return found


def copy_referenced_schemas(operation: Operation, source: RestApiSpec, target: RestApiSpec) -> list[str]:
    """Copy schemas the operation needs (transitively) that ``target`` lacks."""
    source_schemas = source.schemas()
    if target.components is None:
        target.components = Components()
    if target.components.schemas is None:
        target.components.schemas = {}
    target_schemas = target.components.schemas

    copied = []
    pending = sorted(operation_schema_refs(operation))
    seen: set[str] = set()
    while pending:
        name = pending.pop()
        if name in seen:
            continue
        seen.add(name)
        schema = source_schemas.get(name)
        if schema is None:
            continue
        if name not in target_schemas:
            target_schemas[name] = schema.model_copy(deep=True)
            copied.append(name)
        nested: set[str] = set()
        _schema_refs(schema, nested)
        pending.extend(sorted(nested - seen))
    return copied


class RestSpecSyncPipeline:
    """Reconcile a file spec with a scanned spec.

    The scanned spec is never mutated; the returned spec is the file spec
    with diff/progress markers updated (or a fresh adoption of the scan when
    there is no file spec yet).
    """

    def validate(self, file_spec: RestApiSpec | None, scan_spec: RestApiSpec) -> RestApiSpec:
        scan_spec = scan_spec.model_copy(deep=True)

        if file_spec is None or (not file_spec.paths and scan_spec.paths):
            return self._adopt(file_spec, scan_spec)

        self._preserve_security_schemes(file_spec, scan_spec)

        file_flat = flatten_schemas(file_spec.components)
        scan_flat = flatten_schemas(scan_spec.components)
        schema_results = compare_flattened(scan_flat, file_flat).merged()

        if file_spec.paths is None:
            file_spec.paths = {}
        self._sweep(file_spec.paths)

        for url, scan_item in (scan_spec.paths or {}).items():
            if scan_item is None:
                continue
            file_item = file_spec.paths.get(url)
            if file_item is None:
                file_item = PathItem()
                file_spec.paths[url] = file_item

            for method in HttpMethod:
                scan_op = scan_item.get_operation(method)
                if scan_op is None:
                    continue
                file_op = file_item.get_operation(method)

                if file_op is None:
                    self._add_endpoint(url, method, scan_op, file_item, file_spec, scan_spec)
                    continue
                if file_op.diff == DiffState.ENDPOINT:
                    continue
                if scan_op.progress == Progress.MOCK:
                    file_op.progress = Progress.MOCK
                    if scan_op.tag:
                        file_op.tag = scan_op.tag
                    continue

                compare_and_mark_request(url, file_op, scan_op, method, file_flat, scan_flat)
                if scan_op.response_marker == RESPONSE_MARKER_USE:
                    compare_responses_for_method(url, method, scan_op, file_op, schema_results)

            if next(file_item.operations(), None) is None:
                del file_spec.paths[url]

        return file_spec

    def _adopt(self, file_spec: RestApiSpec | None, scan_spec: RestApiSpec) -> RestApiSpec:
        """No declared paths yet: every scanned operation is undeclared drift.

        The file's info, security schemes and schemas the scan lacks are kept.
        """
        if file_spec is not None:
            if file_spec.info:
                scan_spec.info = file_spec.info
            self._preserve_security_schemes(file_spec, scan_spec)
            for name, schema in file_spec.schemas().items():
                if scan_spec.components is None:
                    scan_spec.components = Components()
                if scan_spec.components.schemas is None:
                    scan_spec.components.schemas = {}
                scan_spec.components.schemas.setdefault(name, schema)
        for url, item in (scan_spec.paths or {}).items():
            if item is None:
                continue
            for method, operation in item.operations():
                operation.id = operation.id or str(uuid.uuid4())
                operation.diff = DiffState.ENDPOINT
                operation.tag = NO_TAG
        logger.info("spec_bootstrapped", paths=len(scan_spec.paths or {}))
        return scan_spec

    def _preserve_security_schemes(self, file_spec: RestApiSpec, scan_spec: RestApiSpec) -> None:
        # The scanner cannot see authentication annotations
        if file_spec.components is None or not file_spec.components.security_schemes:
            return
        if scan_spec.components is None:
            scan_spec.components = Components()
        scan_spec.components.security_schemes = dict(file_spec.components.security_schemes)

    def _sweep(self, paths: dict[str, PathItem | None]) -> None:
        """Clear provisional endpoint operations and reset the rest for this pass."""
        for url in list(paths):
            item = paths[url]
            if item is None:
                del paths[url]
                continue
            remaining = 0
            for method, operation in list(item.operations()):
                if operation.diff == DiffState.ENDPOINT:
                    item.set_operation(method, None)
                    continue
                operation.diff = DiffState.NONE
                operation.progress = Progress.MOCK
                operation.tag = NO_TAG
                remaining += 1
            if remaining == 0:
                del paths[url]
                logger.debug("path_removed", path=url)

    def _add_endpoint(
        self,
        url: str,
        method: HttpMethod,
        scan_op: Operation,
        file_item: PathItem,
        file_spec: RestApiSpec,
        scan_spec: RestApiSpec,
    ) -> None:
        operation = scan_op.model_copy(deep=True)
        operation.id = operation.id or str(uuid.uuid4())
        operation.diff = DiffState.ENDPOINT
        operation.tag = NO_TAG
        file_item.set_operation(method, operation)
        copied = copy_referenced_schemas(operation, scan_spec, file_spec)
        logger.info("endpoint_drift", path=url, method=method.value, copied_schemas=copied)
