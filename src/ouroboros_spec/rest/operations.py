"""Create, update and delete operations of the REST specification.

Operations are addressed by ``x-ouroboros-id``; a path and method pair
holds at most one operation. New operations start as mocks with no diff.
"""

import copy
import uuid

import structlog
from pydantic import ValidationError

from ..errors import DuplicateError, InvalidRequestError, NotFoundError
from ..models import DiffState, HttpMethod, Operation, Progress, RestOperationEntry
from ..storage import SpecStore, ensure_section
from .service import load_spec, operation_entries

logger = structlog.get_logger()

ID_FIELD = "x-ouroboros-id"
DIFF_FIELD = "x-ouroboros-diff"
PROGRESS_FIELD = "x-ouroboros-progress"
TAG_FIELD = "x-ouroboros-tag"
EXTENSION_PREFIX = "x-ouroboros-"


def parse_method(value: HttpMethod | str) -> HttpMethod:
    try:
        return HttpMethod(str(getattr(value, "value", value)).lower())
    except ValueError:
        raise InvalidRequestError(f"Unsupported HTTP method '{value}'") from None


def _check_path(path: str) -> None:
    if not path or not path.startswith("/"):
        raise InvalidRequestError(f"Path must start with '/', got '{path}'")


def _validated(path: str, method: HttpMethod, operation: dict) -> RestOperationEntry:
    try:
        model = Operation.model_validate(operation)
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid operation definition: {e}") from e
    return RestOperationEntry(path=path, method=method, operation=model)


def find_operation(document: dict, operation_id: str) -> tuple[str, HttpMethod, dict] | None:
    for path, item in ensure_section(document, "paths")[0].items():
        if not isinstance(item, dict):
            continue
        for method in HttpMethod:
            operation = item.get(method.value)
            if isinstance(operation, dict) and operation.get(ID_FIELD) == operation_id:
                return path, method, operation
    return None


def _occupied(paths: dict, path: str, method: HttpMethod) -> bool:
    item = paths.get(path)
    return isinstance(item, dict) and item.get(method.value) is not None


def _remove(paths: dict, path: str, method: HttpMethod) -> None:
    item = paths[path]
    del item[method.value]
    if not any(isinstance(item.get(m.value), dict) for m in HttpMethod):
        del paths[path]
        logger.debug("path_removed", path=path)


def _user_fields(definition: dict | None) -> dict:
    """The caller's definition minus Ouroboros-managed fields."""
    return {
        key: copy.deepcopy(value)
        for key, value in (definition or {}).items()
        if not key.startswith(EXTENSION_PREFIX)
    }


class RestOperationService:
    def __init__(self, store: SpecStore):
        self.store = store

    def list_operations(self) -> list[RestOperationEntry]:
        with self.store.read_locked():
            spec = load_spec(self.store)
        return operation_entries(spec)

    def get_operation(self, operation_id: str) -> RestOperationEntry:
        for entry in self.list_operations():
            if entry.operation.id == operation_id:
                return entry
        raise NotFoundError("operation", operation_id)

    def create_operation(
        self, path: str, method: HttpMethod | str, definition: dict | None = None
    ) -> RestOperationEntry:
        """Add a mock operation at ``path``/``method``.

        The caller's definition supplies summary, parameters, request body
        and responses; an ``x-ouroboros-id`` in it is kept.
        """
        _check_path(path)
        method = parse_method(method)
        operation = _user_fields(definition)
        operation.setdefault("responses", {})
        operation[ID_FIELD] = (definition or {}).get(ID_FIELD) or str(uuid.uuid4())
        operation[PROGRESS_FIELD] = Progress.MOCK.value
        operation[TAG_FIELD] = "none"
        operation[DIFF_FIELD] = DiffState.NONE.value
        entry = _validated(path, method, operation)

        with self.store.write_locked():
            document = self.store.read()
            paths = ensure_section(document, "paths")[0]
            if _occupied(paths, path, method):
                raise DuplicateError("operation", f"{method.value.upper()} {path}")
            if find_operation(document, operation[ID_FIELD]) is not None:
                raise DuplicateError("operation", operation[ID_FIELD])
            ensure_section(paths, path)[0][method.value] = operation
            self.store.write(document)
        logger.info("rest_operation_created", path=path, method=method.value, id=operation[ID_FIELD])
        return entry

    def update_operation(
        self,
        operation_id: str,
        definition: dict | None = None,
        path: str | None = None,
        method: HttpMethod | str | None = None,
    ) -> RestOperationEntry:
        """Merge the given fields into an operation, optionally moving it.

        Fields absent from ``definition`` are kept. An explicit update clears
        the operation's diff.
        """
        if path is not None:
            _check_path(path)
        new_method = parse_method(method) if method is not None else None

        with self.store.write_locked():
            document = self.store.read()
            found = find_operation(document, operation_id)
            if found is None:
                raise NotFoundError("operation", operation_id)
            old_path, old_method, operation = found
            target_path = path or old_path
            target_method = new_method or old_method

            operation.update(_user_fields(definition))
            operation[DIFF_FIELD] = DiffState.NONE.value
            entry = _validated(target_path, target_method, operation)

            paths = document["paths"]
            if (target_path, target_method) != (old_path, old_method):
                if _occupied(paths, target_path, target_method):
                    raise DuplicateError("operation", f"{target_method.value.upper()} {target_path}")
                ensure_section(paths, target_path)[0][target_method.value] = operation
                _remove(paths, old_path, old_method)
                logger.info(
                    "rest_operation_moved",
                    id=operation_id,
                    source=f"{old_method.value.upper()} {old_path}",
                    target=f"{target_method.value.upper()} {target_path}",
                )
            self.store.write(document)
        logger.info("rest_operation_updated", id=operation_id)
        return entry

    def delete_operation(self, operation_id: str) -> None:
        """Remove an operation; a path left with no operations is removed too."""
        with self.store.write_locked():
            document = self.store.read()
            found = find_operation(document, operation_id)
            if found is None:
                raise NotFoundError("operation", operation_id)
            path, method, _ = found
            _remove(document["paths"], path, method)
            self.store.write(document)
        logger.info("rest_operation_deleted", path=path, method=method.value, id=operation_id)
