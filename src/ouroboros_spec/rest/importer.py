"""Import an external OpenAPI 3.x document into the REST specification.

Schemas merge first so that the imported operations' ``$ref``s can be
rewritten against any schema renames. A colliding schema name becomes
``Name-import``; a colliding path and method pair moves the imported
operation to ``/path-import``.
"""

import copy
import uuid

import structlog

from ..components import component_table
from ..errors import ImportValidationError
from ..importing import RenamedItem, ValidationIssue, check_info, check_version, issue, load_upload, unique_import_name
from ..models import HttpMethod, RestImportResult
from ..storage import SpecStore, ensure_section
from ..websocket.references import rewrite_schema_refs
from .operations import DIFF_FIELD, ID_FIELD, PROGRESS_FIELD, TAG_FIELD
from .schemas import enrich_schema

logger = structlog.get_logger()

METHODS = tuple(method.value for method in HttpMethod)
PATH_ITEM_FIELDS = ("summary", "description", "servers", "parameters")
VALID_DATA_TYPES = ("string", "number", "integer", "boolean", "array", "object")


def _is_path_item_field(key: str) -> bool:
    return isinstance(key, str) and (key in PATH_ITEM_FIELDS or key.startswith(("$", "x-")))


def validate_document(data: dict) -> list[ValidationIssue]:
    """Check the required OpenAPI structure down to each operation."""
    issues = check_version(data, "openapi", "OpenAPI") + check_info(data)

    components = data.get("components")
    if components is not None:
        if not isinstance(components, dict):
            issues.append(issue("components", "INVALID_DATA_TYPE", "'components' must be a map"))
        else:
            for key in ("schemas", "securitySchemes"):
                if components.get(key) is not None and not isinstance(components[key], dict):
                    issues.append(issue(f"components.{key}", "INVALID_DATA_TYPE", f"'components.{key}' must be a map"))

    paths = data.get("paths")
    if paths is None:
        issues.append(issue("paths", "MISSING_REQUIRED_FIELD", "'paths' field is required"))
    elif not isinstance(paths, dict):
        issues.append(issue("paths", "INVALID_DATA_TYPE", "'paths' must be a map"))
    else:
        for path, item in paths.items():
            issues.extend(_validate_path_item(f"paths.{path}", item))
    return issues


def _validate_path_item(location: str, item) -> list[ValidationIssue]:
    if not isinstance(item, dict):
        return [issue(location, "INVALID_DATA_TYPE", "path item must be a map")]
    issues = []
    for key, operation in item.items():
        if _is_path_item_field(key):
            continue
        if key not in METHODS:
            issues.append(issue(
                f"{location}.{key}",
                "INVALID_HTTP_METHOD",
                f"Invalid HTTP method '{key}'. Valid methods: {', '.join(METHODS)}",
            ))
            continue
        issues.extend(_validate_operation(f"{location}.{key}", operation))
    return issues


def _validate_operation(location: str, operation) -> list[ValidationIssue]:
    if not isinstance(operation, dict):
        return [issue(location, "INVALID_DATA_TYPE", "operation must be a map")]
    issues = []
    responses = operation.get("responses")
    if responses is None:
        issues.append(issue(f"{location}.responses", "MISSING_REQUIRED_FIELD", "'responses' field is required"))
    elif not isinstance(responses, dict):
        issues.append(issue(f"{location}.responses", "INVALID_DATA_TYPE", "'responses' must be a map"))

    body = operation.get("requestBody")
    if body is not None:
        if not isinstance(body, dict):
            issues.append(issue(f"{location}.requestBody", "INVALID_DATA_TYPE", "RequestBody must be an object"))
        elif isinstance(body.get("content"), dict):
            for media_type, media in body["content"].items():
                if isinstance(media, dict) and "schema" in media:
                    issues.extend(_validate_schema(media["schema"], f"{location}.requestBody.content.{media_type}.schema"))
    return issues


def _validate_schema(schema, location: str) -> list[ValidationIssue]:
    if not isinstance(schema, dict) or "$ref" in schema:
        return []
    issues = []
    schema_type = schema.get("type")
    if isinstance(schema_type, str) and schema_type not in VALID_DATA_TYPES:
        issues.append(issue(
            f"{location}.type",
            "INVALID_DATA_TYPE",
            f"Invalid schema type: '{schema_type}'. Valid types: {', '.join(VALID_DATA_TYPES)}",
        ))
    properties = schema.get("properties")
    if isinstance(properties, dict):
        for name, prop in properties.items():
            issues.extend(_validate_schema(prop, f"{location}.properties.{name}"))
    if "items" in schema:
        issues.extend(_validate_schema(schema["items"], f"{location}.items"))
    return issues


def parse_import(content: str, filename: str | None = None) -> dict:
    """Validate uploaded content, raising ImportValidationError with every issue found."""
    data = load_upload(content, filename)
    issues = validate_document(data)
    if issues:
        raise ImportValidationError(issues)
    return data


def unique_import_path(paths: dict, path: str, method: str) -> str:
    """``/users`` -> ``/users-import``, then ``/users-import1``... until the method is free."""
    candidate = f"{path}-import"
    counter = 1
    while isinstance(paths.get(candidate), dict) and paths[candidate].get(method) is not None:
        candidate = f"{path}-import{counter}"
        counter += 1
    return candidate


def _enrich_operation(operation: dict) -> None:
    if not operation.get(ID_FIELD):
        operation[ID_FIELD] = str(uuid.uuid4())
    operation.setdefault(PROGRESS_FIELD, "mock")
    operation.setdefault(TAG_FIELD, "none")
    operation.setdefault(DIFF_FIELD, "none")


def _summary(result: RestImportResult) -> str:
    text = f"Successfully imported {result.imported_apis} APIs and {result.imported_schemas} schemas"
    if result.renamed:
        text += f", renamed {len(result.renamed)} items due to duplicates"
    return text


class RestImportService:
    def __init__(self, store: SpecStore):
        self.store = store

    def import_yaml(self, content: str, filename: str | None = None) -> RestImportResult:
        imported = copy.deepcopy(parse_import(content, filename))
        components = imported.get("components") or {}
        schemas = components.get("schemas") or {}
        security_schemes = components.get("securitySchemes") or {}

        with self.store.write_locked():
            document = self.store.read()
            result = RestImportResult()

            schema_renames = self._merge_schemas(document, schemas, result.renamed)
            result.imported_schemas = len(schemas)

            for name, scheme in security_schemes.items():
                component_table(document, "securitySchemes").setdefault(name, scheme)

            paths = ensure_section(document, "paths")[0]
            for path, item in imported["paths"].items():
                rewrite_schema_refs(item, schema_renames)
                fields = {key: value for key, value in item.items() if _is_path_item_field(key)}
                for method in METHODS:
                    operation = item.get(method)
                    if operation is None:
                        continue
                    target = path
                    if isinstance(paths.get(path), dict) and paths[path].get(method) is not None:
                        target = unique_import_path(paths, path, method)
                        result.renamed.append(
                            RenamedItem(type="api", original=path, renamed=target, method=method.upper())
                        )
                        logger.info("import_renamed", kind="api", original=path, renamed=target, method=method)
                    _enrich_operation(operation)
                    target_item = ensure_section(paths, target)[0]
                    for key, value in fields.items():
                        target_item.setdefault(key, copy.deepcopy(value))
                    target_item[method] = operation
                    result.imported_apis += 1

            self.store.write(document)

        result.summary = _summary(result)
        logger.info("import_completed", summary=result.summary, renamed=len(result.renamed))
        return result

    def _merge_schemas(self, document: dict, schemas: dict, renamed: list[RenamedItem]) -> dict[str, str]:
        existing = component_table(document, "schemas")
        renames = {}
        taken = dict.fromkeys([*existing, *schemas])
        for name in schemas:
            if name in existing:
                renames[name] = unique_import_name(name, taken)
                taken[renames[name]] = None
        # Imported schemas may reference each other by their old names
        rewrite_schema_refs(list(schemas.values()), renames)
        for name, schema in schemas.items():
            new_name = renames.get(name, name)
            if new_name != name:
                renamed.append(RenamedItem(type="schema", original=name, renamed=new_name))
                logger.info("import_renamed", kind="schema", original=name, renamed=new_name)
            existing[new_name] = enrich_schema(schema) if isinstance(schema, dict) else schema
        return renames
