"""Typed models for the persisted REST (OpenAPI) specification.

The YAML document is loaded into these models at the boundary. Persisted
names such as ``$ref`` and the ``x-ouroboros-*`` vendor fields are field
aliases; keys the models do not declare are kept as extras so that free-form
sections (examples, bindings, security) round trip verbatim.
"""

from enum import Enum
from typing import Any, Iterator

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .importing import RenamedItem

SCHEMA_REF_PREFIX = "#/components/schemas/"
PRIMITIVE_TYPES = ("string", "integer", "number", "boolean")
RESPONSE_MARKER_USE = "use"


class DiffState(str, Enum):
    """Which side of an operation is out of sync with the scan."""

    NONE = "none"
    REQUEST = "request"
    RESPONSE = "response"
    BOTH = "both"
    ENDPOINT = "endpoint"


class Progress(str, Enum):
    """Implementation maturity of an operation."""

    NONE = "none"
    MOCK = "mock"
    COMPLETED = "completed"


class HttpMethod(str, Enum):
    GET = "get"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"


def schema_name_from_ref(ref: str | None) -> str | None:
    """Return ``User`` for ``#/components/schemas/User``, None for anything else."""
    if not ref or not ref.startswith(SCHEMA_REF_PREFIX):
        return None
    name = ref[len(SCHEMA_REF_PREFIX):]
    return name or None


class SpecModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow", use_enum_values=True)

    def to_document(self) -> dict:
        """Dump back to the persisted (aliased) form."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class Schema(SpecModel):
    """A schema node: object with properties, array with items, primitive or $ref."""

    ref: str | None = Field(default=None, alias="$ref")
    type: str | None = None
    format: str | None = None
    properties: dict[str, "Schema"] | None = None
    items: "Schema | None" = None
    required: list[str] | None = None
    orders: list[str] | None = Field(default=None, alias="x-ouroboros-orders")


class Parameter(SpecModel):
    name: str | None = None
    location: str | None = Field(default=None, alias="in")
    required: bool | None = None
    description: str | None = None
    schema_: Schema | None = Field(default=None, alias="schema")


class MediaType(SpecModel):
    schema_: Schema | None = Field(default=None, alias="schema")


class RequestBody(SpecModel):
    description: str | None = None
    required: bool | None = None
    content: dict[str, MediaType | None] | None = None


class Response(SpecModel):
    description: str | None = None
    content: dict[str, MediaType | None] | None = None


class Operation(SpecModel):
    tags: list[str] | None = None
    summary: str | None = None
    description: str | None = None
    operation_id: str | None = Field(default=None, alias="operationId")
    parameters: list[Parameter | None] | None = None
    request_body: RequestBody | None = Field(default=None, alias="requestBody")
    responses: dict[str, Response | None] | None = None
    id: str | None = Field(default=None, alias="x-ouroboros-id")
    diff: DiffState | None = Field(default=None, alias="x-ouroboros-diff")
    progress: Progress | None = Field(default=None, alias="x-ouroboros-progress")
    tag: str | None = Field(default=None, alias="x-ouroboros-tag")
    response_marker: str | None = Field(default=None, alias="x-ouroboros-response")
    req_log: str | None = Field(default=None, alias="x-ouroboros-req-log")
    res_log: str | None = Field(default=None, alias="x-ouroboros-res-log")

    @field_validator("responses", mode="before")
    @classmethod
    def _status_codes_as_str(cls, value: Any) -> Any:
        # YAML loads unquoted status codes (200:) as integers
        if isinstance(value, dict):
            return {str(code): response for code, response in value.items()}
        return value

    @property
    def has_response_diff(self) -> bool:
        return self.diff in (DiffState.RESPONSE, DiffState.BOTH)

    @property
    def has_request_diff(self) -> bool:
        return self.diff in (DiffState.REQUEST, DiffState.BOTH)


class PathItem(SpecModel):
    get: Operation | None = None
    post: Operation | None = None
    put: Operation | None = None
    patch: Operation | None = None
    delete: Operation | None = None

    def get_operation(self, method: HttpMethod) -> Operation | None:
        if method is HttpMethod.GET:
            return self.get
        if method is HttpMethod.POST:
            return self.post
        if method is HttpMethod.PUT:
            return self.put
        if method is HttpMethod.PATCH:
            return self.patch
        return self.delete

    def set_operation(self, method: HttpMethod, operation: Operation | None) -> None:
        if method is HttpMethod.GET:
            self.get = operation
        elif method is HttpMethod.POST:
            self.post = operation
        elif method is HttpMethod.PUT:
            self.put = operation
        elif method is HttpMethod.PATCH:
            self.patch = operation
        else:
            self.delete = operation

    def operations(self) -> Iterator[tuple[HttpMethod, Operation]]:
        for method in HttpMethod:
            operation = self.get_operation(method)
            if operation is not None:
                yield method, operation


class Components(SpecModel):
    schemas: dict[str, Schema | None] | None = None
    security_schemes: dict[str, Any] | None = Field(default=None, alias="securitySchemes")


class RestApiSpec(SpecModel):
    """A whole OpenAPI document: the file spec or a scanned spec."""

    openapi: str = "3.1.0"
    info: dict[str, Any] | None = None
    paths: dict[str, PathItem | None] | None = None
    components: Components | None = None

    @classmethod
    def from_document(cls, document: dict) -> "RestApiSpec":
        return cls.model_validate(document)

    def schemas(self) -> dict[str, Schema | None]:
        if self.components is None or self.components.schemas is None:
            return {}
        return self.components.schemas


class RestOperationEntry(BaseModel):
    """One operation addressed by path and method, as returned by listings."""

    path: str
    method: HttpMethod
    operation: Operation


class RestImportResult(BaseModel):
    imported_apis: int = 0
    imported_schemas: int = 0
    renamed: list[RenamedItem] = Field(default_factory=list)
    summary: str = ""


Schema.model_rebuild()
