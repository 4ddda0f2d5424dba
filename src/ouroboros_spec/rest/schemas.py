"""Schema CRUD for the REST (OpenAPI) specification."""

import copy

import structlog
from pydantic import ValidationError

from ..components import ComponentTable
from ..errors import InvalidRequestError
from ..models import Schema
from ..storage import SpecStore
from ..websocket.references import rewrite_schema_refs

logger = structlog.get_logger()

ORDERS_FIELD = "x-ouroboros-orders"


def enrich_schema(schema: dict) -> dict:
    """Record property order in ``x-ouroboros-orders`` when the schema has none."""
    properties = schema.get("properties")
    if isinstance(properties, dict) and properties and not schema.get(ORDERS_FIELD):
        schema[ORDERS_FIELD] = list(properties)
    return schema


def correct_item_bounds(node: dict, name: str = "") -> bool:
    """Swap ``minItems``/``maxItems`` on arrays where min exceeds max, recursively."""
    if not isinstance(node, dict) or "$ref" in node:
        return False
    corrected = False
    low, high = node.get("minItems"), node.get("maxItems")
    if node.get("type") == "array" and isinstance(low, int) and isinstance(high, int) and low > high:
        node["minItems"], node["maxItems"] = high, low
        logger.warning("item_bounds_swapped", schema=name, min_items=high, max_items=low)
        corrected = True
    if correct_item_bounds(node.get("items"), f"{name}.items"):
        corrected = True
    for prop_name, prop in (node.get("properties") or {}).items():
        if correct_item_bounds(prop, f"{name}.{prop_name}" if name else prop_name):
            corrected = True
    return corrected


class RestSchemaService(ComponentTable):
    """``components.schemas`` of the REST file; renames rewrite refs in every path."""

    def __init__(self, store: SpecStore):
        super().__init__(store, "schemas", "schema", rewrite_schema_refs)

    def prepare(self, definition: dict | None) -> dict:
        schema = copy.deepcopy(definition) if definition is not None else {"type": "object"}
        try:
            Schema.model_validate(schema)
        except ValidationError as e:
            raise InvalidRequestError(f"Invalid schema definition: {e}") from e
        correct_item_bounds(schema)
        return enrich_schema(schema)
