"""Flatten schemas into comparable type-count multisets.

Two schemas are structurally equivalent when their flattened counts agree.
Keys look like ``name:string``, ``avatar:binary`` or ``tags:array.Tag``;
``$ref`` schemas contribute the counts of the referenced schema with no
prefix, so a property referencing ``Address`` merges Address's fields into
the parent.
"""

from collections import Counter

import structlog

from ..models import PRIMITIVE_TYPES, Components, Schema, schema_name_from_ref

logger = structlog.get_logger()

TypeCounts = Counter


def type_key(name: str, schema: Schema) -> str:
    type_name = "binary" if schema.format == "binary" else schema.type
    return f"{name}:{type_name}"


def array_key(name: str, items: Schema) -> str | None:
    """Shape key for an array property, or None unless the element is a ``$ref`` or primitive."""
    if items.ref:
        ref_name = schema_name_from_ref(items.ref)
        return f"{name}:array.{ref_name}" if ref_name else None
    if items.type not in PRIMITIVE_TYPES:
        return None
    if items.format == "binary":
        return f"{name}:array.binary"
    return f"{name}:array.{items.type}"


def flatten(
    schema_name: str,
    schema: Schema | None,
    all_schemas: dict[str, Schema | None],
    visited: set[str] | None = None,
) -> TypeCounts:
    """Flatten one named schema.

    ``visited`` tracks the schemas on the current recursion path; a schema
    already on the path contributes nothing, which terminates cycles.
    """
    counts: TypeCounts = Counter()
    if schema is None:
        return counts
    if visited is None:
        visited = set()
    if schema_name in visited:
        logger.debug("circular_reference", schema=schema_name)
        return counts

    visited.add(schema_name)
    try:
        if schema.ref:
            _merge_ref(schema.ref, all_schemas, counts, visited)
            return counts
        for prop_name, prop in (schema.properties or {}).items():
            _collect_property(prop_name, prop, all_schemas, counts, visited)
        if schema.items is not None:
            _collect_property("items", schema.items, all_schemas, counts, visited)
    finally:
        visited.discard(schema_name)
    return counts


def _merge_ref(ref: str, all_schemas, counts: TypeCounts, visited: set[str]) -> None:
    ref_name = schema_name_from_ref(ref)
    if ref_name is None:
        return
    referenced = all_schemas.get(ref_name)
    if referenced is None:
        return
    counts.update(flatten(ref_name, referenced, all_schemas, visited))


def _collect_property(name: str, prop: Schema | None, all_schemas, counts: TypeCounts, visited: set[str]) -> None:
    if prop is None:
        return
    if prop.ref:
        _merge_ref(prop.ref, all_schemas, counts, visited)
        return
    if prop.type == "array" and prop.items is not None:
        key = array_key(name, prop.items)
        if key:
            counts[key] += 1
        return
    if prop.type in PRIMITIVE_TYPES:
        counts[type_key(name, prop)] += 1

    # Inline object: its fields join the parent's counts
    for nested_name, nested in (prop.properties or {}).items():
        _collect_property(nested_name, nested, all_schemas, counts, visited)


def flatten_schemas(components: Components | None) -> dict[str, TypeCounts]:
    """Flatten every schema under ``components.schemas``."""
    if components is None or not components.schemas:
        return {}
    schemas = components.schemas
    return {name: flatten(name, schema, schemas) for name, schema in schemas.items()}


def count_differences(expected: TypeCounts, actual: TypeCounts) -> dict[str, tuple[int, int]]:
    """Keys whose counts differ, as ``key -> (expected, actual)``; absent counts as 0."""
    differences = {}
    for key in sorted(set(expected) | set(actual)):
        left, right = expected.get(key, 0), actual.get(key, 0)
        if left != right:
            differences[key] = (left, right)
    return differences


def counts_equal(left: TypeCounts, right: TypeCounts) -> bool:
    return not count_differences(left, right)
