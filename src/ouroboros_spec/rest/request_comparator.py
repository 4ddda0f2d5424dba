"""Compare the request side (parameters and body) of one operation."""

import structlog

from ..models import PRIMITIVE_TYPES, DiffState, HttpMethod, Operation, Progress, Schema, schema_name_from_ref
from .flattener import TypeCounts, array_key, count_differences, type_key

logger = structlog.get_logger()

NO_TAG = "none"


def _count_schema(name: str, schema: Schema | None, flattened: dict[str, TypeCounts], counts: TypeCounts) -> None:
    if schema is None:
        return
    if schema.ref:
        ref_name = schema_name_from_ref(schema.ref)
        if ref_name and ref_name in flattened:
            counts.update(flattened[ref_name])
        return
    if schema.type == "array" and schema.items is not None:
        key = array_key(name, schema.items)
        if key:
            counts[key] += 1
        return
    if schema.type in PRIMITIVE_TYPES:
        counts[type_key(name, schema)] += 1
        return
    for prop_name, prop in (schema.properties or {}).items():
        _count_schema(prop_name, prop, flattened, counts)


def request_signature(operation: Operation, flattened: dict[str, TypeCounts]) -> TypeCounts:
    """Type counts of every non-path parameter plus the request body."""
    counts = TypeCounts()
    for param in operation.parameters or []:
        if param is None or param.location == "path":
            continue
        if not param.name or param.schema_ is None:
            continue
        _count_schema(param.name, param.schema_, flattened, counts)

    body = operation.request_body
    if body is not None:
        for media in (body.content or {}).values():
            if media is None or media.schema_ is None:
                continue
            schema = media.schema_
            if schema.properties:
                for prop_name, prop in schema.properties.items():
                    _count_schema(prop_name, prop, flattened, counts)
            else:
                _count_schema("body", schema, flattened, counts)
    return counts


def _display(key: str) -> str:
    name, _, type_name = key.rpartition(":")
    return f"{name}({type_name})" if name else key


def format_request_diff(file_counts: TypeCounts, scan_counts: TypeCounts) -> str:
    """Human readable description of signature differences, one bullet per key."""
    lines = ["Request type counts differ between spec and scan:"]
    for key, (spec_count, scan_count) in count_differences(file_counts, scan_counts).items():
        if spec_count == 0:
            lines.append(f" - {_display(key)} missing from spec (scan={scan_count})")
        elif scan_count == 0:
            lines.append(f" - {_display(key)} not observed in scan (spec={spec_count})")
        else:
            lines.append(f" - {_display(key)} count differs spec={spec_count} scan={scan_count}")
    return "\n".join(lines)


def compare_and_mark_request(
    path: str,
    file_op: Operation,
    scan_op: Operation,
    method: HttpMethod,
    file_flattened: dict[str, TypeCounts],
    scan_flattened: dict[str, TypeCounts],
) -> bool:
    """Mark ``file_op`` according to whether its request matches the scan.

    ``$ref`` schemas resolve through each side's precomputed flattened lookup.
    Returns True when the request signatures match.
    """
    file_counts = request_signature(file_op, file_flattened)
    scan_counts = request_signature(scan_op, scan_flattened)
    differences = count_differences(file_counts, scan_counts)

    if differences:
        file_op.diff = DiffState.BOTH if file_op.has_response_diff else DiffState.REQUEST
        file_op.progress = Progress.MOCK
        file_op.tag = NO_TAG
        file_op.req_log = format_request_diff(file_counts, scan_counts)
        logger.info("request_mismatch", path=path, method=method.value, keys=list(differences))
        return False

    if file_op.has_response_diff:
        file_op.diff = DiffState.RESPONSE
        file_op.progress = Progress.MOCK
    else:
        file_op.diff = DiffState.NONE
        file_op.progress = Progress.COMPLETED
    file_op.tag = NO_TAG
    file_op.req_log = None
    logger.debug("request_match", path=path, method=method.value)
    return True
