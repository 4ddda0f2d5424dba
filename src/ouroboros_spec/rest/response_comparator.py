"""Compare declared responses against scanned responses, per status code.

Content types are ignored: every schema declared under a status code on one
side must match some schema under the same status code on the other side.
"""

import structlog

from ..models import DiffState, HttpMethod, MediaType, Operation, Progress, Response, Schema, schema_name_from_ref

logger = structlog.get_logger()


def _schemas(content: dict[str, MediaType | None] | None) -> list[Schema]:
    return [media.schema_ for media in (content or {}).values() if media is not None and media.schema_ is not None]


def schemas_match(scan_schema: Schema, file_schema: Schema, schema_results: dict[str, bool]) -> bool:
    """Both ``$ref`` to the same equivalent schema, or both inline with the same (possibly absent) type."""
    if scan_schema.ref or file_schema.ref:
        if not (scan_schema.ref and file_schema.ref):
            return False
        scan_name = schema_name_from_ref(scan_schema.ref)
        file_name = schema_name_from_ref(file_schema.ref)
        if scan_name is None or scan_name != file_name:
            return False
        return schema_results.get(scan_name, False)
    return scan_schema.type == file_schema.type


def _content_mismatch(scan: Response, file: Response, schema_results: dict[str, bool]) -> str | None:
    scan_schemas = _schemas(scan.content)
    file_schemas = _schemas(file.content)
    if not scan_schemas and not file_schemas:
        return None
    if not scan_schemas or not file_schemas:
        return "response body declared on one side only"
    for scan_schema in scan_schemas:
        if not any(schemas_match(scan_schema, f, schema_results) for f in file_schemas):
            return f"scanned schema {_describe(scan_schema)} has no match in spec"
    for file_schema in file_schemas:
        if not any(schemas_match(s, file_schema, schema_results) for s in scan_schemas):
            return f"spec schema {_describe(file_schema)} has no match in scan"
    return None


def _describe(schema: Schema) -> str:
    if schema.ref:
        return schema.ref
    return schema.type or "untyped"


def compare_responses_for_method(
    path: str,
    method: HttpMethod,
    scan_op: Operation | None,
    file_op: Operation | None,
    schema_results: dict[str, bool],
) -> bool:
    """Mark ``file_op`` according to whether its responses match the scan.

    Status codes observed only in the scan are copied into the file
    operation. Returns True when every status code matches.
    """
    if scan_op is None or file_op is None:
        return True

    scan_responses = scan_op.responses or {}
    if file_op.responses is None:
        file_op.responses = {}
    file_responses = file_op.responses
    declared = list(file_responses)

    reasons = []
    for status, scan_response in scan_responses.items():
        file_response = file_responses.get(status)
        if status not in file_responses:
            file_responses[status] = scan_response.model_copy(deep=True) if scan_response else None
            logger.debug("response_copied", path=path, method=method.value, status=status)
            continue
        if scan_response is None or file_response is None:
            if scan_response is not file_response:
                reasons.append(f"Status {status}: response declared on one side only")
            continue
        mismatch = _content_mismatch(scan_response, file_response, schema_results)
        if mismatch:
            reasons.append(f"Status {status}: {mismatch}")

    for status in declared:
        if status not in scan_responses:
            reasons.append(f"Status {status}: declared in spec but not observed in scan")

    if reasons:
        file_op.diff = DiffState.BOTH if file_op.has_request_diff else DiffState.RESPONSE
        file_op.progress = Progress.MOCK
        file_op.res_log = "Responses differ between spec and scan:\n" + "\n".join(f" - {r}" for r in reasons)
        logger.info("response_mismatch", path=path, method=method.value, statuses=len(reasons))
        return False

    if file_op.has_request_diff:
        file_op.diff = DiffState.REQUEST
        file_op.progress = Progress.MOCK
    else:
        file_op.diff = DiffState.NONE
        file_op.progress = Progress.COMPLETED
    file_op.res_log = None
    return True
