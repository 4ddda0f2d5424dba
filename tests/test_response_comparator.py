from ouroboros_spec.models import DiffState, HttpMethod, Operation, Progress
from ouroboros_spec.rest.response_comparator import compare_responses_for_method

USER_REF = {"$ref": "#/components/schemas/User"}


def _op(responses: dict, **fields) -> Operation:
    return Operation.model_validate({"responses": responses, **fields})


def _response(schema: dict | None = None, content_type: str = "application/json") -> dict:
    if schema is None:
        return {"description": "OK"}
    return {"description": "OK", "content": {content_type: {"schema": schema}}}


class TestCompareResponses:
    def test_content_type_is_ignored(self):
        scan = _op({"200": _response(USER_REF, "application/json")})
        file = _op({"200": _response(USER_REF, "application/xml")})

        assert compare_responses_for_method("/users", HttpMethod.GET, scan, file, {"User": True})
        assert file.diff == DiffState.NONE
        assert file.progress == Progress.COMPLETED

    def test_wildcard_content_type(self):
        scan = _op({"200": _response({"type": "string"}, "*/*")})
        file = _op({"200": _response({"type": "string"}, "text/plain")})
        assert compare_responses_for_method("/ping", HttpMethod.GET, scan, file, {})

    def test_non_equivalent_ref(self):
        scan = _op({"200": _response(USER_REF)})
        file = _op({"200": _response(USER_REF)})

        assert not compare_responses_for_method("/users", HttpMethod.GET, scan, file, {"User": False})
        assert file.diff == DiffState.RESPONSE
        assert file.progress == Progress.MOCK
        assert "Status 200" in file.res_log

    def test_different_ref_targets(self):
        scan = _op({"200": _response({"$ref": "#/components/schemas/Admin"})})
        file = _op({"200": _response(USER_REF)})
        assert not compare_responses_for_method("/users", HttpMethod.GET, scan, file, {"User": True, "Admin": True})

    def test_ref_versus_inline(self):
        scan = _op({"200": _response(USER_REF)})
        file = _op({"200": _response({"type": "object"})})
        assert not compare_responses_for_method("/users", HttpMethod.GET, scan, file, {"User": True})

    def test_inline_type_mismatch(self):
        scan = _op({"200": _response({"type": "integer"})})
        file = _op({"200": _response({"type": "string"})})
        assert not compare_responses_for_method("/count", HttpMethod.GET, scan, file, {})

    def test_untyped_inline_schemas_match(self):
        scan = _op({"200": _response({})})
        file = _op({"200": _response({})})

        assert compare_responses_for_method("/raw", HttpMethod.GET, scan, file, {})
        assert file.diff == DiffState.NONE
        assert file.res_log is None

    def test_untyped_versus_typed_mismatch(self):
        scan = _op({"200": _response({})})
        file = _op({"200": _response({"type": "string"})})
        assert not compare_responses_for_method("/raw", HttpMethod.GET, scan, file, {})

    def test_scan_only_status_is_copied(self):
        scan = _op({"200": _response(USER_REF), "201": _response(USER_REF)})
        file = _op({"200": _response(USER_REF)})

        assert compare_responses_for_method("/users", HttpMethod.POST, scan, file, {"User": True})
        assert "201" in file.responses
        assert file.responses["201"].content["application/json"].schema_.ref == USER_REF["$ref"]
        assert file.diff == DiffState.NONE

    def test_copied_response_is_independent(self):
        scan = _op({"201": _response(USER_REF)})
        file = _op({})

        compare_responses_for_method("/users", HttpMethod.POST, scan, file, {})
        file.responses["201"].description = "changed"
        assert scan.responses["201"].description == "OK"

    def test_file_only_status_mismatches(self):
        scan = _op({"200": _response(USER_REF)})
        file = _op({"200": _response(USER_REF), "404": _response()})

        assert not compare_responses_for_method("/users", HttpMethod.GET, scan, file, {"User": True})
        assert file.diff == DiffState.RESPONSE
        assert "Status 404: declared in spec but not observed in scan" in file.res_log

    def test_promotes_request_diff_to_both(self):
        scan = _op({"200": _response({"type": "integer"})})
        file = _op({"200": _response({"type": "string"})}, **{"x-ouroboros-diff": "request"})

        compare_responses_for_method("/count", HttpMethod.GET, scan, file, {})
        assert file.diff == DiffState.BOTH

    def test_match_keeps_request_diff(self):
        scan = _op({"200": _response()})
        file = _op({"200": _response()}, **{"x-ouroboros-diff": "request", "x-ouroboros-res-log": "old"})

        assert compare_responses_for_method("/users", HttpMethod.GET, scan, file, {})
        assert file.diff == DiffState.REQUEST
        assert file.progress == Progress.MOCK
        assert file.res_log is None

    def test_missing_operation_is_noop(self):
        file = _op({"200": _response()})
        assert compare_responses_for_method("/users", HttpMethod.GET, None, file, {})
        assert file.diff is None
