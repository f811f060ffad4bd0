"""
Portal Backend - Operation Result Tests
=========================================

What:  The success/error envelope, code -> status mapping and the
       PortalError -> OperationError conversion.
"""

import json
import uuid

from portal.exceptions import (
    ConflictError,
    DatabaseError,
    NotFoundError,
    RateLimitExceededError,
    ValidationError,
)
from portal.operation_result import (
    ErrorCode,
    error,
    error_response,
    is_error,
    is_success,
    status_for_code,
    success,
    success_response,
)


class TestEnvelope:

    def test_success_without_message(self):
        result = success({"id": 1})
        assert is_success(result)
        assert not is_error(result)
        assert result.to_dict() == {"success": True, "data": {"id": 1}}

    def test_success_with_message(self):
        assert success([], "Done").to_dict() == {"success": True, "data": [], "message": "Done"}

    def test_success_encodes_uuids(self):
        user_id = uuid.uuid4()
        assert success({"id": user_id}).to_dict()["data"] == {"id": str(user_id)}

    def test_error_omits_empty_fields(self):
        result = error("Boom")
        assert is_error(result)
        assert result.to_dict() == {"success": False, "error": "Boom"}

    def test_error_with_code_and_details(self):
        result = error("Nope", ErrorCode.FORBIDDEN, {"reason": "role"})
        assert result.to_dict() == {
            "success": False,
            "error": "Nope",
            "code": "FORBIDDEN",
            "details": {"reason": "role"},
        }


class TestStatusMapping:

    def test_known_codes(self):
        assert status_for_code(ErrorCode.BAD_REQUEST) == 400
        assert status_for_code(ErrorCode.UNAUTHORIZED) == 401
        assert status_for_code(ErrorCode.FORBIDDEN) == 403
        assert status_for_code(ErrorCode.NOT_FOUND) == 404
        assert status_for_code(ErrorCode.CONFLICT) == 409
        assert status_for_code(ErrorCode.VALIDATION_ERROR) == 400
        assert status_for_code(ErrorCode.RATE_LIMIT_EXCEEDED) == 429
        assert status_for_code("INTERNAL_SERVER_ERROR") == 500

    def test_unknown_and_missing_codes_are_server_errors(self):
        assert status_for_code("UPLOAD_ERROR") == 500
        assert status_for_code(None) == 500


class TestResponses:

    def test_success_response(self):
        response = success_response({"ok": True}, "Saved", status_code=201, headers={"X-Test": "1"})
        assert response.status_code == 201
        assert response.headers["X-Test"] == "1"
        assert json.loads(response.body) == {"success": True, "data": {"ok": True}, "message": "Saved"}

    def test_error_response_status_follows_code(self):
        response = error_response("Missing", ErrorCode.NOT_FOUND)
        assert response.status_code == 404
        assert json.loads(response.body) == {"success": False, "error": "Missing", "code": "NOT_FOUND"}

    def test_error_response_explicit_status(self):
        response = error_response(error("Down"), status_code=503)
        assert response.status_code == 503


class TestExceptionConversion:

    def test_validation_error_carries_field(self):
        result = ValidationError("Invalid bucket", field="bucket").to_result()
        assert result.code == "VALIDATION_ERROR"
        assert result.details == {"field": "bucket"}

    def test_not_found_message_and_hidden_context(self):
        exc = NotFoundError(resource="Article", resource_id="hello-world")
        assert exc.message == "Article not found"
        assert exc.context["resource_id"] == "hello-world"
        assert exc.to_result().to_dict() == {
            "success": False,
            "error": "Article not found",
            "code": "NOT_FOUND",
        }

    def test_default_messages(self):
        assert ConflictError().message == "Resource already exists"
        assert DatabaseError().to_result().code == "INTERNAL_SERVER_ERROR"

    def test_rate_limit_error(self):
        exc = RateLimitExceededError(retry_after=12)
        assert exc.retry_after == 12
        assert status_for_code(exc.code) == 429
