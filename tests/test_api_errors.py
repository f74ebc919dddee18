"""Tests for API error handling."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api_errors.config import (
    ERROR_SEVERITY_MAP,
    ERROR_STATUS_MAP,
    ErrorCode,
    ErrorConfig,
)
from src.api_errors.exceptions import MentionWatchAPIError, details_for, error_code_for
from src.api_errors.handlers import (
    ErrorResponse,
    create_error_response,
    handle_api_error,
    handle_unhandled_error,
    register_exception_handlers,
)
from src.api_errors.middleware import ErrorHandlingMiddleware
from src.logging_config.context import RequestContext
from src.notifications.exceptions import (
    AdapterDeliveryError,
    NotFoundError,
    StoreClosedError,
    ValidationError,
)


class TestErrorConfig:
    """Tests for error configuration."""

    def test_status_map_covers_all_codes(self):
        assert set(ERROR_STATUS_MAP) == set(ErrorCode)

    def test_severity_map_covers_all_codes(self):
        assert set(ERROR_SEVERITY_MAP) == set(ErrorCode)

    def test_not_found_codes_map_to_404(self):
        for code in (ErrorCode.NOTIFICATION_NOT_FOUND, ErrorCode.RULE_NOT_FOUND, ErrorCode.TEMPLATE_NOT_FOUND):
            assert ERROR_STATUS_MAP[code] == 404


class TestEngineErrorMapping:
    """Engine exceptions to API error codes."""

    @pytest.mark.parametrize("exc, code", [
        (ValidationError("bad", field="quietHours"), ErrorCode.VALIDATION_ERROR),
        (ValidationError("bad", field="snapshot"), ErrorCode.INVALID_SNAPSHOT),
        (NotFoundError("notification", "n1"), ErrorCode.NOTIFICATION_NOT_FOUND),
        (NotFoundError("rule", "r1"), ErrorCode.RULE_NOT_FOUND),
        (NotFoundError("template", "t1"), ErrorCode.TEMPLATE_NOT_FOUND),
        (NotFoundError("widget", "w1"), ErrorCode.RESOURCE_NOT_FOUND),
        (StoreClosedError(), ErrorCode.ENGINE_CLOSED),
        (AdapterDeliveryError("email", "down"), ErrorCode.DELIVERY_FAILED),
    ])
    def test_error_code_for(self, exc, code):
        assert error_code_for(exc) == code

    def test_validation_details(self):
        details = details_for(ValidationError("invalid time", field="quietHours", value="25:00"))
        assert details == [{"field": "quietHours", "issue": "invalid time", "value": "'25:00'"}]

    def test_from_engine_error(self):
        api_error = MentionWatchAPIError.from_engine_error(NotFoundError("rule", "r1"))
        assert api_error.status_code == 404
        assert api_error.details == [{"resource_type": "rule", "resource_id": "r1"}]


class TestErrorResponse:
    """Tests for the error envelope."""

    def test_to_dict(self):
        resp = ErrorResponse(code="VALIDATION_ERROR", message="bad input", status_code=400, request_id="abc")
        d = resp.to_dict()
        assert d["error"]["code"] == "VALIDATION_ERROR"
        assert d["error"]["request_id"] == "abc"
        assert "timestamp" in d["error"]
        assert "details" not in d["error"]

    def test_create_error_response_stamps_request_id(self):
        with RequestContext(request_id="req-1"):
            resp = create_error_response(ErrorCode.RULE_NOT_FOUND, "rule not found: r1")
        assert resp.status_code == 404
        assert resp.request_id == "req-1"

    def test_message_truncated(self):
        resp = create_error_response(
            ErrorCode.VALIDATION_ERROR, "x" * 50, config=ErrorConfig(max_error_detail_length=10),
        )
        assert resp.message == "x" * 10

    def test_handle_api_error(self):
        resp = handle_api_error(MentionWatchAPIError("closed", ErrorCode.ENGINE_CLOSED))
        assert resp.status_code == 503

    def test_unhandled_error_suppressed(self):
        resp = handle_unhandled_error(RuntimeError("secret detail"))
        assert resp.status_code == 500
        assert "secret detail" not in resp.message

    def test_unhandled_error_with_details(self):
        resp = handle_unhandled_error(ValueError("bad value"), ErrorConfig(suppress_internal_details=False))
        assert "ValueError" in resp.message


@pytest.fixture
def error_app():
    app = FastAPI()
    app.add_middleware(ErrorHandlingMiddleware)
    register_exception_handlers(app)

    @app.get("/missing")
    async def missing():
        raise NotFoundError("notification", "n-404")

    @app.get("/crash")
    async def crash():
        raise RuntimeError("kaboom")

    @app.get("/items/{item_id}")
    async def item(item_id: int):
        return {"id": item_id}

    return app


class TestRegisteredHandlers:
    """End-to-end error responses."""

    def test_engine_error(self, error_app):
        response = TestClient(error_app).get("/missing")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOTIFICATION_NOT_FOUND"

    def test_request_validation(self, error_app):
        response = TestClient(error_app).get("/items/abc")
        assert response.status_code == 422
        body = response.json()["error"]
        assert body["code"] == "REQUEST_VALIDATION_ERROR"
        assert body["details"][0]["field"] == "path.item_id"

    def test_unhandled_error_becomes_500(self, error_app):
        response = TestClient(error_app).get("/crash")
        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"
        assert "kaboom" not in response.text
