"""Unit tests for error classification utilities."""

import pytest

from fieldops.core.errors import (
    ErrorCode,
    ErrorSeverity,
    NotFoundError,
    PermissionDeniedError,
    UnauthenticatedError,
    UpstreamError,
    ValidationFailedError,
    classify_error_with_response,
    status_code_for,
)


@pytest.mark.unit
class TestFieldOpsErrors:
    """Tests for the application error hierarchy."""

    @pytest.mark.parametrize(
        ("error", "status", "code"),
        [
            (UnauthenticatedError(), 401, ErrorCode.ERR_UNAUTHENTICATED),
            (PermissionDeniedError(), 403, ErrorCode.ERR_PERMISSION_DENIED),
            (NotFoundError(), 404, ErrorCode.ERR_NOT_FOUND),
            (ValidationFailedError(), 400, ErrorCode.ERR_VALIDATION_FAILED),
            (UpstreamError(), 503, ErrorCode.ERR_UPSTREAM_UNAVAILABLE),
        ],
    )
    def test_status_and_code(self, error, status, code):
        """Test each error type maps to its HTTP status and code."""
        assert status_code_for(error) == status
        assert classify_error_with_response(error).code == code

    def test_custom_message_and_code(self):
        """Test errors accept a custom message and code."""
        error = NotFoundError("Không tìm thấy công việc", code=ErrorCode.ERR_TASK_NOT_FOUND)

        response = error.to_response()

        assert response.code == ErrorCode.ERR_TASK_NOT_FOUND
        assert response.message == "Không tìm thấy công việc"
        assert response.severity == ErrorSeverity.LOW
        assert str(error) == "Không tìm thấy công việc"

    def test_custom_code_does_not_leak_to_class(self):
        """Test a custom code stays on the instance."""
        NotFoundError(code=ErrorCode.ERR_USER_NOT_FOUND)

        assert NotFoundError().code == ErrorCode.ERR_NOT_FOUND

    def test_validation_fields_in_response(self):
        """Test field errors are carried into the response."""
        error = ValidationFailedError(fields={"title": ["Tiêu đề quá ngắn"]})

        response = error.to_response()

        assert response.fields == {"title": ["Tiêu đề quá ngắn"]}

    def test_validation_without_fields(self):
        """Test validation errors without fields omit them."""
        assert ValidationFailedError().to_response().fields is None


@pytest.mark.unit
class TestClassifyErrorWithResponse:
    """Tests for classify_error_with_response function."""

    def test_connection_error_is_upstream(self):
        """Test connection failures are classified as upstream errors."""
        response = classify_error_with_response(ConnectionError("refused"))

        assert response.code == ErrorCode.ERR_UPSTREAM_UNAVAILABLE
        assert status_code_for(TimeoutError()) == 503

    def test_unknown_error_hides_details(self):
        """Test unexpected errors do not leak their message."""
        exception = RuntimeError("sqlite3.OperationalError: no such column secret_internal")

        response = classify_error_with_response(exception)

        assert response.code == ErrorCode.ERR_UNKNOWN
        assert "secret_internal" not in response.message
        assert "sqlite" not in response.suggestion
        assert status_code_for(exception) == 500
