"""Error taxonomy and user-facing error classification.

Every error that reaches a caller carries a stable code and a short
localized (Vietnamese) message. Internal causes stay in the server logs.
"""

from enum import Enum

from pydantic import BaseModel


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Auth errors
    ERR_UNAUTHENTICATED = "ERR_UNAUTHENTICATED"
    ERR_PERMISSION_DENIED = "ERR_PERMISSION_DENIED"
    ERR_USER_BANNED = "ERR_USER_BANNED"

    # Lookup errors
    ERR_NOT_FOUND = "ERR_NOT_FOUND"
    ERR_TASK_NOT_FOUND = "ERR_TASK_NOT_FOUND"
    ERR_USER_NOT_FOUND = "ERR_USER_NOT_FOUND"
    ERR_PAYMENT_NOT_FOUND = "ERR_PAYMENT_NOT_FOUND"
    ERR_ATTACHMENT_NOT_FOUND = "ERR_ATTACHMENT_NOT_FOUND"

    # Input errors
    ERR_VALIDATION_FAILED = "ERR_VALIDATION_FAILED"

    # Dependency errors
    ERR_UPSTREAM_UNAVAILABLE = "ERR_UPSTREAM_UNAVAILABLE"

    # Generic errors
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity
    fields: dict[str, list[str]] | None = None


class FieldOpsError(Exception):
    """Base class for errors that are safe to surface to API callers."""

    status_code: int = 500
    code: str = ErrorCode.ERR_UNKNOWN
    default_message: str = "Đã xảy ra lỗi không mong muốn."
    suggestion: str = "Vui lòng thử lại sau."
    severity: ErrorSeverity = ErrorSeverity.MEDIUM

    def __init__(self, message: str | None = None, *, code: str | None = None) -> None:
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        """Convert to the response body returned to callers."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            suggestion=self.suggestion,
            severity=self.severity,
        )


class UnauthenticatedError(FieldOpsError):
    """No valid identity was presented."""

    status_code = 401
    code = ErrorCode.ERR_UNAUTHENTICATED
    default_message = "Bạn cần đăng nhập để tiếp tục."
    suggestion = "Đăng nhập lại và thử lại."


class PermissionDeniedError(FieldOpsError):
    """The actor lacks the role or assignment required for the action.

    Illegal status transitions are reported with this error as well.
    """

    status_code = 403
    code = ErrorCode.ERR_PERMISSION_DENIED
    default_message = "Bạn không có quyền thực hiện thao tác này."
    suggestion = "Liên hệ quản trị viên nếu bạn cho rằng đây là lỗi."


class NotFoundError(FieldOpsError):
    """The referenced entity does not exist."""

    status_code = 404
    code = ErrorCode.ERR_NOT_FOUND
    default_message = "Không tìm thấy dữ liệu."
    suggestion = "Kiểm tra lại mã và thử lại."
    severity = ErrorSeverity.LOW


class ValidationFailedError(FieldOpsError):
    """Malformed input, with field-level messages."""

    status_code = 400
    code = ErrorCode.ERR_VALIDATION_FAILED
    default_message = "Dữ liệu không hợp lệ."
    suggestion = "Sửa các trường bị lỗi và thử lại."
    severity = ErrorSeverity.LOW

    def __init__(
        self,
        message: str | None = None,
        *,
        fields: dict[str, list[str]] | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message, code=code)
        self.fields = fields or {}

    def to_response(self) -> ErrorResponse:
        response = super().to_response()
        response.fields = self.fields or None
        return response


class UpstreamError(FieldOpsError):
    """A dependency (identity provider, storage) is unavailable. Safe to retry."""

    status_code = 503
    code = ErrorCode.ERR_UPSTREAM_UNAVAILABLE
    default_message = "Dịch vụ tạm thời không khả dụng. Vui lòng thử lại."
    suggestion = "Thử lại sau ít phút."
    severity = ErrorSeverity.HIGH


def classify_error_with_response(exception: Exception) -> ErrorResponse:
    """Classify an error and return a structured response with recovery suggestions.

    Known application errors carry their own response. Anything else is an
    internal failure: callers get a generic message and no internal detail.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    if isinstance(exception, FieldOpsError):
        return exception.to_response()

    if isinstance(exception, ConnectionError | TimeoutError):
        return UpstreamError().to_response()

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message=FieldOpsError.default_message,
        suggestion="Vui lòng thử lại sau. Nếu lỗi vẫn tiếp diễn, hãy liên hệ quản trị viên.",
        severity=ErrorSeverity.MEDIUM,
    )


def status_code_for(exception: Exception) -> int:
    """HTTP status code to use for an exception."""
    if isinstance(exception, FieldOpsError):
        return exception.status_code
    if isinstance(exception, ConnectionError | TimeoutError):
        return UpstreamError.status_code
    return 500
