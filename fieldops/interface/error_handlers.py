"""Map exceptions to JSON error responses."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from fieldops.core.errors import (
    FieldOpsError,
    ValidationFailedError,
    classify_error_with_response,
    status_code_for,
)
from fieldops.core.logging import REDACTED, is_sensitive_field, redact_sensitive


logger = logging.getLogger(__name__)

_LOCATION_PREFIXES = {"body", "query", "path", "header", "form"}


def _field_errors(errors: list[dict]) -> dict[str, list[str]]:
    """Group validation messages by dotted field path."""
    fields: dict[str, list[str]] = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        fields.setdefault(".".join(loc) or "__root__", []).append(error.get("msg", "Invalid value"))
    return fields


def _loggable_errors(errors: list[dict]) -> list[dict]:
    """Validation errors without ctx, and without the rejected input of credential fields."""
    loggable = []
    for error in errors:
        entry = {k: v for k, v in error.items() if k != "ctx"}
        loc = entry.get("loc", ())
        if loc and "input" in entry and is_sensitive_field(str(loc[-1])):
            entry["input"] = REDACTED
        loggable.append(redact_sensitive(entry))
    return loggable


def _error_body(exc: Exception) -> dict:
    return {"error": classify_error_with_response(exc).model_dump(mode="json", exclude_none=True)}


async def handle_fieldops_error(request: Request, exc: Exception) -> JSONResponse:
    level = logging.ERROR if status_code_for(exc) >= 500 else logging.INFO
    logger.log(
        level,
        "request_failed",
        extra={"path": request.url.path, "code": getattr(exc, "code", None), "error": str(exc)},
    )
    return JSONResponse(status_code=status_code_for(exc), content=_error_body(exc))


async def handle_validation_error(request: Request, exc: Exception) -> JSONResponse:
    errors = exc.errors() if isinstance(exc, RequestValidationError | ValidationError) else []
    logger.info(
        "request_validation_failed",
        extra={
            "path": request.url.path,
            "errors": _loggable_errors(errors),
        },
    )
    return await handle_fieldops_error(request, ValidationFailedError(fields=_field_errors(errors)))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", extra={"path": request.url.path, "error_type": type(exc).__name__})
    return JSONResponse(status_code=status_code_for(exc), content=_error_body(exc))


def register_error_handlers(app: FastAPI) -> None:
    """Install the JSON error handlers on an app."""
    app.add_exception_handler(FieldOpsError, handle_fieldops_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(ValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
