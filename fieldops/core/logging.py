"""Logging and observability configuration using Pydantic Logfire.

This module provides standardized logging utilities and configuration.
All modules should use Python's standard logging library (logging.getLogger(__name__)),
and Logfire will automatically capture and enrich these logs.

Standard usage:
    import logging
    logger = logging.getLogger(__name__)
    logger.info("Message", extra={"key": "value"})
"""

import logging
from collections.abc import Mapping
from typing import Any

import logfire
from fastapi import FastAPI

from fieldops.core.config import settings


SENSITIVE_FIELDS = (
    "password",
    "token",
    "secret",
    "apikey",
    "api_key",
    "accesstoken",
    "access_token",
    "refreshtoken",
    "refresh_token",
    "privatekey",
    "private_key",
)

REDACTED = "[REDACTED]"


def configure_logfire() -> None:
    """Configure Pydantic Logfire with token from environment.

    Standard logging records are forwarded to Logfire through its logging handler.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name="fieldops",
        service_version="0.1.0",
        environment=settings.environment,
        send_to_logfire="if-token-present",
    )
    logging.basicConfig(handlers=[logfire.LogfireLoggingHandler()], level=logging.INFO)

    logger = logging.getLogger(__name__)
    logger.info("Logfire configured successfully")


def instrument_fastapi(app: FastAPI) -> None:
    """Add Logfire instrumentation to FastAPI application."""
    logfire.instrument_fastapi(app)
    logger = logging.getLogger(__name__)
    logger.info("FastAPI instrumentation configured")


def span(name: str) -> logfire.LogfireSpan:
    """Create a custom span for service layer functions.

    Usage:
        with span("task_service.create_task"):
            # Your service logic here
            pass
    """
    return logfire.span(name)


def is_sensitive_field(field_name: str) -> bool:
    """Return True if the field name looks like it holds a credential."""
    lowered = field_name.lower()
    return any(sensitive in lowered for sensitive in SENSITIVE_FIELDS)


def redact_sensitive(data: Any) -> Any:
    """Return a copy of data with credential-like fields replaced by a placeholder."""
    if isinstance(data, Mapping):
        return {
            key: REDACTED if is_sensitive_field(str(key)) else redact_sensitive(value) for key, value in data.items()
        }
    if isinstance(data, list | tuple):
        return [redact_sensitive(item) for item in data]
    return data
