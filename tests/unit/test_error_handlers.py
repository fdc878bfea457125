"""Unit tests for the JSON error handlers."""

import logging

import pytest
from pydantic import BaseModel, Field, ValidationError
from starlette.requests import Request

from fieldops.core.logging import REDACTED
from fieldops.interface.error_handlers import _field_errors, _loggable_errors, handle_validation_error


class Credentials(BaseModel):
    user_id: str
    secret_key: str = Field(min_length=8)


def validation_errors(**data) -> list[dict]:
    with pytest.raises(ValidationError) as exc_info:
        Credentials(**data)
    return exc_info.value.errors()


def make_request(path: str = "/v1/users") -> Request:
    return Request({"type": "http", "method": "POST", "path": path, "headers": [], "query_string": b""})


@pytest.mark.unit
class TestValidationLogging:
    """Tests for what validation failures write to the log."""

    def test_sensitive_input_is_redacted(self):
        """Test the rejected value of a credential field never reaches the log."""
        errors = _loggable_errors(validation_errors(user_id="w1", secret_key="hunter2"))

        assert len(errors) == 1
        assert errors[0]["input"] == REDACTED
        assert "ctx" not in errors[0]

    def test_plain_input_is_kept(self):
        """Test ordinary fields keep their input for debugging."""
        errors = _loggable_errors(validation_errors(user_id=42, secret_key="long-enough-secret"))

        assert errors[0]["input"] == 42

    def test_field_paths_drop_location_prefix(self):
        """Test body and query prefixes are stripped from field paths."""
        errors = [{"loc": ("body", "customer", "phone"), "msg": "bad"}, {"loc": (), "msg": "whole"}]

        assert _field_errors(errors) == {"customer.phone": ["bad"], "__root__": ["whole"]}

    async def test_handler_logs_redacted_errors(self, caplog):
        """Test the validation handler answers 400 and logs without the secret."""
        exc = ValidationError.from_exception_data(
            "Credentials",
            [{"type": "string_too_short", "loc": ("secret_key",), "input": "hunter2", "ctx": {"min_length": 8}}],
        )

        with caplog.at_level(logging.INFO, logger="fieldops.interface.error_handlers"):
            response = await handle_validation_error(make_request(), exc)

        record = next(r for r in caplog.records if r.getMessage() == "request_validation_failed")
        assert response.status_code == 400
        assert record.errors[0]["input"] == REDACTED
        assert "hunter2" not in str(record.errors)
