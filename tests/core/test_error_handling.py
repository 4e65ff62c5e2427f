"""
Tests for the error taxonomy, context and classification.
"""

import asyncio
import logging

import httpx
import pytest

from dify_stream.core.error_handling import (
    ChatErrorType,
    ErrorContext,
    ErrorHandler,
    STATUS_MESSAGES,
    map_status_message,
)
from dify_stream.core.exceptions import ChatClientError


class TestErrorTypes:

    def test_timeout_message(self):
        message = ChatErrorType.TIMEOUT_ERROR.format_message(timeout_seconds=30.0)
        assert "30.0 seconds" in message

    def test_missing_template_value_keeps_template(self):
        assert ChatErrorType.PARSE_ERROR.format_message() == "{error_details}"

    @pytest.mark.parametrize("status_code", [400, 401, 403, 404, 429, 500, 502, 503, 504])
    def test_known_status_messages(self, status_code):
        assert map_status_message(status_code) == STATUS_MESSAGES[status_code]

    def test_unknown_status_falls_back(self):
        assert map_status_message(418) == "Something went wrong while processing your request. Please try again later."
        assert map_status_message(418, "Teapot") == "Teapot"


class TestErrorContext:

    def test_to_log_extra(self):
        context = ErrorContext(request_id="r1", response_mode="blocking", attempt=2)
        extra = context.to_log_extra()

        assert extra == {"log_type": "error", "request_id": "r1", "response_mode": "blocking", "attempt": 2}


class TestErrorHandler:

    def test_api_error_carries_status(self):
        error = ErrorHandler.handle_api_error(429, ErrorContext(), "slow down")

        assert error.error_type is ChatErrorType.API_ERROR
        assert error.status_code == 429
        assert error.http_status == 429
        assert error.message == STATUS_MESSAGES[429]
        assert error.details == "slow down"

    def test_to_dict(self):
        error = ErrorHandler.handle_rate_limit_error(ErrorContext())
        assert error.to_dict() == {
            "error": {
                "type": "RATE_LIMIT_ERROR",
                "message": ChatErrorType.RATE_LIMIT_ERROR.message_template,
                "status": None,
                "code": "rate_limit_error",
            }
        }
        assert error.http_status == 429

    def test_config_error_lists_issues(self):
        error = ErrorHandler.handle_config_error(["a missing", "b missing"], ErrorContext())
        assert error.details == ["a missing", "b missing"]
        assert "a missing, b missing" in error.message

    def test_rate_limit_logged_as_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="dify-stream"):
            ErrorHandler.handle_rate_limit_error(ErrorContext(request_id="r1"))

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.request_id == "r1"
        assert record.error_type == "RATE_LIMIT_ERROR"


class TestClassifyException:

    def test_passes_through_chat_errors(self):
        original = ErrorHandler.handle_validation_error(ErrorContext())
        assert ErrorHandler.classify_exception(original, ErrorContext(), 30) is original

    @pytest.mark.parametrize("exc", [
        asyncio.TimeoutError(),
        httpx.ReadTimeout("read timed out"),
        httpx.ConnectTimeout("connect timed out"),
    ])
    def test_timeouts(self, exc):
        error = ErrorHandler.classify_exception(exc, ErrorContext(), 30)
        assert error.error_type is ChatErrorType.TIMEOUT_ERROR
        assert error.original_exception is exc

    def test_transport_errors_are_network_errors(self):
        error = ErrorHandler.classify_exception(httpx.ConnectError("refused"), ErrorContext(), 30, during_stream=True)
        assert error.error_type is ChatErrorType.NETWORK_ERROR
        assert "refused" in error.message

    def test_other_errors_depend_on_phase(self):
        before = ErrorHandler.classify_exception(RuntimeError("x"), ErrorContext(), 30)
        during = ErrorHandler.classify_exception(RuntimeError("x"), ErrorContext(), 30, during_stream=True)

        assert before.error_type is ChatErrorType.NETWORK_ERROR
        assert during.error_type is ChatErrorType.PARSE_ERROR
        assert during.message == "Streaming error: x"
        assert isinstance(during, ChatClientError)
