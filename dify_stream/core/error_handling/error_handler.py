"""
Main Error Handler

Factory for typed ChatClientError instances. Every factory logs the error
once through ErrorLogger, so call sites only decide where the error goes
(raised in blocking mode, delivered to on_error in streaming mode).
"""

import asyncio
from typing import List, Optional

import httpx

from .error_types import ChatErrorType, ErrorContext, map_status_message
from .error_logger import ErrorLogger
from ..exceptions import ChatClientError


class ErrorHandler:
    """Centralized error handling utility."""

    @staticmethod
    def create_error(
        error_type: ChatErrorType,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
        status_code: Optional[int] = None,
        details=None,
        log_error: bool = True,
        **format_kwargs
    ) -> ChatClientError:
        """
        Create a ChatClientError with a formatted user facing message.

        Args:
            error_type: The kind of error to create
            context: Error context information
            original_exception: Exception that caused this error
            status_code: Backend status code, for API errors
            details: Extra diagnostic payload kept on the error
            log_error: Whether to log the error
            **format_kwargs: Values for the message template

        Returns:
            ChatClientError
        """
        if context is None:
            context = ErrorContext()

        message = error_type.format_message(**format_kwargs)

        if log_error:
            ErrorLogger.log_error(
                error_type=error_type,
                message=message,
                context=context,
                original_exception=original_exception
            )

        return ChatClientError(
            error_type,
            message,
            status_code=status_code,
            code=error_type.code.lower(),
            details=details,
            original_exception=original_exception
        )

    @staticmethod
    def handle_config_error(issues: List[str], context: ErrorContext) -> ChatClientError:
        """Handle unusable configuration."""
        return ErrorHandler.create_error(
            ChatErrorType.CONFIG_ERROR,
            context=context,
            details=list(issues),
            error_details=", ".join(issues)
        )

    @staticmethod
    def handle_rate_limit_error(context: ErrorContext) -> ChatClientError:
        """Handle a request denied by local admission control."""
        return ErrorHandler.create_error(ChatErrorType.RATE_LIMIT_ERROR, context=context)

    @staticmethod
    def handle_validation_error(context: ErrorContext) -> ChatClientError:
        """Handle an empty query."""
        return ErrorHandler.create_error(ChatErrorType.VALIDATION_ERROR, context=context)

    @staticmethod
    def handle_api_error(
        status_code: int,
        context: ErrorContext,
        response_text: Optional[str] = None
    ) -> ChatClientError:
        """Handle a non-success status from the backend. Never retried."""
        ErrorLogger.log_api_error(status_code, response_text, context)
        return ErrorHandler.create_error(
            ChatErrorType.API_ERROR,
            context=context,
            status_code=status_code,
            details=response_text,
            log_error=False,
            error_details=map_status_message(status_code)
        )

    @staticmethod
    def handle_network_error(original_exception: Exception, context: ErrorContext) -> ChatClientError:
        """Handle transport level failures."""
        return ErrorHandler.create_error(
            ChatErrorType.NETWORK_ERROR,
            context=context,
            original_exception=original_exception,
            error_details=str(original_exception) or type(original_exception).__name__
        )

    @staticmethod
    def handle_timeout_error(
        timeout_seconds: float,
        context: ErrorContext,
        original_exception: Optional[Exception] = None
    ) -> ChatClientError:
        """Handle deadline expiry from either asyncio or httpx."""
        return ErrorHandler.create_error(
            ChatErrorType.TIMEOUT_ERROR,
            context=context,
            original_exception=original_exception,
            timeout_seconds=timeout_seconds
        )

    @staticmethod
    def handle_parse_error(
        error_details: str,
        context: ErrorContext,
        original_exception: Optional[Exception] = None
    ) -> ChatClientError:
        """Handle malformed JSON or a failure while processing the stream."""
        return ErrorHandler.create_error(
            ChatErrorType.PARSE_ERROR,
            context=context,
            original_exception=original_exception,
            error_details=error_details
        )

    @staticmethod
    def classify_exception(
        error: Exception,
        context: ErrorContext,
        timeout_seconds: float,
        during_stream: bool = False
    ) -> ChatClientError:
        """
        Map an arbitrary exception onto the error taxonomy.

        ChatClientError passes through unchanged. Timeouts become TIMEOUT_ERROR,
        transport errors NETWORK_ERROR. Anything else is NETWORK_ERROR before
        the body is being read and PARSE_ERROR once the stream is being processed.
        """
        if isinstance(error, ChatClientError):
            return error
        if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
            return ErrorHandler.handle_timeout_error(timeout_seconds, context, error)
        if isinstance(error, httpx.TransportError):
            return ErrorHandler.handle_network_error(error, context)
        if during_stream:
            return ErrorHandler.handle_parse_error(f"Streaming error: {error}", context, error)
        return ErrorHandler.handle_network_error(error, context)
