"""
Error Logging Utility

Centralized error logging so every failure kind is logged with the same
structured fields.
"""

from typing import Dict, Any, Optional

from .error_types import ChatErrorType, ErrorContext
from ..logging import logger


class ErrorLogger:
    """Single place where chat client errors are logged."""

    @staticmethod
    def log_error(
        error_type: ChatErrorType,
        message: str,
        context: ErrorContext,
        original_exception: Optional[Exception] = None,
        additional_data: Optional[Dict[str, Any]] = None
    ):
        """Log an error together with its context."""
        log_extra = context.to_log_extra()
        log_extra["error_type"] = error_type.code
        log_extra["http_status_code"] = error_type.http_status

        if additional_data:
            log_extra.update(additional_data)

        if original_exception:
            log_extra["original_exception"] = str(original_exception)
            log_extra["original_exception_type"] = type(original_exception).__name__

        # Rate limiting and validation are expected outcomes, not faults
        if error_type in (ChatErrorType.RATE_LIMIT_ERROR, ChatErrorType.VALIDATION_ERROR):
            logger.warning(message, **log_extra)
        else:
            logger.error(message, **log_extra)

    @staticmethod
    def log_api_error(
        status_code: int,
        response_preview: Optional[str],
        context: ErrorContext
    ):
        """Log a non-success status returned by the chat backend."""
        log_extra = context.to_log_extra()
        log_extra.update({
            "error_type": ChatErrorType.API_ERROR.code,
            "backend_status_code": status_code,
            "response_preview": response_preview[:200] if response_preview else None
        })

        logger.error(f"Chat backend returned error {status_code}", **log_extra)
