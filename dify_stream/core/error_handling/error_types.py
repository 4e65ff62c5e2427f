"""
Error Types and Context Definitions

This module defines the error taxonomy of the chat client and the context
carried alongside an error for logging.
"""

from enum import Enum
from typing import Dict, Any, Optional
from fastapi import status


class ChatErrorType(Enum):
    """Enumeration of chat client error kinds."""

    # Unusable configuration, fatal for the call
    CONFIG_ERROR = ("CONFIG_ERROR", status.HTTP_500_INTERNAL_SERVER_ERROR, "Invalid configuration: {error_details}")

    # Local admission control denied the call
    RATE_LIMIT_ERROR = ("RATE_LIMIT_ERROR", status.HTTP_429_TOO_MANY_REQUESTS, "Rate limit exceeded. Please wait before making another request.")

    # Request rejected before sending
    VALIDATION_ERROR = ("VALIDATION_ERROR", status.HTTP_400_BAD_REQUEST, "Query is required and cannot be empty")

    # Transport failures
    NETWORK_ERROR = ("NETWORK_ERROR", status.HTTP_502_BAD_GATEWAY, "Network error communicating with the chat backend: {error_details}")
    TIMEOUT_ERROR = ("TIMEOUT_ERROR", status.HTTP_504_GATEWAY_TIMEOUT, "The chat backend did not respond within {timeout_seconds} seconds")

    # Non-2xx from the backend (dynamic status code)
    API_ERROR = ("API_ERROR", None, "{error_details}")

    # Malformed JSON in a blocking body or a broken stream
    PARSE_ERROR = ("PARSE_ERROR", status.HTTP_502_BAD_GATEWAY, "{error_details}")

    def __init__(self, code: str, http_status: Optional[int], message_template: str):
        self.code = code
        self.http_status = http_status
        self.message_template = message_template

    def format_message(self, **kwargs) -> str:
        """Format the error message with provided parameters."""
        try:
            return self.message_template.format(**kwargs)
        except KeyError:
            return self.message_template


# User facing text for backend status codes
STATUS_MESSAGES = {
    400: "The request was invalid. Please check your input.",
    401: "The API key is invalid or not configured. Please check DIFY_API_KEY.",
    403: "You do not have permission to use this feature.",
    404: "Could not reach the AI assistant. Please check the API URL.",
    429: "Sorry! I'm receiving too many requests right now. Please wait a moment and try again.",
    500: "The AI service is temporarily unavailable. I'll be back shortly!",
    502: "The AI service is temporarily unavailable. I'll be back shortly!",
    503: "The AI service is temporarily unavailable. I'll be back shortly!",
    504: "The AI service is temporarily unavailable. I'll be back shortly!",
}

DEFAULT_STATUS_MESSAGE = "Something went wrong while processing your request. Please try again later."


def map_status_message(status_code: int, message: Optional[str] = None) -> str:
    """Return the display message for a backend status code."""
    return STATUS_MESSAGES.get(status_code) or message or DEFAULT_STATUS_MESSAGE


class ErrorContext:
    """Context information for error handling."""

    def __init__(
        self,
        request_id: Optional[str] = None,
        user_id: Optional[str] = None,
        response_mode: Optional[str] = None,
        conversation_id: Optional[str] = None,
        **additional_context
    ):
        self.request_id = request_id
        self.user_id = user_id
        self.response_mode = response_mode
        self.conversation_id = conversation_id
        self.additional_context = additional_context

    def to_log_extra(self) -> Dict[str, Any]:
        """Convert context to logging extra dictionary."""
        extra = {
            "log_type": "error"
        }

        if self.request_id:
            extra["request_id"] = self.request_id
        if self.user_id:
            extra["user_id"] = self.user_id
        if self.response_mode:
            extra["response_mode"] = self.response_mode
        if self.conversation_id:
            extra["conversation_id"] = self.conversation_id

        extra.update(self.additional_context)
        return extra
