"""
Error Handling Module

Standardized error kinds, context and factories for the chat client.

Components:
- ChatErrorType: Enumeration of error kinds
- ErrorContext: Context information for error handling
- ErrorHandler: Factory for typed, logged errors
- ErrorLogger: Centralized error logging utility
"""

from .error_types import ChatErrorType, ErrorContext, STATUS_MESSAGES, map_status_message
from .error_handler import ErrorHandler
from .error_logger import ErrorLogger

__all__ = [
    'ChatErrorType',
    'ErrorContext',
    'ErrorHandler',
    'ErrorLogger',
    'STATUS_MESSAGES',
    'map_status_message'
]
