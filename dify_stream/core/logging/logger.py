"""
Logger facade for the Dify stream client.

Keeps call sites short: structured context goes in as keyword arguments and
lands on the log record as `extra` fields.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from typing import Any

from .config import setup_logging


class Logger:
    """
    Thin wrapper over the project's stdlib logger.

    Debug helpers only do work when LOG_LEVEL=DEBUG is enabled.
    """

    def __init__(self):
        self._logger = setup_logging()

    def reconfigure(self):
        """Re-read logging settings from the environment."""
        self._logger = setup_logging()

    def is_debug_enabled(self) -> bool:
        """Check if debug logging is enabled."""
        return self._logger.isEnabledFor(logging.DEBUG)

    def info(self, message: str, **kwargs):
        """Log an info message."""
        self._logger.info(message, extra=kwargs or None)

    def debug(self, message: str, **kwargs):
        """Log a debug message."""
        self._logger.debug(message, extra=kwargs or None)

    def warning(self, message: str, **kwargs):
        """Log a warning message."""
        self._logger.warning(message, extra=kwargs or None)

    def error(self, message: str, **kwargs):
        """Log an error message, with traceback when called while handling an exception."""
        exc_info = sys.exc_info()[0] is not None
        self._logger.error(message, extra=kwargs or None, exc_info=exc_info)

    def request(self, operation: str, request_id: str, **kwargs):
        """Log an outbound request with context."""
        message_parts = [f"Request: {operation}"]
        if 'response_mode' in kwargs:
            message_parts.append(f"mode={kwargs['response_mode']}")
        if 'url' in kwargs:
            message_parts.append(f"url={kwargs['url']}")

        self.info(" | ".join(message_parts), request_id=request_id, **kwargs)

    def response(self, operation: str, request_id: str, status_code: int = 200, **kwargs):
        """Log a response with context."""
        message_parts = [f"Response: {operation}", f"status={status_code}"]
        if 'latency_ms' in kwargs:
            message_parts.append(f"time={kwargs['latency_ms']}ms")

        self.info(" | ".join(message_parts), request_id=request_id, status_code=status_code, **kwargs)

    def debug_data(self, title: str, data: Any, request_id: str, **kwargs):
        """Log full payloads when LOG_LEVEL=DEBUG."""
        if not self.is_debug_enabled():
            return

        if isinstance(data, dict):
            data_str = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        else:
            data_str = str(data)

        message = f"DEBUG: {title}"
        if 'component' in kwargs:
            message += f" | component={kwargs['component']}"
        if 'data_flow' in kwargs:
            message += f" | flow={kwargs['data_flow']}"

        self.debug(f"{message}\n{data_str}", request_id=request_id, **kwargs)

    @contextmanager
    def request_context(self, operation: str, request_id: str, **kwargs):
        """
        Request-scoped logging.

        Logs the start, any escaping error, and the completion with duration.
        """
        start_time = time.monotonic()
        self.request(operation=operation, request_id=request_id, **kwargs)

        try:
            yield
        except Exception as e:
            self.error(f"{operation} failed: {e}", request_id=request_id, **kwargs)
            raise
        finally:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            self.info(
                f"Completed: {operation} | duration={duration_ms}ms",
                request_id=request_id,
                **kwargs
            )
