from typing import Any, Dict, Optional


class ChatClientError(Exception):
    """Typed failure of a chat call. `message` is safe to show to the end user."""
    def __init__(
        self,
        error_type,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Any = None,
        original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.error_type = error_type
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details
        self.original_exception = original_exception

    @property
    def http_status(self) -> int:
        """Status code to use when relaying this error over HTTP."""
        if self.error_type.code == "API_ERROR" and self.status_code:
            return self.status_code
        return self.error_type.http_status or 500

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": {
                "type": self.error_type.code,
                "message": self.message,
                "status": self.status_code,
                "code": self.code,
            }
        }

    def __repr__(self):
        return f"ChatClientError({self.error_type.code}, {self.message!r}, status_code={self.status_code})"


class RequestCancelledError(Exception):
    """Raised inside a call when the caller's cancel event fires."""
    def __init__(self, message: str = "Request cancelled by caller"):
        super().__init__(message)
        self.message = message
