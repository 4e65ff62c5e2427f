"""
Request, result and callback types for chat calls
"""
import math
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


class ResponseMode(str, Enum):
    STREAMING = "streaming"
    BLOCKING = "blocking"


@dataclass(frozen=True)
class ChatRequest:
    """
    One logical chat call

    Attributes:
        query: User message, trimmed before sending and must not be empty
        conversation_id: Continue an existing conversation
        user: Caller identifier, taken from the identity provider when absent
        inputs: App input variables
        response_mode: Streaming or blocking
        files: Attachments forwarded as-is ({type, transfer_method, url})
    """
    query: str
    conversation_id: Optional[str] = None
    user: Optional[str] = None
    inputs: Dict[str, Any] = field(default_factory=dict)
    response_mode: ResponseMode = ResponseMode.STREAMING
    files: Optional[List[Dict[str, Any]]] = None


def estimate_tokens(text: str) -> int:
    """Rough token count, four characters per token."""
    return math.ceil(len(text) / 4)


@dataclass(frozen=True)
class ChatResult:
    full_message: str
    conversation_id: Optional[str]
    message_id: Optional[str]
    latency_ms: int
    token_estimate: int

    @classmethod
    def build(cls, full_message: str, conversation_id: Optional[str],
              message_id: Optional[str], latency_ms: int) -> "ChatResult":
        return cls(
            full_message=full_message,
            conversation_id=conversation_id or None,
            message_id=message_id or None,
            latency_ms=max(0, int(latency_ms)),
            token_estimate=estimate_tokens(full_message),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StreamingCallbacks:
    """Callbacks invoked by a streaming call, in order: start, message/progress..., complete or error."""
    on_message: Callable[[str], None]
    on_complete: Callable[[ChatResult], None]
    on_error: Callable[[Exception], None]
    on_start: Optional[Callable[[], None]] = None
    on_progress: Optional[Callable[[float], None]] = None

    def emit_start(self):
        if self.on_start:
            self.on_start()

    def emit_progress(self, progress: float):
        if self.on_progress:
            self.on_progress(progress)
