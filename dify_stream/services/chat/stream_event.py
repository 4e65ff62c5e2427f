from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any


class EventKind(str, Enum):
    MESSAGE = "message"
    METADATA = "metadata"
    TERMINAL = "terminal"


# Backend event names that close a message
TERMINAL_EVENTS = frozenset({"message_end", "workflow_finished"})


@dataclass(frozen=True)
class StreamEvent:
    """
    One decoded `data:` payload of the chat stream

    Attributes:
        kind: MESSAGE carries answer text, TERMINAL marks the end of a message,
            METADATA is anything else (pings, node events, ...)
        text: Answer fragment, empty unless kind is MESSAGE
        conversation_id: Overwrites the running conversation id when present
        message_id: Overwrites the running message id when present
        event: Raw backend event name
        data: Decoded payload, unknown fields kept but never required
    """
    kind: EventKind
    text: str = ""
    conversation_id: Optional[str] = None
    message_id: Optional[str] = None
    event: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "StreamEvent":
        """Project a decoded JSON payload onto the event variant."""
        event_name = payload.get("event")
        if event_name == "message":
            kind = EventKind.MESSAGE
        elif event_name in TERMINAL_EVENTS:
            kind = EventKind.TERMINAL
        else:
            kind = EventKind.METADATA

        text = (payload.get("answer") or "") if kind is EventKind.MESSAGE else ""
        return cls(
            kind=kind,
            text=text if isinstance(text, str) else str(text),
            conversation_id=payload.get("conversation_id") or None,
            message_id=payload.get("message_id") or payload.get("id") or None,
            event=event_name,
            data=payload,
        )

    @property
    def is_message(self) -> bool:
        return self.kind is EventKind.MESSAGE

    @property
    def has_content(self) -> bool:
        return self.is_message and bool(self.text)

    @property
    def has_identifiers(self) -> bool:
        return bool(self.conversation_id or self.message_id)
