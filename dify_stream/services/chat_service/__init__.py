from .chat_service import ChatService
from .stream_channel import StreamUpdate, UpdateKind, stream_updates
from .stream_processor import StreamProcessor, StreamOutcome

__all__ = [
    "ChatService",
    "StreamUpdate",
    "UpdateKind",
    "stream_updates",
    "StreamProcessor",
    "StreamOutcome",
]
