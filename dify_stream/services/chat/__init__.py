"""
Chat stream building blocks
"""

from .models import ChatRequest, ChatResult, ResponseMode, StreamingCallbacks, estimate_tokens
from .stream_event import StreamEvent, EventKind
from .stream_parser import StreamEventParser
from .chunk_batcher import StreamChunkBatcher
from .identity import IdentityProvider, SessionIdentityProvider
from .request_builder import build_request_payload

__all__ = [
    'ChatRequest',
    'ChatResult',
    'ResponseMode',
    'StreamingCallbacks',
    'estimate_tokens',
    'StreamEvent',
    'EventKind',
    'StreamEventParser',
    'StreamChunkBatcher',
    'IdentityProvider',
    'SessionIdentityProvider',
    'build_request_payload'
]
