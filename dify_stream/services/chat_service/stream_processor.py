"""
Stream Processor Module

This module provides the StreamProcessor class, which drives the event parser
and the chunk batcher over one streaming response body and reports text to
the caller's callbacks.

Ordering guarantees:
- Message callbacks see fragments in arrival order, coalesced per flush interval
- Identifier fields are last-write-wins, so the values read after the stream
  ends are those of the most recent event that carried them
- Whatever is still batched when the body closes is flushed unconditionally
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import AsyncIterable, Callable, List, Optional

from ..chat.chunk_batcher import StreamChunkBatcher, DEFAULT_FLUSH_INTERVAL
from ..chat.models import StreamingCallbacks
from ..chat.stream_event import StreamEvent
from ..chat.stream_parser import StreamEventParser
from ...core.logging import logger
from ...utils.cancellation import iterate_with_cancellation


@dataclass
class StreamOutcome:
    """What one stream produced."""
    fragments: List[str] = field(default_factory=list)
    conversation_id: Optional[str] = None
    message_id: Optional[str] = None
    message_count: int = 0
    flush_count: int = 0
    events_parsed: int = 0
    lines_dropped: int = 0

    @property
    def full_message(self) -> str:
        return "".join(self.fragments)


class StreamProcessor:
    """
    Reassembles a chat answer from an event-stream body.

    Progress is a heuristic: the total length is unknown up front, so each
    message event counts as 1/progress_divisor of the answer, capped at 100.
    """

    def __init__(self,
                 flush_interval: float = DEFAULT_FLUSH_INTERVAL,
                 progress_divisor: int = 10,
                 clock: Callable[[], float] = time.monotonic):
        """
        Args:
            flush_interval: Batching interval for on_message, in seconds
            progress_divisor: Message events that count as 100% progress
            clock: Time source handed to the batcher
        """
        self.flush_interval = flush_interval
        self.progress_divisor = max(1, progress_divisor)
        self.clock = clock

    async def process_stream(self,
                             byte_stream: AsyncIterable[bytes],
                             callbacks: StreamingCallbacks,
                             request_id: str,
                             cancel_event: Optional[asyncio.Event] = None) -> StreamOutcome:
        """
        Consume a response body until the transport closes.

        Args:
            byte_stream: Raw body chunks
            callbacks: Receives on_message and on_progress
            request_id: Identifier for logging
            cancel_event: Stops reading as soon as it is set

        Returns:
            StreamOutcome with the full text and final identifiers

        Raises:
            RequestCancelledError: When cancel_event fires mid-stream
        """
        start_time = time.monotonic()
        parser = StreamEventParser(request_id=request_id)
        batcher = StreamChunkBatcher(self.flush_interval, clock=self.clock)
        outcome = StreamOutcome()
        bytes_processed = 0

        async for chunk in iterate_with_cancellation(byte_stream, cancel_event):
            bytes_processed += len(chunk)
            for event in parser.feed(chunk):
                self._handle_event(event, outcome, batcher, callbacks)

        for event in parser.finish():
            self._handle_event(event, outcome, batcher, callbacks)

        if batcher.has_pending_chunks():
            outcome.flush_count += 1
            callbacks.on_message(batcher.flush())

        outcome.events_parsed = parser.events_parsed
        outcome.lines_dropped = parser.lines_dropped

        logger.info(
            "Stream processing completed",
            request_id=request_id,
            message_count=outcome.message_count,
            flush_count=outcome.flush_count,
            events_parsed=outcome.events_parsed,
            lines_dropped=outcome.lines_dropped,
            bytes_processed=bytes_processed,
            message_length=len(outcome.full_message),
            duration_ms=int((time.monotonic() - start_time) * 1000)
        )
        return outcome

    def _handle_event(self,
                      event: StreamEvent,
                      outcome: StreamOutcome,
                      batcher: StreamChunkBatcher,
                      callbacks: StreamingCallbacks):
        if event.has_content:
            outcome.message_count += 1
            outcome.fragments.append(event.text)
            batcher.add_chunk(event.text)

            if batcher.should_flush():
                outcome.flush_count += 1
                callbacks.on_message(batcher.flush())

        if event.conversation_id:
            outcome.conversation_id = event.conversation_id
        if event.message_id:
            outcome.message_id = event.message_id

        if event.is_message:
            callbacks.emit_progress(self.estimate_progress(outcome.message_count))

    def estimate_progress(self, message_count: int) -> float:
        return min(100.0, message_count / self.progress_divisor * 100)
