"""
Incremental decoder for the chat event stream
"""
import codecs
import json
from typing import AsyncIterable, AsyncIterator, List, Optional

from .stream_event import StreamEvent
from ...core.logging import logger

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"


class StreamEventParser:
    """
    Turns raw body bytes into StreamEvent objects.

    Bytes are decoded incrementally, so multi-byte characters and lines may be
    split across reads at any point. Each complete `\\n`-terminated line that
    starts with `data: ` carries one JSON payload. Lines that fail to decode are
    logged and dropped; they never abort the stream.
    """

    def __init__(self, request_id: Optional[str] = None):
        self.request_id = request_id
        self.utf8_decoder = codecs.getincrementaldecoder('utf-8')(errors='replace')
        self.buffer = ""
        self.events_parsed = 0
        self.lines_dropped = 0

    def feed(self, chunk: bytes) -> List[StreamEvent]:
        """
        Append a chunk and return the events from every line it completed.

        Args:
            chunk: Next piece of the response body

        Returns:
            Events in arrival order, possibly empty
        """
        decoded = self.utf8_decoder.decode(chunk, final=False)
        if not decoded:
            return []

        self.buffer += decoded
        return self._extract_events()

    def finish(self) -> List[StreamEvent]:
        """
        Flush the decoder and parse whatever is left after the stream closed.

        A body that ends without a trailing newline still yields its last event.
        """
        self.buffer += self.utf8_decoder.decode(b"", final=True)
        events = self._extract_events()

        remaining = self.buffer.strip()
        self.buffer = ""
        if remaining.startswith(DATA_PREFIX):
            event = self.parse_line(remaining)
            if event is not None:
                events.append(event)
        return events

    async def iter_events(self, byte_stream: AsyncIterable[bytes]) -> AsyncIterator[StreamEvent]:
        """Lazily parse a whole body. Not restartable: the parser keeps its buffer."""
        async for chunk in byte_stream:
            for event in self.feed(chunk):
                yield event
        for event in self.finish():
            yield event

    def _extract_events(self) -> List[StreamEvent]:
        events = []
        boundary = self.buffer.find("\n")
        while boundary != -1:
            line = self.buffer[:boundary].strip()
            self.buffer = self.buffer[boundary + 1:]

            if line.startswith(DATA_PREFIX):
                event = self.parse_line(line)
                if event is not None:
                    events.append(event)

            boundary = self.buffer.find("\n")
        return events

    def parse_line(self, line: str) -> Optional[StreamEvent]:
        """
        Parse one `data: <json>` line.

        Returns:
            StreamEvent, or None for the done marker, an empty payload or a
            payload that is not a JSON object
        """
        if not line.startswith(DATA_PREFIX):
            return None

        payload = line[len(DATA_PREFIX):].strip()
        if not payload or payload == DONE_SENTINEL:
            return None

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            self.lines_dropped += 1
            logger.warning(
                "Dropping malformed stream line",
                request_id=self.request_id,
                parse_error=str(e),
                line_preview=payload[:100]
            )
            return None

        if not isinstance(data, dict):
            self.lines_dropped += 1
            logger.warning(
                "Dropping stream line that is not a JSON object",
                request_id=self.request_id,
                line_preview=payload[:100]
            )
            return None

        self.events_parsed += 1
        return StreamEvent.from_payload(data)
