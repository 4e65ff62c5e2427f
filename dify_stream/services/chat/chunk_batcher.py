"""
Time-windowed batching of streamed text fragments
"""
import time
from typing import Callable, List

DEFAULT_FLUSH_INTERVAL = 0.05


class StreamChunkBatcher:
    """Coalesces fragments so the consumer gets at most one callback per flush interval"""

    def __init__(self, flush_interval: float = DEFAULT_FLUSH_INTERVAL,
                 clock: Callable[[], float] = time.monotonic):
        """
        Args:
            flush_interval: Minimum seconds between flushes
            clock: Time source in seconds
        """
        self.flush_interval = flush_interval
        self.clock = clock
        self.chunks: List[str] = []
        self.last_flush_time = 0.0

    def add_chunk(self, chunk: str):
        """Append a fragment without flushing"""
        self.chunks.append(chunk)

    def should_flush(self) -> bool:
        """True when something is pending and the interval since the last flush has passed"""
        return (
            len(self.chunks) > 0
            and self.clock() - self.last_flush_time >= self.flush_interval
        )

    def flush(self) -> str:
        """Join and clear pending fragments, restarting the interval"""
        result = "".join(self.chunks)
        self.chunks = []
        self.last_flush_time = self.clock()
        return result

    def has_pending_chunks(self) -> bool:
        return len(self.chunks) > 0

    def pending_chunks(self) -> List[str]:
        return list(self.chunks)

    def clear(self):
        """Drop pending fragments and forget the last flush"""
        self.chunks = []
        self.last_flush_time = 0.0
