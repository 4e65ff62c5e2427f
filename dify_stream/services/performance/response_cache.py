"""
Response Cache Module

Bounded, expiring in-memory store for completed blocking responses.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


@dataclass
class CacheEntry:
    key: str
    value: Any
    expires_at: float


class ResponseCache:
    """
    Insertion-ordered cache with a TTL.

    Expired entries are removed lazily: on read, and in bulk before every
    write. When full, the oldest inserted entry is evicted (FIFO, reads do
    not refresh an entry's position).
    """

    def __init__(self, max_size: int = 100, ttl: float = 300.0, enabled: bool = True,
                 clock: Callable[[], float] = time.monotonic):
        self.max_size = max_size
        self.ttl = ttl
        self.enabled = enabled
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def set(self, key: str, value: Any):
        if not self.enabled:
            return

        self._cleanup()

        # Re-setting a key moves it to the back instead of evicting a neighbour
        self._entries.pop(key, None)

        if len(self._entries) >= self.max_size and self._entries:
            oldest_key = next(iter(self._entries))
            del self._entries[oldest_key]

        self._entries[key] = CacheEntry(key=key, value=value, expires_at=self.clock() + self.ttl)

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on a miss or an expired entry."""
        if not self.enabled:
            return None

        entry = self._entries.get(key)
        if entry is None:
            return None

        if self.clock() > entry.expires_at:
            del self._entries[key]
            return None

        return entry.value

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def clear(self):
        self._entries.clear()

    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def _cleanup(self):
        now = self.clock()
        expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]
