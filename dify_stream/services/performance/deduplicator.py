"""
Request Deduplicator Module

Collapses concurrent identical calls into one execution whose outcome every
caller shares.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, TypeVar

from ...core.logging import logger

T = TypeVar("T")


class RequestDeduplicator:
    """
    At most one in-flight execution per key.

    An entry lives exactly as long as its work: it is removed when the work
    settles, with a result or an exception. This is not a cache.
    """

    def __init__(self):
        self._pending: Dict[str, "asyncio.Future[Any]"] = {}

    async def deduplicate(self, key: str, request_fn: Callable[[], Awaitable[T]]) -> T:
        """
        Run `request_fn` unless a call with the same key is already running.

        Args:
            key: Identity of the logical call
            request_fn: Factory for the work; only called when no work is pending

        Returns:
            The shared result. A failure is raised to every joined caller.
        """
        existing = self._pending.get(key)
        if existing is not None:
            logger.info("Deduplicating request", dedup_key=key)
            return await existing

        task = asyncio.ensure_future(self._run(key, request_fn))
        self._pending[key] = task
        return await task

    async def _run(self, key: str, request_fn: Callable[[], Awaitable[T]]) -> T:
        try:
            return await request_fn()
        finally:
            if self._pending.get(key) is asyncio.current_task():
                del self._pending[key]

    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    def clear(self):
        """Forget pending entries. Running work is not cancelled."""
        self._pending.clear()
