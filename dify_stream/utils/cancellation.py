import asyncio
from typing import AsyncIterable, AsyncIterator, Awaitable, Optional, TypeVar

from ..core.exceptions import RequestCancelledError

T = TypeVar("T")


async def race_cancellation(awaitable: Awaitable[T], cancel_event: Optional[asyncio.Event]) -> T:
    """
    Await `awaitable` unless `cancel_event` fires first.

    Without an event this is a plain await. When the event wins, the pending
    work is cancelled and RequestCancelledError is raised.
    """
    if cancel_event is None:
        return await awaitable

    task = asyncio.ensure_future(awaitable)
    if cancel_event.is_set():
        task.cancel()
        raise RequestCancelledError()

    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not task.done():
            task.cancel()

    if task in done:
        return task.result()
    raise RequestCancelledError()


async def iterate_with_cancellation(
    iterable: AsyncIterable[T],
    cancel_event: Optional[asyncio.Event]
) -> AsyncIterator[T]:
    """Yield from `iterable`, raising RequestCancelledError as soon as `cancel_event` is set."""
    if cancel_event is None:
        async for item in iterable:
            yield item
        return

    iterator = iterable.__aiter__()
    while True:
        try:
            item = await race_cancellation(iterator.__anext__(), cancel_event)
        except StopAsyncIteration:
            return
        yield item
