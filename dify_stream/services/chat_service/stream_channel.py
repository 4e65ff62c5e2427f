"""
Async iterator adapter over the streaming callbacks
"""
import asyncio
import contextlib
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from ..chat.models import ChatResult, StreamingCallbacks


class UpdateKind(str, Enum):
    START = "start"
    MESSAGE = "message"
    PROGRESS = "progress"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class StreamUpdate:
    """
    One callback invocation, as a value

    Attributes:
        kind: Which callback fired
        text: Batched fragment for MESSAGE
        progress: Percentage for PROGRESS
        result: Final result for COMPLETE
        error: Failure for ERROR
    """
    kind: UpdateKind
    text: Optional[str] = None
    progress: Optional[float] = None
    result: Optional[ChatResult] = None
    error: Optional[Exception] = None

    def to_dict(self) -> dict:
        data: dict = {"type": self.kind.value}
        if self.text is not None:
            data["text"] = self.text
        if self.progress is not None:
            data["progress"] = self.progress
        if self.result is not None:
            data["result"] = self.result.to_dict()
        if self.error is not None:
            to_dict = getattr(self.error, "to_dict", None)
            data.update(to_dict() if to_dict else {"error": {"message": str(self.error)}})
        return data


_END = object()


async def stream_updates(
    run: Callable[[StreamingCallbacks], Awaitable[Any]]
) -> AsyncIterator[StreamUpdate]:
    """
    Run a callback-driven streaming call and yield its callbacks as StreamUpdate items.

    `run` receives the callbacks to pass to the call. Closing the iterator
    early cancels the underlying call and waits for it to unwind.
    """
    queue: asyncio.Queue = asyncio.Queue()

    callbacks = StreamingCallbacks(
        on_message=lambda text: queue.put_nowait(StreamUpdate(UpdateKind.MESSAGE, text=text)),
        on_complete=lambda result: queue.put_nowait(StreamUpdate(UpdateKind.COMPLETE, result=result)),
        on_error=lambda error: queue.put_nowait(StreamUpdate(UpdateKind.ERROR, error=error)),
        on_start=lambda: queue.put_nowait(StreamUpdate(UpdateKind.START)),
        on_progress=lambda progress: queue.put_nowait(StreamUpdate(UpdateKind.PROGRESS, progress=progress)),
    )

    task = asyncio.ensure_future(run(callbacks))
    task.add_done_callback(lambda _: queue.put_nowait(_END))

    try:
        while True:
            item = await queue.get()
            if item is _END:
                break
            yield item
        # surface unexpected failures of the call itself
        if not task.cancelled():
            task.result()
    finally:
        if not task.done():
            task.cancel()
            # response cleanup must finish before the iterator reports closed
            with contextlib.suppress(asyncio.CancelledError):
                await task
