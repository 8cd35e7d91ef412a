"""In-process queue handing message ids over to background workers."""
from __future__ import annotations

import asyncio
from typing import Optional


class WorkQueue:
    """Async FIFO of message ids awaiting orchestration.

    Only ids travel through the queue; workers re-read the message and claim
    it through the persistence gateway, so a duplicate submission is harmless.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize)

    async def submit(self, message_id: str) -> None:
        """Enqueue a message id for processing."""
        await self._queue.put(message_id)

    async def get(self, timeout: float) -> Optional[str]:
        """Wait up to ``timeout`` seconds for the next id."""
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        """Block until every submitted id has been marked done."""
        await self._queue.join()

    def __len__(self) -> int:
        return self._queue.qsize()
