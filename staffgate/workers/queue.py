"""
Deferred work queue.

Jobs posted from inside an event callback run on a later loop iteration,
after the callback has returned, so that the identity provider's event
delivery is never re-entered from its own handler.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

logger = structlog.get_logger(__name__)

Job = Callable[[], Awaitable[object]]


class WorkQueueClosedError(RuntimeError):
    """Raised when posting to a queue that is not running."""


class DeferredWorkQueue:
    """Single-consumer asyncio queue of zero-argument coroutine functions."""

    def __init__(self, name: str = "session-work") -> None:
        self.name = name
        self._queue: asyncio.Queue[tuple[str, Job]] | None = None
        self._worker: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue()
        self._worker = asyncio.get_running_loop().create_task(self._drain(), name=self.name)
        logger.debug("work_queue_started", queue=self.name)

    def post(self, job: Job, *, label: str = "job") -> None:
        """Enqueue ``job``; it never runs before the caller returns."""
        if self._queue is None or not self.running:
            raise WorkQueueClosedError(f"Work queue {self.name!r} is not running")
        self._queue.put_nowait((label, job))

    async def join(self) -> None:
        """Wait until every posted job has finished."""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        worker, self._worker = self._worker, None
        if worker is None:
            return
        worker.cancel()
        try:
            await worker
        except asyncio.CancelledError:
            pass
        self._queue = None
        logger.debug("work_queue_stopped", queue=self.name)

    async def _drain(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            label, job = await queue.get()
            try:
                await job()
            except Exception:
                logger.exception("deferred_job_failed", queue=self.name, job=label)
            finally:
                queue.task_done()
