"""Bounded execution of render jobs on the event loop.

At most ``max_concurrent`` jobs run at once; the rest wait on a semaphore.
Jobs that are running or waiting count against ``max_pending``; beyond that
new submissions are refused instead of queued.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from highlight_reel.exceptions import RenderQueueFullError

logger = logging.getLogger(__name__)


@dataclass
class JobHandle:
    """Returned immediately on submission. Await ``result()`` or poll the registry."""

    job_id: str
    task: asyncio.Task
    started: bool = False

    def done(self) -> bool:
        return self.task.done()

    def cancel(self) -> bool:
        return self.task.cancel()

    async def result(self) -> Any:
        return await self.task


class RenderWorkerPool:
    def __init__(self, max_concurrent: int = 2, max_pending: int = 16) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_concurrent = max_concurrent
        self.max_pending = max(max_pending, max_concurrent)
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._handles: dict[str, JobHandle] = {}
        self._running = 0

    @property
    def pending_count(self) -> int:
        """Jobs submitted and not yet finished (running or waiting)."""
        return len(self._handles)

    @property
    def running_count(self) -> int:
        return self._running

    def ensure_capacity(self) -> None:
        if len(self._handles) >= self.max_pending:
            raise RenderQueueFullError()

    def submit(
        self,
        job_id: str,
        job: Callable[[], Awaitable[Any]],
        on_cancelled_while_queued: Callable[[], Any] | None = None,
    ) -> JobHandle:
        """Schedule ``job()`` and return its handle without waiting."""
        self.ensure_capacity()
        task = asyncio.get_running_loop().create_task(
            self._run(job_id, job),
            name=f"highlight-reel:{job_id}",
        )
        handle = JobHandle(job_id=job_id, task=task)
        self._handles[job_id] = handle
        task.add_done_callback(lambda t: self._on_done(job_id, t, on_cancelled_while_queued))
        logger.info(f"[POOL] Queued {job_id} ({self.pending_count}/{self.max_pending} pending)")
        return handle

    def get(self, job_id: str) -> JobHandle | None:
        return self._handles.get(job_id)

    def cancel(self, job_id: str) -> bool:
        handle = self._handles.get(job_id)
        if handle is None:
            return False
        return handle.cancel()

    async def shutdown(self) -> None:
        """Cancel every unfinished job and wait for them to unwind."""
        tasks = [handle.task for handle in self._handles.values()]
        for task in tasks:
            task.cancel()
        if tasks:
            logger.info(f"[POOL] Cancelling {len(tasks)} job(s) on shutdown")
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self, job_id: str, job: Callable[[], Awaitable[Any]]) -> Any:
        async with self._semaphore:
            handle = self._handles.get(job_id)
            if handle is not None:
                handle.started = True
            self._running += 1
            try:
                return await job()
            finally:
                self._running -= 1

    def _on_done(
        self,
        job_id: str,
        task: asyncio.Task,
        on_cancelled_while_queued: Callable[[], Any] | None,
    ) -> None:
        handle = self._handles.pop(job_id, None)
        if task.cancelled():
            # Also covers a task cancelled before its first step ran
            if handle is not None and not handle.started and on_cancelled_while_queued is not None:
                on_cancelled_while_queued()
            return
        # Retrieve the exception so asyncio does not log it as never retrieved.
        exc = task.exception()
        if exc is not None:
            logger.info(f"[POOL] {job_id} finished with {type(exc).__name__}")
