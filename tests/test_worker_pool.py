"""Tests for bounded render job execution."""

import asyncio

import pytest

from highlight_reel.exceptions import RenderQueueFullError
from highlight_reel.services.worker_pool import RenderWorkerPool


class TestSubmit:
    @pytest.mark.asyncio
    async def test_returns_handle_immediately(self):
        pool = RenderWorkerPool(max_concurrent=1, max_pending=4)
        gate = asyncio.Event()

        async def job():
            await gate.wait()
            return "/uploads/reels/a.mp4"

        handle = pool.submit("reel-1", job)
        assert handle.job_id == "reel-1"
        assert not handle.done()
        assert pool.get("reel-1") is handle

        gate.set()
        assert await handle.result() == "/uploads/reels/a.mp4"
        await asyncio.sleep(0)
        assert pool.pending_count == 0

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        pool = RenderWorkerPool(max_concurrent=2, max_pending=10)
        running = 0
        peak = 0

        async def job():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.02)
            running -= 1

        handles = [pool.submit(f"reel-{i}", job) for i in range(6)]
        await asyncio.gather(*(h.result() for h in handles))

        assert peak == 2

    @pytest.mark.asyncio
    async def test_full_queue_is_rejected(self):
        pool = RenderWorkerPool(max_concurrent=1, max_pending=2)
        gate = asyncio.Event()

        async def job():
            await gate.wait()

        pool.submit("reel-1", job)
        pool.submit("reel-2", job)
        with pytest.raises(RenderQueueFullError):
            pool.submit("reel-3", job)
        assert pool.get("reel-3") is None

        gate.set()
        await pool.shutdown()

    @pytest.mark.asyncio
    async def test_job_failure_surfaces_through_handle(self):
        pool = RenderWorkerPool()

        async def job():
            raise RuntimeError("encoder exploded")

        handle = pool.submit("reel-1", job)
        with pytest.raises(RuntimeError, match="encoder exploded"):
            await handle.result()


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_queued_job_runs_callback(self):
        pool = RenderWorkerPool(max_concurrent=1, max_pending=4)
        gate = asyncio.Event()
        cancelled: list[str] = []

        async def job():
            await gate.wait()

        first = pool.submit("reel-1", job)
        queued = pool.submit("reel-2", job, on_cancelled_while_queued=lambda: cancelled.append("reel-2"))
        await asyncio.sleep(0)

        assert pool.cancel("reel-2") is True
        with pytest.raises(asyncio.CancelledError):
            await queued.result()
        assert cancelled == ["reel-2"]

        gate.set()
        await first.result()

    @pytest.mark.asyncio
    async def test_cancel_running_job_skips_queued_callback(self):
        pool = RenderWorkerPool(max_concurrent=1)
        started = asyncio.Event()
        cancelled: list[str] = []

        async def job():
            started.set()
            await asyncio.sleep(30)

        handle = pool.submit("reel-1", job, on_cancelled_while_queued=lambda: cancelled.append("reel-1"))
        await started.wait()
        handle.cancel()

        with pytest.raises(asyncio.CancelledError):
            await handle.result()
        assert cancelled == []
        assert pool.running_count == 0

    @pytest.mark.asyncio
    async def test_cancel_unknown_job(self):
        assert RenderWorkerPool().cancel("reel-nope") is False

    @pytest.mark.asyncio
    async def test_shutdown_cancels_everything(self):
        pool = RenderWorkerPool(max_concurrent=1, max_pending=4)

        async def job():
            await asyncio.sleep(30)

        handles = [pool.submit(f"reel-{i}", job) for i in range(3)]
        await pool.shutdown()

        assert all(h.done() for h in handles)
        assert pool.pending_count == 0
