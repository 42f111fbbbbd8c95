"""Highlight reel service: the entry point used by the API layer."""

import asyncio
import contextlib
import logging
import time
import uuid

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from highlight_reel.config import Settings
from highlight_reel.exceptions import JobCancelledError, JobNotFoundError
from highlight_reel.models.database import get_session_maker
from highlight_reel.render.encoder import FFmpegEncoder
from highlight_reel.render.orchestrator import ReelOrchestrator
from highlight_reel.schemas.highlight_reel import ReelOptions
from highlight_reel.services.artifact_store import ArtifactInfo, ArtifactStore
from highlight_reel.services.asset_selector import AssetSelector, EventRef
from highlight_reel.services.progress_registry import JobRecord, ProgressRegistry
from highlight_reel.services.worker_pool import JobHandle, RenderWorkerPool
from highlight_reel.services.workspace import WorkspaceManager

logger = logging.getLogger(__name__)


def new_job_id(event_id: str) -> str:
    """``reel-<event id>-<epoch ms>-<6 hex>``; the suffix keeps same-millisecond submits apart."""
    return f"reel-{event_id}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


class HighlightReelService:
    def __init__(
        self,
        *,
        registry: ProgressRegistry,
        selector: AssetSelector,
        workspaces: WorkspaceManager,
        artifacts: ArtifactStore,
        encoder: FFmpegEncoder,
        pool: RenderWorkerPool,
        sweep_interval_s: float = 60.0,
    ) -> None:
        self.registry = registry
        self.selector = selector
        self.workspaces = workspaces
        self.artifacts = artifacts
        self.encoder = encoder
        self.pool = pool
        self.sweep_interval_s = sweep_interval_s
        self.orchestrator = ReelOrchestrator(registry, selector, workspaces, artifacts, encoder)
        self._sweeper: asyncio.Task | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> "HighlightReelService":
        session_factory = session_factory or get_session_maker()
        return cls(
            registry=ProgressRegistry(ttl_seconds=settings.reel_progress_ttl_s),
            selector=AssetSelector(session_factory),
            workspaces=WorkspaceManager(
                settings.workspace_root,
                settings.photo_storage_root,
                photo_url_prefix=settings.photo_url_prefix,
                download_timeout_s=settings.reel_download_timeout_s,
            ),
            artifacts=ArtifactStore(settings.reel_output_dir, settings.reel_public_prefix),
            encoder=FFmpegEncoder(
                settings.ffmpeg_path,
                timeout_s=settings.reel_encode_timeout_s,
                stderr_tail_chars=settings.reel_encoder_stderr_tail_chars,
            ),
            pool=RenderWorkerPool(
                max_concurrent=settings.reel_max_concurrent_jobs,
                max_pending=settings.reel_max_pending_jobs,
            ),
            sweep_interval_s=settings.reel_progress_sweep_interval_s,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._sweeper is None:
            self._sweeper = asyncio.create_task(self._sweep_forever(), name="highlight-reel-sweeper")

    async def stop(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
        await self.pool.shutdown()

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_s)
            self.registry.evict_expired()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def get_event(self, event_id: str) -> EventRef:
        return await self.selector.get_event(event_id)

    async def submit(self, event: EventRef | str, options: ReelOptions | None = None) -> JobHandle:
        """Start rendering a reel for the event and return without waiting.

        Raises EventNotFoundError for an unknown event and RenderQueueFullError
        when the pool is saturated; in both cases no job is registered.
        """
        if not isinstance(event, EventRef):
            event = await self.get_event(event)
        options = options or ReelOptions()

        self.pool.ensure_capacity()
        job_id = new_job_id(event.id)
        self.registry.register(job_id, event.id, options)

        handle = self.pool.submit(
            job_id,
            lambda: self.orchestrator.run(job_id, event, options),
            on_cancelled_while_queued=lambda: self.registry.fail(job_id, JobCancelledError.message),
        )
        logger.info(
            f"[REEL] Submitted {job_id}: {options.max_photos} photos max, "
            f"{options.duration:g}s each, {options.resolution}, {options.transition}"
        )
        return handle

    def get_progress(self, event_id: str, job_id: str) -> JobRecord:
        """Latest snapshot of a job of this event. Safe to call at any rate."""
        record = self.registry.get(job_id)
        if record is None or record.event_id != str(event_id):
            raise JobNotFoundError(job_id)
        return record

    def cancel(self, event_id: str, job_id: str) -> JobRecord:
        """Request cancellation. The record turns to ``error`` once the job unwinds."""
        record = self.get_progress(event_id, job_id)
        if record.status.is_terminal:
            return record
        if self.pool.cancel(job_id):
            logger.info(f"[REEL] Cancellation requested for {job_id}")
        return self.registry.get(job_id) or record

    async def list_reels(self, event: EventRef | str) -> list[str]:
        if not isinstance(event, EventRef):
            event = await self.get_event(event)
        return self.artifacts.list(event.slug)

    async def list_reel_info(self, event: EventRef | str) -> list[ArtifactInfo]:
        if not isinstance(event, EventRef):
            event = await self.get_event(event)
        return self.artifacts.list_info(event.slug)

    async def delete_reel(self, event: EventRef | str, filename: str) -> None:
        if not isinstance(event, EventRef):
            event = await self.get_event(event)
        self.artifacts.delete(filename, slug=event.slug)
