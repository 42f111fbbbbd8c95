"""Highlight reel pipeline.

One run of ``ReelOrchestrator.run`` renders one job:

1. Create the job workspace
2. Select approved photos, newest first
3. Copy/download them into the workspace (10% -> 40%)
4. Build the render plan and write the concat manifest (40%)
5. Encode with ffmpeg (50% -> 95%)
6. Move the video into the artifact store (100%)

Every phase change is written to the progress registry. The workspace is
removed on every exit path.
"""

import asyncio
import logging
import math

from highlight_reel.exceptions import HighlightReelError, JobCancelledError, NoEligibleAssetsError
from highlight_reel.render.encoder import FFmpegEncoder
from highlight_reel.render.plan import build_render_plan, render_manifest
from highlight_reel.schemas.highlight_reel import ReelOptions, RenderStatus
from highlight_reel.services.artifact_store import ArtifactStore
from highlight_reel.services.asset_selector import AssetSelector, EventRef
from highlight_reel.services.progress_registry import ProgressRegistry
from highlight_reel.services.workspace import Workspace, WorkspaceManager

logger = logging.getLogger(__name__)

DOWNLOAD_START = 10
DOWNLOAD_SPAN = 30
PROCESSING_PROGRESS = 40
ENCODING_PROGRESS = 50
ENCODED_FILENAME = "output.mp4"


class ReelOrchestrator:
    def __init__(
        self,
        registry: ProgressRegistry,
        selector: AssetSelector,
        workspaces: WorkspaceManager,
        artifacts: ArtifactStore,
        encoder: FFmpegEncoder,
    ) -> None:
        self.registry = registry
        self.selector = selector
        self.workspaces = workspaces
        self.artifacts = artifacts
        self.encoder = encoder

    async def run(self, job_id: str, event: EventRef, options: ReelOptions) -> str:
        """Render the reel for an already registered job.

        Returns the public path of the stored video. Any failure is recorded
        as the job's ``error`` status and then re-raised.
        """
        workspace: Workspace | None = None
        logger.info(f"[REEL] Job {job_id} started for event {event.slug}")

        try:
            workspace = self.workspaces.create(job_id)

            assets = await self.selector.select(event.id, options.max_photos)
            if not assets:
                raise NoEligibleAssetsError()

            total = len(assets)
            self._update(job_id, RenderStatus.DOWNLOADING, DOWNLOAD_START, f"Loading {total} photos...")

            def on_asset(index: int, count: int) -> None:
                percent = DOWNLOAD_START + math.floor(index / count * DOWNLOAD_SPAN)
                self._update(job_id, RenderStatus.DOWNLOADING, percent, f"Photo {index + 1}/{count}")

            paths = await self.workspaces.materialize(workspace, assets, on_progress=on_asset)
            if not paths:
                raise NoEligibleAssetsError("No eligible photos could be loaded")

            self._update(job_id, RenderStatus.PROCESSING, PROCESSING_PROGRESS, "Building slideshow...")
            plan = build_render_plan(paths, options.duration, options.resolution, options.transition)
            workspace.manifest_path.write_text(render_manifest(plan), encoding="utf-8")

            self._update(job_id, RenderStatus.ENCODING, ENCODING_PROGRESS, "Rendering video...")
            encoded = await self.encoder.encode(
                plan,
                workspace.manifest_path,
                workspace.path / ENCODED_FILENAME,
                on_progress=lambda percent, message: self._update(job_id, RenderStatus.ENCODING, percent, message),
            )

            public_path = await self.artifacts.finalize(encoded, event.slug)
            self.registry.set(job_id, RenderStatus.COMPLETE, 100, "Video ready!", artifact_path=public_path)
            logger.info(f"[REEL] Job {job_id} complete: {public_path}")
            return public_path

        except asyncio.CancelledError:
            self.registry.fail(job_id, JobCancelledError.message)
            logger.info(f"[REEL] Job {job_id} cancelled")
            raise
        except HighlightReelError as e:
            self.registry.fail(job_id, e.message)
            logger.warning(f"[REEL] Job {job_id} failed: {e.code}: {e.message}")
            raise
        except Exception as e:
            self.registry.fail(job_id, str(e) or "Unknown error")
            logger.exception(f"[REEL] Job {job_id} failed unexpectedly")
            raise
        finally:
            if workspace is not None:
                self.workspaces.destroy(workspace)

    def _update(self, job_id: str, status: RenderStatus, progress: int, message: str) -> None:
        self.registry.set(job_id, status, progress, message)
