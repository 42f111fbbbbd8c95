"""
Smoke test against the real ffmpeg binary.

Skipped when ffmpeg is not installed. Run with: pytest -m requires_ffmpeg
"""

import shutil
import subprocess

import pytest

from highlight_reel.render.encoder import FFmpegEncoder
from highlight_reel.render.orchestrator import ReelOrchestrator
from highlight_reel.schemas.highlight_reel import ReelOptions, RenderStatus
from highlight_reel.services.artifact_store import ArtifactStore
from highlight_reel.services.asset_selector import AssetSelector
from highlight_reel.services.progress_registry import ProgressRegistry
from highlight_reel.services.workspace import WorkspaceManager

pytestmark = [
    pytest.mark.requires_ffmpeg,
    pytest.mark.skipif(shutil.which("ffmpeg") is None, reason="ffmpeg binary not installed"),
]

COLORS = [(230, 60, 60), (60, 230, 60), (60, 60, 230)]


def _probe_duration(path) -> float:
    result = subprocess.run(
        ["ffprobe", "-v", "error", "-show_entries", "format=duration", "-of", "csv=p=0", str(path)],
        capture_output=True,
        text=True,
        check=True,
    )
    return float(result.stdout.strip())


@pytest.fixture
def render_event(session_factory, make_event, make_photo, photo_root, write_jpeg, workspace_root, output_dir):
    async def _render(slug: str, photo_count: int, options: ReelOptions):
        event_id = make_event(slug)
        for i in range(photo_count):
            # Mixed aspect ratios exercise the scale/pad step
            write_jpeg(
                photo_root / "events" / f"{slug}-{i}.jpg",
                color=COLORS[i % len(COLORS)],
                size=(320, 240) if i % 2 else (240, 320),
            )
            make_photo(event_id, storage_path=f"events/{slug}-{i}.jpg", minutes=i)

        registry = ProgressRegistry()
        selector = AssetSelector(session_factory)
        orchestrator = ReelOrchestrator(
            registry=registry,
            selector=selector,
            workspaces=WorkspaceManager(workspace_root, photo_root),
            artifacts=ArtifactStore(output_dir),
            encoder=FFmpegEncoder("ffmpeg", timeout_s=120),
        )
        event = await selector.get_event(event_id)
        job_id = f"reel-{slug}"
        registry.register(job_id, event.id, options)

        public_path = await orchestrator.run(job_id, event, options)

        assert registry.get(job_id).status == RenderStatus.COMPLETE
        return output_dir / public_path.rsplit("/", 1)[1]

    return _render


@pytest.mark.asyncio
@pytest.mark.parametrize("transition", ["fade", "zoom", "none"])
async def test_real_render(transition, render_event):
    video = await render_event(f"smoke-{transition}", 2, ReelOptions(duration=1, resolution="720p", transition=transition))

    assert video.stat().st_size > 0


@pytest.mark.asyncio
@pytest.mark.skipif(shutil.which("ffprobe") is None, reason="ffprobe binary not installed")
@pytest.mark.parametrize("photo_count", [1, 3])
async def test_reel_lasts_one_slide_per_photo(photo_count, render_event):
    options = ReelOptions(duration=2, resolution="720p", transition="fade")

    video = await render_event(f"smoke-length-{photo_count}", photo_count, options)

    assert _probe_duration(video) == pytest.approx(photo_count * 2, abs=0.2)
