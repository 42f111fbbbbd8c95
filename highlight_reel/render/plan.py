"""Render plan: concat manifest and video filter chain for a slideshow.

Everything here is pure. The same paths and options always give the same
manifest text and filter string.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

FADE_SECONDS = 0.5
ZOOM_MAX = 1.5
ZOOM_FPS = 25

RESOLUTIONS: dict[str, tuple[int, int]] = {
    "720p": (1280, 720),
    "1080p": (1920, 1080),
    "4k": (3840, 2160),
}


@dataclass(frozen=True)
class ManifestEntry:
    path: str
    duration: float


@dataclass(frozen=True)
class RenderPlan:
    manifest: tuple[ManifestEntry, ...]
    filter_chain: str
    width: int
    height: int
    slide_duration: float

    @property
    def slide_count(self) -> int:
        return len(self.manifest)

    @property
    def total_duration(self) -> float:
        return self.slide_count * self.slide_duration


def resolution_size(resolution: str) -> tuple[int, int]:
    try:
        return RESOLUTIONS[resolution]
    except KeyError:
        raise ValueError(f"Unknown resolution preset: {resolution}") from None


def _fmt(seconds: float) -> str:
    """Format seconds for ffmpeg without float noise (3.0 -> '3', 2.5 -> '2.5')."""
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def _quote_concat_path(path: str) -> str:
    # concat demuxer quoting: close the quote, emit an escaped quote, reopen
    return "'" + path.replace("'", "'\\''") + "'"


def fade_filters(slide_count: int, duration: float) -> list[str]:
    """Fade each slide in over its first and out over its last half second."""
    filters: list[str] = []
    for i in range(slide_count):
        start = i * duration
        end = start + duration
        out_start = end - FADE_SECONDS
        filters.append(
            f"fade=t=in:st={_fmt(start)}:d={_fmt(FADE_SECONDS)}"
            f":enable='between(t,{_fmt(start)},{_fmt(start + FADE_SECONDS)})'"
        )
        filters.append(
            f"fade=t=out:st={_fmt(out_start)}:d={_fmt(FADE_SECONDS)}"
            f":enable='between(t,{_fmt(out_start)},{_fmt(end)})'"
        )
    return filters


def zoom_filter(slide_count: int, duration: float, width: int, height: int) -> str:
    """Slow centred zoom that reaches ZOOM_MAX on the last frame of the reel."""
    total_frames = max(1, round(slide_count * duration * ZOOM_FPS))
    step = (ZOOM_MAX - 1.0) / total_frames
    return (
        f"zoompan=z='min(zoom+{step:.6f},{ZOOM_MAX})':d=1"
        f":x='iw/2-(iw/zoom/2)':y='ih/2-(ih/zoom/2)'"
        f":s={width}x{height}:fps={ZOOM_FPS}"
    )


def build_render_plan(
    paths: Sequence[str | Path],
    duration: float,
    resolution: str,
    transition: str,
) -> RenderPlan:
    if duration <= 0:
        raise ValueError("Slide duration must be positive")
    width, height = resolution_size(resolution)
    manifest = tuple(ManifestEntry(path=str(p), duration=duration) for p in paths)

    filters = [
        f"scale={width}:{height}:force_original_aspect_ratio=decrease",
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:black",
    ]
    if transition == "fade":
        filters.extend(fade_filters(len(manifest), duration))
    elif transition == "zoom":
        filters.append(zoom_filter(len(manifest), duration, width, height))
    # Any other transition value renders as a hard cut.

    return RenderPlan(
        manifest=manifest,
        filter_chain=",".join(filters),
        width=width,
        height=height,
        slide_duration=duration,
    )


def render_manifest(plan: RenderPlan) -> str:
    """Concat demuxer input list: one ``file``/``duration`` pair per slide.

    The demuxer ignores the duration of the final entry, so the last file is
    listed once more to make the last slide hold for its full duration.
    """
    lines = [
        f"file {_quote_concat_path(entry.path)}\nduration {_fmt(entry.duration)}" for entry in plan.manifest
    ]
    if plan.manifest:
        lines.append(f"file {_quote_concat_path(plan.manifest[-1].path)}")
    return "\n".join(lines)
