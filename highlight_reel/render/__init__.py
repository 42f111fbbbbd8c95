from highlight_reel.render.encoder import FFmpegEncoder
from highlight_reel.render.orchestrator import ReelOrchestrator
from highlight_reel.render.plan import (
    RESOLUTIONS,
    ManifestEntry,
    RenderPlan,
    build_render_plan,
    render_manifest,
)
from highlight_reel.render.progress import encoding_percent, parse_elapsed_seconds

__all__ = [
    "FFmpegEncoder",
    "ReelOrchestrator",
    "RESOLUTIONS",
    "ManifestEntry",
    "RenderPlan",
    "build_render_plan",
    "render_manifest",
    "encoding_percent",
    "parse_elapsed_seconds",
]
