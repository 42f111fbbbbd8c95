from highlight_reel.schemas.envelope import ErrorInfo, ErrorResponse, SuggestedAction
from highlight_reel.schemas.highlight_reel import (
    JobProgressResponse,
    ReelItem,
    ReelListResponse,
    ReelOptions,
    RenderStatus,
    SubmitReelResponse,
)

__all__ = [
    "ErrorInfo",
    "ErrorResponse",
    "SuggestedAction",
    "ReelOptions",
    "RenderStatus",
    "SubmitReelResponse",
    "JobProgressResponse",
    "ReelItem",
    "ReelListResponse",
]
