from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Resolution = Literal["720p", "1080p", "4k"]


class RenderStatus(str, Enum):
    PREPARING = "preparing"
    DOWNLOADING = "downloading"
    PROCESSING = "processing"
    ENCODING = "encoding"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)

    @property
    def is_terminal(self) -> bool:
        return self in (RenderStatus.COMPLETE, RenderStatus.ERROR)


_STATUS_ORDER = list(RenderStatus)


class ReelOptions(BaseModel):
    """User-supplied render options.

    ``transition`` is free text: unknown styles render as hard cuts.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    duration: float = Field(default=3.0, ge=1.0, le=30.0, description="Seconds each photo is shown")
    max_photos: int = Field(default=20, ge=1, le=200, alias="maxPhotos")
    resolution: Resolution = "1080p"
    transition: str = Field(default="fade", max_length=32)


class SubmitReelResponse(BaseModel):
    job_id: str
    status: RenderStatus


class JobProgressResponse(BaseModel):
    job_id: str
    event_id: str
    status: RenderStatus
    progress: int
    message: str
    options: ReelOptions
    artifact_path: str | None = None


class ReelItem(BaseModel):
    filename: str
    url: str
    size_bytes: int
    created_at: float


class ReelListResponse(BaseModel):
    reels: list[str]
    items: list[ReelItem] = Field(default_factory=list)
