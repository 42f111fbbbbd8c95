from highlight_reel.models.base import Base
from highlight_reel.models.event import Event
from highlight_reel.models.photo import Photo, PhotoStatus

__all__ = [
    "Base",
    "Event",
    "Photo",
    "PhotoStatus",
]
