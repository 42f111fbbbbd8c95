import uuid
from enum import Enum

from sqlalchemy import ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from highlight_reel.models.base import Base, TimestampMixin, UUIDMixin


class PhotoStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Photo(Base, UUIDMixin, TimestampMixin):
    """Guest photo as owned by the gallery service. Read-only here."""

    __tablename__ = "photos"
    __table_args__ = (Index("ix_photos_event_status_created", "event_id", "status", "created_at"),)

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Moderation status: pending, approved, rejected
    status: Mapped[str] = mapped_column(String(20), default=PhotoStatus.PENDING.value, nullable=False)

    # Byte source: public URL or path relative to the photo storage root
    url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    storage_path: Mapped[str | None] = mapped_column(String(500), nullable=True)

    event: Mapped["Event"] = relationship("Event", back_populates="photos")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Photo {self.id} ({self.status})>"
