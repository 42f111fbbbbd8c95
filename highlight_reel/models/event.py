import uuid

from sqlalchemy import String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from highlight_reel.models.base import Base, TimestampMixin, UUIDMixin


class Event(Base, UUIDMixin, TimestampMixin):
    """Event as owned by the gallery service. Read-only here."""

    __tablename__ = "events"

    slug: Mapped[str] = mapped_column(String(120), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    host_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True, index=True)

    photos: Mapped[list["Photo"]] = relationship("Photo", back_populates="event")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Event {self.slug}>"
