"""Selects the approved photos that go into a highlight reel."""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from highlight_reel.exceptions import EventNotFoundError
from highlight_reel.models.event import Event
from highlight_reel.models.photo import Photo, PhotoStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventRef:
    id: str
    slug: str
    host_id: str | None


@dataclass(frozen=True)
class EligibleAsset:
    id: str
    source: str  # http(s) URL, or path under the photo storage root
    created_at: datetime | None = None


def _parse_event_id(event_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(event_id))
    except ValueError:
        raise EventNotFoundError(event_id) from None


class AssetSelector:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_event(self, event_id: str) -> EventRef:
        """Look up the event or raise EventNotFoundError."""
        event_uuid = _parse_event_id(event_id)
        async with self._session_factory() as session:
            result = await session.execute(select(Event).where(Event.id == event_uuid))
            event = result.scalar_one_or_none()

        if event is None:
            raise EventNotFoundError(event_id)
        return EventRef(
            id=str(event.id),
            slug=event.slug,
            host_id=str(event.host_id) if event.host_id else None,
        )

    async def select(self, event_id: str, max_photos: int) -> list[EligibleAsset]:
        """Approved photos of the event, newest first, at most ``max_photos``.

        Photos without any byte source are not eligible. An empty list is a valid
        answer; turning it into a job failure is the orchestrator's call.
        """
        event_uuid = _parse_event_id(event_id)
        async with self._session_factory() as session:
            result = await session.execute(
                select(Photo)
                .where(
                    Photo.event_id == event_uuid,
                    Photo.status == PhotoStatus.APPROVED.value,
                    or_(
                        and_(Photo.url.is_not(None), Photo.url != ""),
                        and_(Photo.storage_path.is_not(None), Photo.storage_path != ""),
                    ),
                )
                .order_by(Photo.created_at.desc(), Photo.id)
                .limit(max_photos)
            )
            photos = result.scalars().all()

        assets = [
            EligibleAsset(id=str(p.id), source=p.url or p.storage_path, created_at=p.created_at)
            for p in photos
        ]
        logger.info(f"[REEL] Selected {len(assets)} approved photo(s) for event {event_id} (limit {max_photos})")
        return assets
