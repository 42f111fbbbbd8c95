"""Tests for approved-photo selection."""

import uuid

import pytest

from highlight_reel.exceptions import EventNotFoundError
from highlight_reel.models import PhotoStatus
from highlight_reel.services.asset_selector import AssetSelector


@pytest.fixture
def selector(session_factory) -> AssetSelector:
    return AssetSelector(session_factory)


class TestGetEvent:
    @pytest.mark.asyncio
    async def test_returns_event_ref(self, selector, make_event, host_id):
        event_id = make_event("garden-wedding")
        event = await selector.get_event(event_id)

        assert event.id == event_id
        assert event.slug == "garden-wedding"
        assert event.host_id == host_id

    @pytest.mark.asyncio
    async def test_unknown_event(self, selector):
        with pytest.raises(EventNotFoundError):
            await selector.get_event(str(uuid.uuid4()))

    @pytest.mark.asyncio
    async def test_malformed_event_id(self, selector):
        with pytest.raises(EventNotFoundError):
            await selector.get_event("not-a-uuid")


class TestSelect:
    @pytest.mark.asyncio
    async def test_only_approved_photos_newest_first(self, selector, make_event, make_photo):
        event_id = make_event()
        oldest = make_photo(event_id, storage_path="events/a.jpg", minutes=0)
        newest = make_photo(event_id, storage_path="events/c.jpg", minutes=20)
        middle = make_photo(event_id, storage_path="events/b.jpg", minutes=10)
        make_photo(event_id, status=PhotoStatus.PENDING, storage_path="events/p.jpg", minutes=30)
        make_photo(event_id, status=PhotoStatus.REJECTED, storage_path="events/r.jpg", minutes=40)

        assets = await selector.select(event_id, max_photos=20)

        assert [a.id for a in assets] == [newest, middle, oldest]
        assert [a.source for a in assets] == ["events/c.jpg", "events/b.jpg", "events/a.jpg"]

    @pytest.mark.asyncio
    async def test_bounded_by_max_photos(self, selector, make_event, make_photo):
        event_id = make_event()
        ids = [make_photo(event_id, storage_path=f"events/{i}.jpg", minutes=i) for i in range(5)]

        assets = await selector.select(event_id, max_photos=2)

        assert [a.id for a in assets] == [ids[4], ids[3]]

    @pytest.mark.asyncio
    async def test_url_preferred_over_storage_path(self, selector, make_event, make_photo):
        event_id = make_event()
        make_photo(event_id, url="https://cdn.example.com/p/1.png", storage_path="events/1.png")

        assets = await selector.select(event_id, max_photos=5)

        assert assets[0].source == "https://cdn.example.com/p/1.png"

    @pytest.mark.asyncio
    async def test_photos_without_byte_source_are_skipped(self, selector, make_event, make_photo):
        event_id = make_event()
        make_photo(event_id, minutes=5)
        make_photo(event_id, url="", storage_path="", minutes=4)
        kept = make_photo(event_id, storage_path="events/ok.jpg", minutes=1)

        assets = await selector.select(event_id, max_photos=1)

        assert [a.id for a in assets] == [kept]

    @pytest.mark.asyncio
    async def test_other_events_are_not_included(self, selector, make_event, make_photo):
        first = make_event("first")
        second = make_event("second")
        make_photo(second, storage_path="events/x.jpg")

        assert await selector.select(first, max_photos=20) == []
