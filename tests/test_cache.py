"""Tests for the template cache in front of the resource catalog."""

import pytest

from booking_engine.errors import UpstreamUnavailableError
from booking_engine.schemas.resource_schema import ResourceKind
from booking_engine.stores.cache import CachedTemplateStore


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cached(catalog, clock):
    return CachedTemplateStore(catalog, ttl_seconds=60, clock=clock)


class TestCachedTemplateStore:
    @pytest.mark.asyncio
    async def test_second_read_is_cached(self, cached, catalog):
        await cached.get_resource("pro-1", ResourceKind.PROFESSIONAL)
        await cached.get_resource("pro-1", ResourceKind.PROFESSIONAL)
        assert catalog.reads == 1
        assert cached.hits == 1

    @pytest.mark.asyncio
    async def test_entry_expires(self, cached, catalog, clock):
        await cached.get_resource("pro-1", ResourceKind.PROFESSIONAL)
        clock.now += 61
        await cached.get_resource("pro-1", ResourceKind.PROFESSIONAL)
        assert catalog.reads == 2

    @pytest.mark.asyncio
    async def test_weekly_template_goes_through_cache(self, cached, catalog):
        template = await cached.get_weekly_template("pro-1", ResourceKind.PROFESSIONAL)
        exclusions = await cached.get_exclusion_windows("pro-1", ResourceKind.PROFESSIONAL)
        assert template.entry_for(1) is not None
        assert exclusions == []
        assert catalog.reads == 1

    @pytest.mark.asyncio
    async def test_cached_entry_survives_outage(self, cached, catalog):
        await cached.get_resource("room-1", ResourceKind.ROOM)
        catalog.outage.available = False
        room = await cached.get_resource("room-1", ResourceKind.ROOM)
        assert room.id == "room-1"

    @pytest.mark.asyncio
    async def test_miss_during_outage_raises(self, cached, catalog):
        catalog.outage.available = False
        with pytest.raises(UpstreamUnavailableError):
            await cached.get_resource("room-1", ResourceKind.ROOM)

    @pytest.mark.asyncio
    async def test_room_list_cached(self, cached, catalog):
        first = await cached.list_rooms()
        second = await cached.list_rooms()
        assert [r.id for r in first] == [r.id for r in second] == ["room-1"]
        assert catalog.reads == 1

    @pytest.mark.asyncio
    async def test_invalidate_single_resource(self, cached, catalog):
        await cached.get_resource("pro-1", ResourceKind.PROFESSIONAL)
        cached.invalidate("pro-1", ResourceKind.PROFESSIONAL)
        await cached.get_resource("pro-1", ResourceKind.PROFESSIONAL)
        assert catalog.reads == 2

    @pytest.mark.asyncio
    async def test_invalidate_everything(self, cached, catalog):
        await cached.get_resource("pro-1", ResourceKind.PROFESSIONAL)
        await cached.list_rooms()
        cached.invalidate()
        await cached.get_resource("pro-1", ResourceKind.PROFESSIONAL)
        await cached.list_rooms()
        assert catalog.reads == 4

    @pytest.mark.asyncio
    async def test_zero_ttl_disables_caching(self, catalog, clock):
        uncached = CachedTemplateStore(catalog, ttl_seconds=0, clock=clock)
        await uncached.get_resource("pro-1", ResourceKind.PROFESSIONAL)
        await uncached.get_resource("pro-1", ResourceKind.PROFESSIONAL)
        assert catalog.reads == 2
