"""Tests for resolution of short ids and click recording."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from linkly.core.exceptions import (
    LinkExpiredError,
    LinkInactiveError,
    LinkNotFoundError,
    StorageError,
)
from linkly.schemas.link import RequestContext
from linkly.services import ResolutionEngine
from linkly.stores import MemoryLinkStore


class FailingClickStore(MemoryLinkStore):
    """Store whose click writes always fail."""

    async def record_click(self, short_id, event):
        raise StorageError("disk full", short_id=short_id)


class FailingDeactivateStore(MemoryLinkStore):
    """Store that cannot persist activation changes."""

    async def set_active(self, short_id, is_active):
        raise StorageError("read-only replica", short_id=short_id)


def visit(ip="8.8.8.8", referrer="https://news.example.com", now=None):
    fields = {"source_ip": ip, "user_agent": "pytest-agent/1.0", "referrer": referrer}
    if now is not None:
        fields["now"] = now
    return RequestContext(**fields)


class TestResolve:
    async def test_redirects_and_records_click(self, lifecycle, resolver, store):
        await lifecycle.create("https://example.com/summer", owner_ref="u1", custom_alias="promo")

        target = await resolver.resolve("promo", visit())

        assert target.long_url == "https://example.com/summer"
        record = await store.find_by_short_id("promo", include_events=True)
        assert record.click_count == 1
        [event] = record.analytics_events
        assert event.source_ip == "8.8.8.8"
        assert event.user_agent == "pytest-agent/1.0"
        assert event.referrer == "https://news.example.com"
        assert event.country == "US"
        assert event.city == "Mountain View"

    async def test_missing_referrer_recorded_as_direct(self, lifecycle, resolver, store):
        record = await lifecycle.create("https://example.com", owner_ref="u1")

        await resolver.resolve(record.short_id, visit(referrer=None))
        await resolver.resolve(record.short_id, visit(referrer="   "))

        events = (await store.find_by_short_id(record.short_id, include_events=True)).analytics_events
        assert [e.referrer for e in events] == ["Direct", "Direct"]

    async def test_unknown_location_recorded_as_missing(self, lifecycle, resolver, store):
        record = await lifecycle.create("https://example.com", owner_ref="u1")

        await resolver.resolve(record.short_id, visit(ip="10.0.0.1"))

        [event] = (await store.find_by_short_id(record.short_id, include_events=True)).analytics_events
        assert event.country is None
        assert event.city is None

    async def test_events_in_resolution_order(self, lifecycle, resolver, store):
        record = await lifecycle.create("https://example.com", owner_ref="u1")

        for ip in ("8.8.8.8", "81.2.69.142", "8.8.8.8"):
            await resolver.resolve(record.short_id, visit(ip=ip))

        record = await store.find_by_short_id(record.short_id, include_events=True)
        assert record.click_count == 3
        assert [e.country for e in record.analytics_events] == ["US", "GB", "US"]

    async def test_geo_failure_still_redirects(self, lifecycle, store):
        class BrokenGeo:
            async def lookup(self, ip_address):
                raise RuntimeError("geo database unreadable")

        record = await lifecycle.create("https://example.com", owner_ref="u1")
        resolver = ResolutionEngine(store, BrokenGeo())

        target = await resolver.resolve(record.short_id, visit())

        assert target.long_url == "https://example.com"
        [event] = (await store.find_by_short_id(record.short_id, include_events=True)).analytics_events
        assert event.source_ip == "8.8.8.8"
        assert event.country is None
        assert event.city is None

    async def test_not_found(self, resolver, geoip):
        with pytest.raises(LinkNotFoundError):
            await resolver.resolve("nope42", visit())
        assert geoip.calls == []

    async def test_inactive_records_nothing(self, lifecycle, resolver, store):
        record = await lifecycle.create("https://example.com", owner_ref="u1")
        await lifecycle.set_active(record.short_id, False)

        with pytest.raises(LinkInactiveError):
            await resolver.resolve(record.short_id, visit())

        stored = await store.find_by_short_id(record.short_id, include_events=True)
        assert stored.click_count == 0
        assert stored.analytics_events == []

    async def test_reactivated_link_resolves(self, lifecycle, resolver):
        record = await lifecycle.create("https://example.com", owner_ref="u1")
        await lifecycle.set_active(record.short_id, False)
        await lifecycle.set_active(record.short_id, True)

        target = await resolver.resolve(record.short_id, visit())
        assert target.long_url == "https://example.com"


class TestExpiry:
    async def test_expired_link_is_deactivated_once(self, lifecycle, resolver, store):
        expires_at = datetime(2030, 1, 1, tzinfo=timezone.utc)
        record = await lifecycle.create("https://example.com", owner_ref="u1", expires_at=expires_at)

        before = await resolver.resolve(record.short_id, visit(now=expires_at))
        assert before.long_url == "https://example.com"

        with pytest.raises(LinkExpiredError):
            await resolver.resolve(record.short_id, visit(now=expires_at + timedelta(seconds=1)))

        stored = await store.find_by_short_id(record.short_id, include_events=True)
        assert stored.is_active is False
        assert stored.click_count == 1
        assert len(stored.analytics_events) == 1

        # Expiry is detected once; afterwards the link is simply inactive
        with pytest.raises(LinkInactiveError):
            await resolver.resolve(record.short_id, visit(now=expires_at + timedelta(seconds=2)))

    async def test_expired_at_creation(self, lifecycle, resolver, store):
        past = datetime.now(timezone.utc) - timedelta(minutes=5)
        record = await lifecycle.create("https://example.com", owner_ref="u1", expires_at=past)

        with pytest.raises(LinkExpiredError):
            await resolver.resolve(record.short_id, visit())

        assert (await store.find_by_short_id(record.short_id)).click_count == 0

    async def test_concurrent_expiry_detection(self, lifecycle, resolver, store):
        past = datetime.now(timezone.utc) - timedelta(minutes=5)
        record = await lifecycle.create("https://example.com", owner_ref="u1", expires_at=past)

        results = await asyncio.gather(
            *(resolver.resolve(record.short_id, visit()) for _ in range(5)),
            return_exceptions=True,
        )

        assert all(isinstance(r, (LinkExpiredError, LinkInactiveError)) for r in results)
        assert any(isinstance(r, LinkExpiredError) for r in results)
        stored = await store.find_by_short_id(record.short_id)
        assert stored.is_active is False
        assert stored.click_count == 0

    async def test_failed_deactivation_still_expired(self, geoip):
        store = FailingDeactivateStore()
        past = datetime.now(timezone.utc) - timedelta(minutes=5)
        await store.insert("old123", "https://example.com", "u1", expires_at=past)
        resolver = ResolutionEngine(store, geoip)

        with pytest.raises(LinkExpiredError):
            await resolver.resolve("old123", visit())


class TestConsistency:
    async def test_concurrent_clicks_all_counted(self, lifecycle, resolver, store):
        record = await lifecycle.create("https://example.com", owner_ref="u1")
        clicks = 10

        targets = await asyncio.gather(
            *(resolver.resolve(record.short_id, visit()) for _ in range(clicks))
        )

        assert len(targets) == clicks
        stored = await store.find_by_short_id(record.short_id, include_events=True)
        assert stored.click_count == clicks
        assert len(stored.analytics_events) == clicks

    async def test_heavy_concurrency_in_memory(self, geoip):
        store = MemoryLinkStore()
        await store.insert("hot123", "https://example.com", "u1")
        resolver = ResolutionEngine(store, geoip)

        await asyncio.gather(*(resolver.resolve("hot123", visit()) for _ in range(200)))

        stored = await store.find_by_short_id("hot123", include_events=True)
        assert stored.click_count == 200
        assert len(stored.analytics_events) == 200

    async def test_storage_failure_does_not_redirect(self, geoip):
        store = FailingClickStore()
        await store.insert("abc123", "https://example.com", "u1")
        resolver = ResolutionEngine(store, geoip)

        with pytest.raises(StorageError):
            await resolver.resolve("abc123", visit())

        assert (await store.find_by_short_id("abc123")).click_count == 0

    async def test_deleted_during_resolution(self, geoip):
        store = MemoryLinkStore()
        await store.insert("abc123", "https://example.com", "u1")

        class DeletingGeo:
            async def lookup(self, ip_address):
                await store.delete("abc123")
                return await geoip.lookup(ip_address)

        resolver = ResolutionEngine(store, DeletingGeo())

        with pytest.raises(LinkNotFoundError):
            await resolver.resolve("abc123", visit())
