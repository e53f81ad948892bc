"""Tests for analytics summaries and breakdowns."""

from datetime import date, datetime, timezone

import pytest

from linkly.core.exceptions import LinkNotFoundError
from linkly.schemas.link import AnalyticsEvent


def event(day, hour, ip, country=None, referrer="Direct"):
    return AnalyticsEvent(
        timestamp=datetime(2024, 6, day, hour, tzinfo=timezone.utc),
        source_ip=ip,
        user_agent="pytest-agent/1.0",
        referrer=referrer,
        country=country,
    )


@pytest.fixture
async def clicked_link(store):
    await store.insert("stats1", "https://example.com", "u1")
    for e in [
        event(1, 9, "8.8.8.8", "US", "https://news.example.com"),
        event(1, 10, "8.8.8.8", "US"),
        event(1, 23, "81.2.69.142", "GB", "https://news.example.com"),
        event(2, 0, "81.2.69.142", "GB"),
        event(2, 5, "10.0.0.1", None, "https://social.example.com"),
    ]:
        await store.record_click("stats1", e)
    return "stats1"


class TestSummarize:
    async def test_summary(self, aggregator, clicked_link):
        summary = await aggregator.summarize(clicked_link)

        assert summary.short_id == "stats1"
        assert summary.click_count == 5
        assert len(summary.analytics_events) == 5
        assert summary.analytics_events[0].timestamp == datetime(2024, 6, 1, 9, tzinfo=timezone.utc)
        assert summary.analytics_events[-1].source_ip == "10.0.0.1"

    async def test_summary_without_clicks(self, aggregator, store):
        await store.insert("fresh1", "https://example.com", "u1")

        summary = await aggregator.summarize("fresh1")

        assert summary.click_count == 0
        assert summary.analytics_events == []

    async def test_missing_link(self, aggregator):
        with pytest.raises(LinkNotFoundError):
            await aggregator.summarize("nope42")


class TestBreakdown:
    async def test_totals(self, aggregator, clicked_link):
        breakdown = await aggregator.breakdown(clicked_link)

        assert breakdown.total_clicks == 5
        assert breakdown.unique_visitors == 3

    async def test_countries(self, aggregator, clicked_link):
        breakdown = await aggregator.breakdown(clicked_link)

        countries = {c.country: (c.clicks, c.percentage) for c in breakdown.countries}
        assert countries == {"US": (2, 40.0), "GB": (2, 40.0), "unknown": (1, 20.0)}

    async def test_referrers(self, aggregator, clicked_link):
        breakdown = await aggregator.breakdown(clicked_link)

        assert breakdown.referrers[0].referrer == "https://news.example.com"
        assert breakdown.referrers[0].clicks == 2
        assert {r.referrer for r in breakdown.referrers} == {
            "https://news.example.com",
            "Direct",
            "https://social.example.com",
        }

    async def test_daily_by_utc_date(self, aggregator, clicked_link):
        breakdown = await aggregator.breakdown(clicked_link)

        assert [(d.date, d.clicks, d.unique_visitors) for d in breakdown.daily] == [
            (date(2024, 6, 1), 3, 2),
            (date(2024, 6, 2), 2, 2),
        ]

    async def test_top_n(self, aggregator, clicked_link):
        breakdown = await aggregator.breakdown(clicked_link, top_n=1)

        assert len(breakdown.countries) == 1
        assert len(breakdown.referrers) == 1
        assert breakdown.referrers[0].referrer == "https://news.example.com"

    async def test_empty(self, aggregator, store):
        await store.insert("fresh1", "https://example.com", "u1")

        breakdown = await aggregator.breakdown("fresh1")

        assert breakdown.total_clicks == 0
        assert breakdown.countries == []
        assert breakdown.daily == []

    async def test_reflects_latest_clicks(self, aggregator, clicked_link, store):
        await aggregator.breakdown(clicked_link)
        await store.record_click(clicked_link, event(3, 12, "1.1.1.1", "AU"))

        breakdown = await aggregator.breakdown(clicked_link)
        assert breakdown.total_clicks == 6
