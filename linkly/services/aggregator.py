"""Read-side analytics over a link's recorded events."""

from collections import Counter, defaultdict

import structlog

from linkly.core.exceptions import LinkNotFoundError
from linkly.schemas.analytics import (
    AnalyticsBreakdown,
    AnalyticsSummary,
    CountryStats,
    DailyClicks,
    ReferrerStats,
)
from linkly.schemas.link import LinkRecord
from linkly.stores.base import LinkStore

logger = structlog.get_logger()

UNKNOWN_COUNTRY = "unknown"


def _percentage(count: int, total: int) -> float:
    return round(count / total * 100, 2) if total else 0.0


class AnalyticsAggregator:
    """Summaries and breakdowns computed from the latest stored events.

    Nothing is cached; every call reads the store.
    """

    def __init__(self, store: LinkStore, top_n: int = 10):
        self._store = store
        self._top_n = top_n

    async def _load(self, short_id: str) -> LinkRecord:
        record = await self._store.find_by_short_id(short_id, include_events=True)
        if record is None:
            raise LinkNotFoundError(short_id)
        return record

    async def summarize(self, short_id: str) -> AnalyticsSummary:
        """Get the click count and event history of a link."""
        record = await self._load(short_id)
        return AnalyticsSummary(
            short_id=record.short_id,
            click_count=record.click_count,
            analytics_events=record.analytics_events,
        )

    async def breakdown(self, short_id: str, top_n: int | None = None) -> AnalyticsBreakdown:
        """Get clicks by country, by referrer and per UTC day."""
        top_n = top_n or self._top_n
        record = await self._load(short_id)
        events = record.analytics_events
        total = len(events)

        countries = Counter(e.country or UNKNOWN_COUNTRY for e in events)
        referrers = Counter(e.referrer for e in events)

        clicks_per_day: Counter = Counter()
        visitors_per_day: defaultdict = defaultdict(set)
        for event in events:
            day = event.timestamp.date()
            clicks_per_day[day] += 1
            if event.source_ip:
                visitors_per_day[day].add(event.source_ip)

        logger.debug("Breakdown computed", short_id=short_id, total_clicks=total)

        return AnalyticsBreakdown(
            short_id=record.short_id,
            total_clicks=total,
            unique_visitors=len({e.source_ip for e in events if e.source_ip}),
            countries=[
                CountryStats(country=country, clicks=count, percentage=_percentage(count, total))
                for country, count in countries.most_common(top_n)
            ],
            referrers=[
                ReferrerStats(referrer=referrer, clicks=count, percentage=_percentage(count, total))
                for referrer, count in referrers.most_common(top_n)
            ],
            daily=[
                DailyClicks(
                    date=day,
                    clicks=clicks_per_day[day],
                    unique_visitors=len(visitors_per_day[day]),
                )
                for day in sorted(clicks_per_day)
            ],
        )
