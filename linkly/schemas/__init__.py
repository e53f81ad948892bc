"""Pydantic schemas."""

from linkly.schemas.analytics import (
    AnalyticsBreakdown,
    AnalyticsSummary,
    CountryStats,
    DailyClicks,
    ReferrerStats,
)
from linkly.schemas.link import (
    DIRECT_REFERRER,
    AnalyticsEvent,
    LinkCreate,
    LinkListResponse,
    LinkRecord,
    LinkResponse,
    LinkUpdate,
    RedirectTarget,
    RequestContext,
)

__all__ = [
    "AnalyticsBreakdown",
    "AnalyticsSummary",
    "CountryStats",
    "DailyClicks",
    "ReferrerStats",
    "DIRECT_REFERRER",
    "AnalyticsEvent",
    "LinkCreate",
    "LinkListResponse",
    "LinkRecord",
    "LinkResponse",
    "LinkUpdate",
    "RedirectTarget",
    "RequestContext",
]
