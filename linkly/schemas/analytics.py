"""Pydantic schemas for analytics responses."""

from datetime import date

from pydantic import BaseModel, Field

from linkly.schemas.link import AnalyticsEvent


class AnalyticsSummary(BaseModel):
    """Click count and the full event history of a link."""

    short_id: str
    click_count: int = Field(description="Total number of successful resolutions")
    analytics_events: list[AnalyticsEvent] = Field(description="Events, oldest first")


class CountryStats(BaseModel):
    """Statistics for a single country."""

    country: str = Field(description="Country code, 'unknown' when geo lookup failed")
    clicks: int
    percentage: float = Field(description="Percentage of total clicks")


class ReferrerStats(BaseModel):
    """Statistics for a single referrer."""

    referrer: str
    clicks: int
    percentage: float = Field(description="Percentage of total clicks")


class DailyClicks(BaseModel):
    """Clicks on one UTC day."""

    date: date
    clicks: int
    unique_visitors: int


class AnalyticsBreakdown(BaseModel):
    """Aggregated view over a link's events."""

    short_id: str
    total_clicks: int
    unique_visitors: int = Field(description="Approximate unique visitors (by IP)")
    countries: list[CountryStats]
    referrers: list[ReferrerStats]
    daily: list[DailyClicks]
