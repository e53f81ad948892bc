"""Link Pydantic schemas."""

from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, computed_field

from linkly.core.config import get_settings

DIRECT_REFERRER = "Direct"


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_referrer(referrer: str | None) -> str:
    """Substitute the 'Direct' sentinel for a missing or blank referrer."""
    if referrer is None or not referrer.strip():
        return DIRECT_REFERRER
    return referrer


# Store drivers may hand back naive datetimes (SQLite); everything is UTC.
UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


class AnalyticsEvent(BaseModel):
    """A single recorded visit. Immutable once appended."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    timestamp: UTCDateTime
    source_ip: str | None = None
    user_agent: str | None = None
    referrer: str = DIRECT_REFERRER
    country: str | None = None
    city: str | None = None


class LinkRecord(BaseModel):
    """A stored short link as seen by the lifecycle services."""

    short_id: str
    custom_alias: str | None = None
    long_url: str
    owner_ref: str
    is_active: bool = True
    expires_at: UTCDateTime | None = None
    click_count: int = 0
    analytics_events: list[AnalyticsEvent] = Field(default_factory=list)
    created_at: UTCDateTime
    updated_at: UTCDateTime

    def is_expired(self, now: datetime) -> bool:
        """Check if the link has expired at ``now``."""
        if self.expires_at is None:
            return False
        return as_utc(now) > self.expires_at


class RequestContext(BaseModel):
    """Request data captured for a resolution."""

    source_ip: str | None = None
    user_agent: str | None = None
    referrer: str | None = None
    now: UTCDateTime = Field(default_factory=utcnow)


class RedirectTarget(BaseModel):
    long_url: str


class LinkCreate(BaseModel):
    """Schema for creating a new link."""

    long_url: str = Field(description="The URL to shorten", max_length=2048)
    custom_alias: str | None = Field(
        default=None,
        max_length=32,
        description="Optional custom short id",
    )
    expires_at: UTCDateTime | None = Field(
        default=None,
        description="Optional expiration time (UTC if no offset is given)",
    )


class LinkUpdate(BaseModel):
    """Schema for toggling a link on or off."""

    is_active: bool


class LinkResponse(BaseModel):
    """Schema for link response."""

    model_config = ConfigDict(from_attributes=True)

    short_id: str
    custom_alias: str | None
    long_url: str
    is_active: bool
    click_count: int
    expires_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def short_url(self) -> str:
        """Full short URL built from the configured base URL."""
        return f"{get_settings().base_url.rstrip('/')}/{self.short_id}"


class LinkListResponse(BaseModel):
    """Schema for the owner's link list."""

    items: list[LinkResponse]
    total: int
