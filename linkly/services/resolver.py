"""Resolution of short ids to long URLs, with click analytics.

This is the hot path of the service. A resolution costs one store read and,
when it succeeds or detects expiry, exactly one store write.
"""

import structlog

from linkly.core.exceptions import (
    LinkExpiredError,
    LinkInactiveError,
    LinkNotFoundError,
    StorageError,
)
from linkly.core.observability import record_resolution
from linkly.schemas.link import (
    AnalyticsEvent,
    RedirectTarget,
    RequestContext,
    normalize_referrer,
)
from linkly.services.geoip import GeoIPService, GeoLocation
from linkly.stores.base import LinkStore

logger = structlog.get_logger()


class ResolutionEngine:
    """Turns a short id and request context into a redirect target."""

    def __init__(self, store: LinkStore, geoip: GeoIPService):
        self._store = store
        self._geoip = geoip

    async def resolve(self, short_id: str, context: RequestContext) -> RedirectTarget:
        """Resolve ``short_id`` and record the visit.

        Raises:
            LinkNotFoundError: no such link (or it was deleted mid-resolution).
            LinkInactiveError: the link was deactivated, including by an
                earlier expiry detection.
            LinkExpiredError: the link is past ``expires_at``; it is
                deactivated as a side effect.
            StorageError: the store failed; no redirect must be served.
        """
        try:
            record = await self._store.find_by_short_id(short_id)
        except StorageError:
            record_resolution("storage_error")
            raise

        if record is None:
            record_resolution("not_found")
            raise LinkNotFoundError(short_id)

        if not record.is_active:
            record_resolution("inactive")
            raise LinkInactiveError(short_id)

        if record.is_expired(context.now):
            await self._deactivate_expired(short_id)
            record_resolution("expired")
            raise LinkExpiredError(short_id)

        location = await self._locate(short_id, context.source_ip)
        event = AnalyticsEvent(
            timestamp=context.now,
            source_ip=context.source_ip,
            user_agent=context.user_agent,
            referrer=normalize_referrer(context.referrer),
            country=location.country,
            city=location.city,
        )

        try:
            click_count = await self._store.record_click(short_id, event)
        except LinkNotFoundError:
            record_resolution("not_found")
            raise
        except StorageError:
            record_resolution("storage_error")
            logger.error("Click write failed, not redirecting", short_id=short_id)
            raise

        record_resolution("redirected")
        logger.debug("Link resolved", short_id=short_id, click_count=click_count)
        return RedirectTarget(long_url=record.long_url)

    async def _locate(self, short_id: str, source_ip: str | None) -> GeoLocation:
        """Look up the visitor's location; any failure gives an empty location."""
        try:
            return await self._geoip.lookup(source_ip)
        except Exception as e:
            logger.warning(
                "Geo lookup failed, recording click without location",
                short_id=short_id,
                error=repr(e),
            )
            return GeoLocation()

    async def _deactivate_expired(self, short_id: str) -> None:
        """Persist ``is_active=False`` for an expired link.

        Several requests may detect the same expiry; setting the flag twice is
        harmless. The link is expired whether or not the write lands, so a
        failed write is logged and the caller still gets ``Expired``.
        """
        try:
            await self._store.set_active(short_id, False)
            logger.info("Link expired, deactivated", short_id=short_id)
        except LinkNotFoundError:
            logger.info("Expired link deleted before deactivation", short_id=short_id)
        except StorageError as e:
            logger.warning(
                "Failed to deactivate expired link",
                short_id=short_id,
                error=str(e),
            )
