"""Link lifecycle: creation, lookup, activation toggling and deletion."""

import re
from datetime import datetime
from urllib.parse import urlsplit

import structlog

from linkly.core.exceptions import (
    AliasConflictError,
    AllocationExhaustedError,
    DuplicateKeyError,
    InvalidUrlError,
    LinkNotFoundError,
)
from linkly.core.observability import record_link_operation
from linkly.schemas.link import LinkRecord, as_utc
from linkly.services.allocator import IdentifierAllocator
from linkly.stores.base import LinkStore

logger = structlog.get_logger()

MAX_URL_LENGTH = 2048
URL_PATTERN = re.compile(r"^https?://.+\..+")


def validate_long_url(url: str) -> None:
    """Raise InvalidUrlError unless ``url`` is an absolute http(s) URL with a dotted host or path."""
    if not url or len(url) > MAX_URL_LENGTH or any(c.isspace() for c in url):
        raise InvalidUrlError(url)
    if not URL_PATTERN.match(url):
        raise InvalidUrlError(url)
    try:
        parts = urlsplit(url)
    except ValueError:
        raise InvalidUrlError(url) from None
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise InvalidUrlError(url)


class LinkLifecycleManager:
    """Creates and manages link records on top of a store and an allocator.

    Operations that take a ``requester`` treat a record owned by someone else
    as not found, so the caller learns nothing about other owners' links.
    """

    def __init__(self, store: LinkStore, allocator: IdentifierAllocator):
        self._store = store
        self._allocator = allocator

    @staticmethod
    def is_expired(record: LinkRecord, now: datetime) -> bool:
        """Check if ``record`` is past its expiration at ``now``."""
        return record.is_expired(now)

    async def create(
        self,
        long_url: str,
        owner_ref: str,
        custom_alias: str | None = None,
        expires_at: datetime | None = None,
    ) -> LinkRecord:
        """Create a new active link and return the stored record."""
        validate_long_url(long_url)
        if expires_at is not None:
            expires_at = as_utc(expires_at)

        attempts = 0
        while True:
            short_id = await self._allocator.allocate(custom_alias)
            try:
                record = await self._store.insert(
                    short_id=short_id,
                    long_url=long_url,
                    owner_ref=owner_ref,
                    custom_alias=custom_alias,
                    expires_at=expires_at,
                )
                break
            except DuplicateKeyError:
                # Taken between the availability check and the insert
                if custom_alias is not None:
                    raise AliasConflictError(custom_alias) from None
                attempts += 1
                logger.info("Short id taken on insert", short_id=short_id, attempt=attempts)
                if attempts >= self._allocator.max_attempts:
                    raise AllocationExhaustedError(attempts) from None

        record_link_operation("create")
        logger.info(
            "Link created",
            short_id=record.short_id,
            owner_ref=owner_ref,
            is_custom=custom_alias is not None,
            expires_at=expires_at.isoformat() if expires_at else None,
        )
        return record

    async def get(self, short_id: str, requester: str | None = None) -> LinkRecord:
        """Get a link by its short id (without events)."""
        record = await self._store.find_by_short_id(short_id)
        if record is None or (requester is not None and record.owner_ref != requester):
            raise LinkNotFoundError(short_id)
        return record

    async def set_active(
        self,
        short_id: str,
        is_active: bool,
        requester: str | None = None,
    ) -> LinkRecord:
        """Activate or deactivate a link."""
        await self.get(short_id, requester)
        record = await self._store.set_active(short_id, is_active)

        record_link_operation("activate" if is_active else "deactivate")
        logger.info("Link activation changed", short_id=short_id, is_active=is_active)
        return record

    async def delete(self, short_id: str, requester: str | None = None) -> None:
        """Permanently delete a link and its analytics."""
        await self.get(short_id, requester)
        await self._store.delete(short_id)

        record_link_operation("delete")
        logger.info("Link deleted", short_id=short_id, requester=requester)

    async def list_for_owner(self, owner_ref: str) -> list[LinkRecord]:
        """Get all links of an owner in the store's natural order."""
        return await self._store.find_all_by_owner(owner_ref)
