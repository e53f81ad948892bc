"""In-memory link store.

Useful for development, demos and tests. State lives in the process, so it is
neither durable nor shared between workers. No method awaits while it mutates
state, which makes every operation atomic on the event loop.
"""

from datetime import datetime, timezone

from linkly.core.exceptions import DuplicateKeyError, LinkNotFoundError
from linkly.schemas.link import AnalyticsEvent, LinkRecord
from linkly.stores.base import LinkStore


class MemoryLinkStore(LinkStore):
    """Dict-backed ``LinkStore`` keyed by short id, with an alias index."""

    def __init__(self) -> None:
        self._links: dict[str, LinkRecord] = {}
        self._aliases: dict[str, str] = {}

    def _copy(self, record: LinkRecord, include_events: bool = False) -> LinkRecord:
        if include_events:
            return record.model_copy(update={"analytics_events": list(record.analytics_events)})
        return record.model_copy(update={"analytics_events": []})

    def _get(self, short_id: str) -> LinkRecord:
        record = self._links.get(short_id)
        if record is None:
            raise LinkNotFoundError(short_id)
        return record

    async def find_by_short_id(
        self,
        short_id: str,
        include_events: bool = False,
    ) -> LinkRecord | None:
        record = self._links.get(short_id)
        return self._copy(record, include_events) if record else None

    async def find_by_alias(self, alias: str) -> LinkRecord | None:
        short_id = self._aliases.get(alias)
        return await self.find_by_short_id(short_id) if short_id else None

    async def insert(
        self,
        short_id: str,
        long_url: str,
        owner_ref: str,
        custom_alias: str | None = None,
        expires_at: datetime | None = None,
    ) -> LinkRecord:
        if short_id in self._links or (custom_alias and custom_alias in self._aliases):
            raise DuplicateKeyError(short_id)

        now = datetime.now(timezone.utc)
        record = LinkRecord(
            short_id=short_id,
            custom_alias=custom_alias,
            long_url=long_url,
            owner_ref=owner_ref,
            expires_at=expires_at,
            created_at=now,
            updated_at=now,
        )
        self._links[short_id] = record
        if custom_alias:
            self._aliases[custom_alias] = short_id
        return self._copy(record)

    async def record_click(self, short_id: str, event: AnalyticsEvent) -> int:
        record = self._get(short_id)
        record.analytics_events.append(event)
        record.click_count += 1
        record.updated_at = datetime.now(timezone.utc)
        return record.click_count

    async def set_active(self, short_id: str, is_active: bool) -> LinkRecord:
        record = self._get(short_id)
        record.is_active = is_active
        record.updated_at = datetime.now(timezone.utc)
        return self._copy(record)

    async def delete(self, short_id: str) -> None:
        record = self._links.pop(short_id, None)
        if record is None:
            raise LinkNotFoundError(short_id)
        if record.custom_alias:
            self._aliases.pop(record.custom_alias, None)

    async def find_all_by_owner(self, owner_ref: str) -> list[LinkRecord]:
        return [
            self._copy(record)
            for record in self._links.values()
            if record.owner_ref == owner_ref
        ]
