"""Link store interface.

The lifecycle services only talk to storage through ``LinkStore``. Every
method is a suspension point; implementations must make ``record_click`` a
single atomic operation (increment and append together) so concurrent
resolutions of the same link never lose an update.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from linkly.schemas.link import AnalyticsEvent, LinkRecord


class LinkStore(ABC):
    """Durable keyed storage for link records.

    Finders return ``None`` on a miss. Mutators raise ``LinkNotFoundError``
    when the record does not exist. Infrastructure failures surface as
    ``StorageError``.
    """

    @abstractmethod
    async def find_by_short_id(
        self,
        short_id: str,
        include_events: bool = False,
    ) -> LinkRecord | None:
        """Get a record by short id; events are loaded only on request."""

    @abstractmethod
    async def find_by_alias(self, alias: str) -> LinkRecord | None:
        """Get a record by its custom alias."""

    @abstractmethod
    async def insert(
        self,
        short_id: str,
        long_url: str,
        owner_ref: str,
        custom_alias: str | None = None,
        expires_at: datetime | None = None,
    ) -> LinkRecord:
        """Persist a new active record with no clicks.

        Raises ``DuplicateKeyError`` if ``short_id`` or ``custom_alias`` is taken.
        """

    @abstractmethod
    async def record_click(self, short_id: str, event: AnalyticsEvent) -> int:
        """Atomically increment the click count and append ``event``.

        Returns the new click count.
        """

    @abstractmethod
    async def set_active(self, short_id: str, is_active: bool) -> LinkRecord:
        """Set the active flag (idempotent) and return the updated record."""

    @abstractmethod
    async def delete(self, short_id: str) -> None:
        """Remove the record and its events."""

    @abstractmethod
    async def find_all_by_owner(self, owner_ref: str) -> list[LinkRecord]:
        """Get all records of an owner, without events."""

    async def close(self) -> None:
        """Release resources held by the store."""
