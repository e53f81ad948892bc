"""SQLAlchemy-backed link store."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from linkly.core.exceptions import DuplicateKeyError, LinkNotFoundError, StorageError
from linkly.models import Link, LinkEvent
from linkly.schemas.link import AnalyticsEvent, LinkRecord
from linkly.stores.base import LinkStore

logger = structlog.get_logger()


def _to_record(link: Link, events: list[LinkEvent] | None = None) -> LinkRecord:
    return LinkRecord(
        short_id=link.short_id,
        custom_alias=link.custom_alias,
        long_url=link.long_url,
        owner_ref=link.owner_ref,
        is_active=link.is_active,
        expires_at=link.expires_at,
        click_count=link.click_count,
        analytics_events=[AnalyticsEvent.model_validate(e) for e in events or []],
        created_at=link.created_at,
        updated_at=link.updated_at,
    )


class SQLLinkStore(LinkStore):
    """Link store on top of an async SQLAlchemy engine.

    Each method runs in its own short transaction. Clicks are counted with
    ``UPDATE ... SET click_count = click_count + 1`` and the event row is
    inserted in the same transaction.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
    ):
        self._session_factory = session_factory
        self.engine = engine

    @asynccontextmanager
    async def _transaction(self, short_id: str | None = None) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateKeyError(short_id or "") from e
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("Link store error", short_id=short_id, error=str(e))
                raise StorageError(f"Link store error: {e}", short_id=short_id) from e
            except Exception:
                await session.rollback()
                raise

    async def find_by_short_id(
        self,
        short_id: str,
        include_events: bool = False,
    ) -> LinkRecord | None:
        async with self._transaction(short_id) as session:
            if not include_events:
                result = await session.execute(select(Link).where(Link.short_id == short_id))
                link = result.scalar_one_or_none()
                return _to_record(link) if link else None

            # click_count must match the events returned; read both in one statement
            result = await session.execute(
                select(Link, LinkEvent)
                .outerjoin(LinkEvent, LinkEvent.link_id == Link.id)
                .where(Link.short_id == short_id)
                .order_by(LinkEvent.id)
            )
            rows = result.all()
            if not rows:
                return None
            return _to_record(rows[0][0], [event for _, event in rows if event is not None])

    async def find_by_alias(self, alias: str) -> LinkRecord | None:
        async with self._transaction(alias) as session:
            result = await session.execute(select(Link).where(Link.custom_alias == alias))
            link = result.scalar_one_or_none()
            return _to_record(link) if link else None

    async def insert(
        self,
        short_id: str,
        long_url: str,
        owner_ref: str,
        custom_alias: str | None = None,
        expires_at: datetime | None = None,
    ) -> LinkRecord:
        async with self._transaction(short_id) as session:
            link = Link(
                short_id=short_id,
                custom_alias=custom_alias,
                long_url=long_url,
                owner_ref=owner_ref,
                is_active=True,
                click_count=0,
                expires_at=expires_at,
            )
            session.add(link)
            await session.flush()
            await session.refresh(link)
            return _to_record(link)

    async def record_click(self, short_id: str, event: AnalyticsEvent) -> int:
        async with self._transaction(short_id) as session:
            result = await session.execute(
                update(Link)
                .where(Link.short_id == short_id)
                .values(click_count=Link.click_count + 1)
                .returning(Link.id, Link.click_count)
                .execution_options(synchronize_session=False)
            )
            row = result.first()
            if row is None:
                raise LinkNotFoundError(short_id)
            session.add(LinkEvent(link_id=row.id, **event.model_dump()))
            return row.click_count

    async def set_active(self, short_id: str, is_active: bool) -> LinkRecord:
        async with self._transaction(short_id) as session:
            result = await session.execute(
                update(Link)
                .where(Link.short_id == short_id)
                .values(is_active=is_active)
                .returning(Link.id)
                .execution_options(synchronize_session=False)
            )
            if result.first() is None:
                raise LinkNotFoundError(short_id)
            link = (
                await session.execute(select(Link).where(Link.short_id == short_id))
            ).scalar_one()
            return _to_record(link)

    async def delete(self, short_id: str) -> None:
        async with self._transaction(short_id) as session:
            result = await session.execute(select(Link.id).where(Link.short_id == short_id))
            link_id = result.scalar_one_or_none()
            if link_id is None:
                raise LinkNotFoundError(short_id)
            # SQLite does not enforce ON DELETE CASCADE unless asked to
            await session.execute(delete(LinkEvent).where(LinkEvent.link_id == link_id))
            await session.execute(delete(Link).where(Link.id == link_id))

    async def find_all_by_owner(self, owner_ref: str) -> list[LinkRecord]:
        async with self._transaction() as session:
            result = await session.execute(
                select(Link).where(Link.owner_ref == owner_ref).order_by(Link.id)
            )
            return [_to_record(link) for link in result.scalars().all()]

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
