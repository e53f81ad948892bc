"""Analytics event SQLAlchemy model."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from linkly.core.database import Base


class LinkEvent(Base):
    """One row per successful resolution of a link.

    Rows are never updated. The auto-increment ``id`` defines the append order.
    """

    __tablename__ = "link_events"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    link_id: Mapped[int] = mapped_column(
        ForeignKey("links.id", ondelete="CASCADE"),
        nullable=False,
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the resolution happened",
    )
    source_ip: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    referrer: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="HTTP Referer header, 'Direct' when absent",
    )
    country: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Country code from GeoIP",
    )
    city: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="City name from GeoIP",
    )

    link: Mapped["Link"] = relationship(back_populates="events")

    __table_args__ = (Index("ix_link_events_link_id_id", "link_id", "id"),)

    def __repr__(self) -> str:
        return f"<LinkEvent {self.id} link={self.link_id} at={self.timestamp}>"


from linkly.models.link import Link  # noqa: E402
