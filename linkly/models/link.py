"""Link SQLAlchemy model."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from linkly.core.database import Base


class Link(Base):
    """Link model for shortened URLs."""

    __tablename__ = "links"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    short_id: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
        index=True,
        comment="Short identifier used in the redirect path",
    )
    custom_alias: Mapped[str | None] = mapped_column(
        String(32),
        unique=True,
        nullable=True,
        comment="User-chosen alias; equals short_id when set",
    )
    long_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="The original URL to redirect to",
    )
    owner_ref: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Opaque reference to the owning identity",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    click_count: Mapped[int] = mapped_column(
        default=0,
        nullable=False,
        comment="Number of successful resolutions (== number of events)",
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Optional expiration timestamp",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    events: Mapped[list["LinkEvent"]] = relationship(
        back_populates="link",
        order_by="LinkEvent.id",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<Link {self.short_id} -> {self.long_url[:50]}>"


from linkly.models.event import LinkEvent  # noqa: E402
