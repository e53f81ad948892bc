"""Create links and link_events tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the links and link_events tables."""
    op.create_table(
        "links",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column(
            "short_id",
            sa.String(32),
            nullable=False,
            comment="Short identifier used in the redirect path",
        ),
        sa.Column(
            "custom_alias",
            sa.String(32),
            nullable=True,
            comment="User-chosen alias; equals short_id when set",
        ),
        sa.Column(
            "long_url",
            sa.Text(),
            nullable=False,
            comment="The original URL to redirect to",
        ),
        sa.Column(
            "owner_ref",
            sa.String(255),
            nullable=False,
            comment="Opaque reference to the owning identity",
        ),
        sa.Column(
            "is_active",
            sa.Boolean(),
            nullable=False,
            server_default=sa.true(),
        ),
        sa.Column(
            "click_count",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Number of successful resolutions (== number of events)",
        ),
        sa.Column(
            "expires_at",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Optional expiration timestamp",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_links")),
        sa.UniqueConstraint("short_id", name=op.f("uq_links_short_id")),
        sa.UniqueConstraint("custom_alias", name=op.f("uq_links_custom_alias")),
    )
    op.create_index(op.f("ix_links_short_id"), "links", ["short_id"])
    op.create_index(op.f("ix_links_owner_ref"), "links", ["owner_ref"])

    op.create_table(
        "link_events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("link_id", sa.Integer(), nullable=False),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="When the resolution happened",
        ),
        sa.Column("source_ip", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column(
            "referrer",
            sa.Text(),
            nullable=False,
            comment="HTTP Referer header, 'Direct' when absent",
        ),
        sa.Column("country", sa.String(64), nullable=True, comment="Country code from GeoIP"),
        sa.Column("city", sa.String(255), nullable=True, comment="City name from GeoIP"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_link_events")),
        sa.ForeignKeyConstraint(
            ["link_id"],
            ["links.id"],
            name=op.f("fk_link_events_link_id_links"),
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_link_events_link_id_id", "link_events", ["link_id", "id"])


def downgrade() -> None:
    """Drop the links and link_events tables."""
    op.drop_index("ix_link_events_link_id_id", table_name="link_events")
    op.drop_table("link_events")
    op.drop_index(op.f("ix_links_owner_ref"), table_name="links")
    op.drop_index(op.f("ix_links_short_id"), table_name="links")
    op.drop_table("links")
