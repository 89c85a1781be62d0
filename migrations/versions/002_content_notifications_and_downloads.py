"""Content publication markers and release download log

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "002"
down_revision = "001"
branch_labels = None
depends_on = None


def _uuid() -> postgresql.UUID:
    return postgresql.UUID(as_uuid=True)


def upgrade() -> None:
    # Create content_notifications table (one marker per content item and user)
    op.create_table(
        "content_notifications",
        sa.Column("notification_id", _uuid(), primary_key=True),
        sa.Column("content_kind", sa.String(30), nullable=False),
        sa.Column("content_id", _uuid(), nullable=False),
        sa.Column("recipient_id", _uuid(), nullable=False),
        sa.Column("recipient_email", sa.String(255), nullable=False),
        sa.Column("distributor_id", _uuid(), nullable=True),
        sa.Column("notified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint(
            "content_kind",
            "content_id",
            "recipient_id",
            name="uq_content_notification_recipient",
        ),
    )
    op.create_index(
        "idx_content_notifications_pending",
        "content_notifications",
        ["content_kind", "content_id", "notified_at"],
    )

    # Create release_downloads table
    op.create_table(
        "release_downloads",
        sa.Column("download_id", _uuid(), primary_key=True),
        sa.Column("release_id", _uuid(), nullable=False),
        sa.Column("user_id", _uuid(), nullable=True),
        sa.Column("distributor_id", _uuid(), nullable=True),
        sa.Column(
            "downloaded_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["release_id"], ["software_releases.release_id"], ondelete="CASCADE"
        ),
    )
    op.create_index("idx_release_downloads_release", "release_downloads", ["release_id"])


def downgrade() -> None:
    op.drop_table("release_downloads")
    op.drop_table("content_notifications")
