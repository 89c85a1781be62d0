"""Initial database schema

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _uuid() -> postgresql.UUID:
    return postgresql.UUID(as_uuid=True)


def _timestamps() -> list[sa.Column]:
    return [
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
    ]


def _allow_list(table: str, content_table: str, content_key: str) -> None:
    op.create_table(
        table,
        sa.Column(content_key, _uuid(), primary_key=True),
        sa.Column("distributor_id", _uuid(), primary_key=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            [content_key], [f"{content_table}.{content_key}"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["distributor_id"], ["distributors.distributor_id"], ondelete="CASCADE"
        ),
    )
    op.create_index(f"idx_{table}_distributor", table, ["distributor_id"])


def upgrade() -> None:
    # Create distributors table
    op.create_table(
        "distributors",
        sa.Column("distributor_id", _uuid(), primary_key=True),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("territory", sa.String(255), nullable=True),
        sa.Column("account_type", sa.String(20), nullable=False, server_default="non_exclusive"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("contact_name", sa.String(255), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("contact_phone", sa.String(50), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_distributors_status", "distributors", ["status"])
    op.create_index("idx_distributors_territory", "distributors", ["territory"])

    # Create users table
    op.create_table(
        "users",
        sa.Column("user_id", _uuid(), primary_key=True),
        sa.Column("distributor_id", _uuid(), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("invited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["distributor_id"], ["distributors.distributor_id"], ondelete="CASCADE"
        ),
    )
    op.create_index("idx_users_distributor", "users", ["distributor_id"])

    # Create products table
    op.create_table(
        "products",
        sa.Column("product_id", _uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(100), nullable=True),
        sa.Column("hs_code", sa.String(50), nullable=True),
        sa.Column("product_line", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("price", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("image_url", sa.Text, nullable=True),
        sa.Column("specifications", postgresql.JSONB, nullable=True),
        sa.Column("features", postgresql.JSONB, nullable=True),
        sa.Column("views", sa.Integer, nullable=False, server_default="0"),
        sa.Column("downloads", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("idx_products_status", "products", ["status"])
    op.create_index("idx_products_line", "products", ["product_line"])

    # Create customers table
    op.create_table(
        "customers",
        sa.Column("customer_id", _uuid(), primary_key=True),
        sa.Column("distributor_id", _uuid(), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("contact_name", sa.String(255), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("contact_phone", sa.String(50), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("postal_code", sa.String(20), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("internal_notes", sa.Text, nullable=True),
        sa.Column("created_by", _uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["distributor_id"], ["distributors.distributor_id"], ondelete="CASCADE"
        ),
    )
    op.create_index("idx_customers_distributor", "customers", ["distributor_id"])
    op.create_index("idx_customers_status", "customers", ["status"])

    # Create devices table
    op.create_table(
        "devices",
        sa.Column("device_id", _uuid(), primary_key=True),
        sa.Column("customer_id", _uuid(), nullable=False),
        sa.Column("product_id", _uuid(), nullable=True),
        sa.Column("serial_number", sa.String(100), nullable=False, unique=True),
        sa.Column("device_name", sa.String(255), nullable=False),
        sa.Column("device_model", sa.String(255), nullable=True),
        sa.Column("product_name", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("installation_date", sa.Date, nullable=True),
        sa.Column("warranty_expiry", sa.Date, nullable=True),
        sa.Column("location_description", sa.Text, nullable=True),
        sa.Column("internal_notes", sa.Text, nullable=True),
        sa.Column("current_firmware_version", sa.String(50), nullable=True),
        sa.Column("current_software_version", sa.String(50), nullable=True),
        sa.Column("last_update_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", _uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.customer_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.product_id"], ondelete="SET NULL"),
    )
    op.create_index("idx_devices_customer", "devices", ["customer_id"])
    op.create_index("idx_devices_product", "devices", ["product_id"])
    op.create_index("idx_devices_warranty", "devices", ["warranty_expiry"])

    # Create device_documents table
    op.create_table(
        "device_documents",
        sa.Column("document_id", _uuid(), primary_key=True),
        sa.Column("device_id", _uuid(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("document_type", sa.String(30), nullable=False, server_default="other"),
        sa.Column("version", sa.String(50), nullable=False, server_default="1.0"),
        sa.Column("is_latest", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("previous_version_id", _uuid(), nullable=True),
        sa.Column("file_url", sa.Text, nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_size", sa.Integer, nullable=True),
        sa.Column("file_type", sa.String(100), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column(
            "shared_with_customer", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("shared_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", _uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["device_id"], ["devices.device_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["previous_version_id"], ["device_documents.document_id"], ondelete="SET NULL"
        ),
    )
    op.create_index("idx_documents_device", "device_documents", ["device_id"])
    op.create_index(
        "idx_documents_lineage",
        "device_documents",
        ["device_id", "title", "document_type", "is_latest"],
    )

    # Create document_history table (append-only, outlives its document)
    op.create_table(
        "document_history",
        sa.Column("history_id", _uuid(), primary_key=True),
        sa.Column("document_id", _uuid(), nullable=False),
        sa.Column("device_id", _uuid(), nullable=False),
        sa.Column("action_type", sa.String(20), nullable=False),
        sa.Column("action_description", sa.Text, nullable=True),
        sa.Column("old_value", postgresql.JSONB, nullable=True),
        sa.Column("new_value", postgresql.JSONB, nullable=True),
        sa.Column("performed_by", _uuid(), nullable=True),
        sa.Column(
            "performed_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("idx_document_history_document", "document_history", ["document_id"])
    op.create_index("idx_document_history_device", "document_history", ["device_id"])

    # Create shareable content tables
    op.create_table(
        "training_materials",
        sa.Column("training_id", _uuid(), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("training_type", sa.String(50), nullable=True),
        sa.Column("format", sa.String(50), nullable=True),
        sa.Column("level", sa.String(50), nullable=True),
        sa.Column("duration", sa.String(50), nullable=True),
        sa.Column("modules", sa.Integer, nullable=True),
        sa.Column("product", sa.String(255), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("video_url", sa.Text, nullable=True),
        sa.Column("file_url", sa.Text, nullable=True),
        sa.Column("views", sa.Integer, nullable=False, server_default="0"),
        sa.Column("internal_notes", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("created_by", _uuid(), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_training_status", "training_materials", ["status"])

    op.create_table(
        "marketing_assets",
        sa.Column("asset_id", _uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("asset_type", sa.String(50), nullable=True),
        sa.Column("product", sa.String(255), nullable=True),
        sa.Column("language", sa.String(10), nullable=True),
        sa.Column("format", sa.String(50), nullable=True),
        sa.Column("size", sa.Integer, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("file_url", sa.Text, nullable=True),
        sa.Column("downloads", sa.Integer, nullable=False, server_default="0"),
        sa.Column("internal_notes", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("created_by", _uuid(), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_marketing_status", "marketing_assets", ["status"])

    op.create_table(
        "documentation",
        sa.Column("documentation_id", _uuid(), primary_key=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("product", sa.String(255), nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("version", sa.String(50), nullable=True),
        sa.Column("language", sa.String(10), nullable=True),
        sa.Column("file_url", sa.Text, nullable=True),
        sa.Column("file_size", sa.Integer, nullable=True),
        sa.Column("format", sa.String(50), nullable=True),
        sa.Column("downloads", sa.Integer, nullable=False, server_default="0"),
        sa.Column("internal_notes", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("created_by", _uuid(), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_documentation_status", "documentation", ["status"])

    op.create_table(
        "announcements",
        sa.Column("announcement_id", _uuid(), primary_key=True),
        sa.Column("category", sa.String(50), nullable=False, server_default="general"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content", sa.Text, nullable=True),
        sa.Column("link_text", sa.String(255), nullable=True),
        sa.Column("link_url", sa.Text, nullable=True),
        sa.Column("views", sa.Integer, nullable=False, server_default="0"),
        sa.Column("clicks", sa.Integer, nullable=False, server_default="0"),
        sa.Column(
            "send_notification", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("internal_notes", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("created_by", _uuid(), nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_announcements_status", "announcements", ["status"])

    # Create content allow-lists (no rows = shared with every distributor)
    _allow_list("training_material_distributors", "training_materials", "training_id")
    _allow_list("marketing_asset_distributors", "marketing_assets", "asset_id")
    _allow_list("documentation_distributors", "documentation", "documentation_id")
    _allow_list("announcement_distributors", "announcements", "announcement_id")

    # Create software_releases table
    op.create_table(
        "software_releases",
        sa.Column("release_id", _uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("version", sa.String(50), nullable=False),
        sa.Column("release_type", sa.String(20), nullable=False, server_default="software"),
        sa.Column("product_id", _uuid(), nullable=True),
        sa.Column("product_name", sa.String(255), nullable=True),
        sa.Column("file_url", sa.Text, nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_size", sa.Integer, nullable=True),
        sa.Column("checksum", sa.String(128), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("release_notes", sa.Text, nullable=True),
        sa.Column("changelog", sa.Text, nullable=True),
        sa.Column("min_previous_version", sa.String(50), nullable=True),
        sa.Column("target_type", sa.String(20), nullable=False, server_default="all"),
        sa.Column("is_mandatory", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "release_date",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("notify_on_publish", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_by", _uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["product_id"], ["products.product_id"], ondelete="SET NULL"),
    )
    op.create_index("idx_releases_status", "software_releases", ["status"])
    op.create_index("idx_releases_product", "software_releases", ["product_id"])
    op.create_index("idx_releases_release_date", "software_releases", ["release_date"])

    # Create release allow-lists
    _allow_list("software_release_distributors", "software_releases", "release_id")

    op.create_table(
        "software_release_devices",
        sa.Column("release_id", _uuid(), primary_key=True),
        sa.Column("device_id", _uuid(), primary_key=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["release_id"], ["software_releases.release_id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["device_id"], ["devices.device_id"], ondelete="CASCADE"),
    )
    op.create_index("idx_release_devices_device", "software_release_devices", ["device_id"])

    # Create release_notifications table (one marker per release and user)
    op.create_table(
        "release_notifications",
        sa.Column("notification_id", _uuid(), primary_key=True),
        sa.Column("release_id", _uuid(), nullable=False),
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
        sa.ForeignKeyConstraint(
            ["release_id"], ["software_releases.release_id"], ondelete="CASCADE"
        ),
        sa.UniqueConstraint(
            "release_id", "recipient_id", name="uq_release_notification_recipient"
        ),
    )
    op.create_index(
        "idx_release_notifications_pending",
        "release_notifications",
        ["release_id", "notified_at"],
    )

    # Create device_update_history table
    op.create_table(
        "device_update_history",
        sa.Column("update_id", _uuid(), primary_key=True),
        sa.Column("device_id", _uuid(), nullable=False),
        sa.Column("release_id", _uuid(), nullable=True),
        sa.Column("version_installed", sa.String(50), nullable=False),
        sa.Column("release_type", sa.String(20), nullable=True),
        sa.Column("release_name", sa.String(255), nullable=True),
        sa.Column("previous_version", sa.String(50), nullable=True),
        sa.Column(
            "installed_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("installed_by", _uuid(), nullable=True),
        sa.Column("installation_notes", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="success"),
        sa.ForeignKeyConstraint(["device_id"], ["devices.device_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["release_id"], ["software_releases.release_id"], ondelete="SET NULL"
        ),
    )
    op.create_index("idx_device_updates_device", "device_update_history", ["device_id"])

    # Create audit_events table
    op.create_table(
        "audit_events",
        sa.Column("audit_id", _uuid(), primary_key=True),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False, server_default="info"),
        sa.Column("distributor_id", _uuid(), nullable=True),
        sa.Column("actor_id", _uuid(), nullable=True),
        sa.Column("correlation_id", _uuid(), nullable=False),
        sa.Column("resource_type", sa.String(50), nullable=True),
        sa.Column("resource_id", sa.String(255), nullable=True),
        sa.Column("event_data", postgresql.JSONB, nullable=False),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("idx_audit_distributor", "audit_events", ["distributor_id"])
    op.create_index("idx_audit_correlation", "audit_events", ["correlation_id"])
    op.create_index("idx_audit_event_type", "audit_events", ["event_type"])
    op.create_index("idx_audit_created", "audit_events", ["created_at"])
    op.create_index("idx_audit_resource", "audit_events", ["resource_type", "resource_id"])


def downgrade() -> None:
    op.drop_table("audit_events")
    op.drop_table("device_update_history")
    op.drop_table("release_notifications")
    op.drop_table("software_release_devices")
    op.drop_table("software_release_distributors")
    op.drop_table("software_releases")
    op.drop_table("announcement_distributors")
    op.drop_table("documentation_distributors")
    op.drop_table("marketing_asset_distributors")
    op.drop_table("training_material_distributors")
    op.drop_table("announcements")
    op.drop_table("documentation")
    op.drop_table("marketing_assets")
    op.drop_table("training_materials")
    op.drop_table("document_history")
    op.drop_table("device_documents")
    op.drop_table("devices")
    op.drop_table("customers")
    op.drop_table("products")
    op.drop_table("users")
    op.drop_table("distributors")
