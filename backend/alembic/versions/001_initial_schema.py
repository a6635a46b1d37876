"""Initial schema - organizations, users, four content tables, app settings.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CONTENT_TABLES = ("announcements", "programs", "carousel_items", "org_files")
AUDITED_TABLES = ("organizations", "app_users", "app_settings", *CONTENT_TABLES)


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("created_by", UUID(as_uuid=True), nullable=True),
        sa.Column("updated_by", UUID(as_uuid=True), nullable=True),
    ]


def _content_columns() -> list[sa.Column]:
    return [
        *_base_columns(),
        sa.Column(
            "organization_id", UUID(as_uuid=True),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("approved", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("archived", sa.Boolean, nullable=False, server_default=sa.text("false")),
    ]


def upgrade() -> None:
    user_role = sa.Enum("admin", "organization", name="user_role")

    # --- 1. organizations ---
    op.create_table(
        "organizations",
        *_base_columns(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("website_url", sa.String(500), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("contact_phone", sa.String(50), nullable=True),
        sa.Column("president_name", sa.String(200), nullable=True),
        sa.Column("president_email", sa.String(255), nullable=True),
        sa.Column("president_phone", sa.String(50), nullable=True),
        sa.Column("logo_url", sa.String(500), nullable=True),
        sa.Column("primary_color", sa.String(7), nullable=False, server_default="#3b82f6"),
        sa.Column("secondary_color", sa.String(7), nullable=False, server_default="#64748b"),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("archived", sa.Boolean, nullable=False, server_default=sa.text("false")),
    )
    op.create_index("idx_organizations_archived", "organizations", ["archived"])

    # --- 2. app_users ---
    op.create_table(
        "app_users",
        *_base_columns(),
        sa.Column(
            "organization_id", UUID(as_uuid=True),
            sa.ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True,
        ),
        sa.Column("role", user_role, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("archived", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("email", name="uq_app_users_email"),
    )
    op.create_index("idx_app_users_organization_id", "app_users", ["organization_id"])
    op.create_index("idx_app_users_role", "app_users", ["role"])
    op.create_index("idx_app_users_archived", "app_users", ["archived"])

    # --- 3. announcements ---
    op.create_table(
        "announcements",
        *_content_columns(),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("published_date", sa.Date, nullable=False, server_default=sa.func.current_date()),
    )
    op.create_index("idx_announcements_published_date", "announcements", ["published_date"])

    # --- 4. programs ---
    op.create_table(
        "programs",
        *_content_columns(),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("location", sa.String(300), nullable=True),
        sa.Column("registration_url", sa.String(500), nullable=True),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.CheckConstraint(
            "end_date IS NULL OR start_date IS NULL OR end_date >= start_date",
            name="ck_programs_valid_date_range",
        ),
    )
    op.create_index("idx_programs_start_date", "programs", ["start_date"])

    # --- 5. carousel_items ---
    op.create_table(
        "carousel_items",
        *_content_columns(),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("subtitle", sa.Text, nullable=True),
        sa.Column("image_url", sa.String(500), nullable=False),
        sa.Column("link_url", sa.String(500), nullable=True),
        sa.Column("display_order", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index("idx_carousel_items_display_order", "carousel_items", ["display_order"])

    # --- 6. org_files ---
    op.create_table(
        "org_files",
        *_content_columns(),
        sa.Column("file_name", sa.String(300), nullable=False),
        sa.Column("file_url", sa.String(1000), nullable=False),
        sa.Column("storage_bucket", sa.String(100), nullable=True),
        sa.Column("storage_path", sa.String(500), nullable=True),
        sa.Column("file_type", sa.String(100), nullable=False),
        sa.Column("file_size", sa.BigInteger, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "uploaded_by", UUID(as_uuid=True),
            sa.ForeignKey("app_users.id", ondelete="SET NULL"), nullable=True,
        ),
    )
    op.create_index("idx_org_files_file_type", "org_files", ["file_type"])

    for table in CONTENT_TABLES:
        op.create_index(
            f"idx_{table}_org_approved_archived", table, ["organization_id", "approved", "archived"],
        )

    # --- 7. app_settings ---
    op.create_table(
        "app_settings",
        *_base_columns(),
        sa.Column("setting_key", sa.String(100), nullable=False),
        sa.Column("setting_value", JSONB, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.UniqueConstraint("setting_key", name="uq_app_settings_setting_key"),
    )

    # --- audit FKs (organizations <-> app_users is cyclic, so added last) ---
    for table in AUDITED_TABLES:
        for column in ("created_by", "updated_by"):
            op.create_foreign_key(
                f"fk_{table}_{column}_app_users", table, "app_users",
                [column], ["id"], ondelete="SET NULL",
            )


def downgrade() -> None:
    for table in AUDITED_TABLES:
        for column in ("created_by", "updated_by"):
            op.drop_constraint(f"fk_{table}_{column}_app_users", table, type_="foreignkey")

    op.drop_table("app_settings")
    for table in reversed(CONTENT_TABLES):
        op.drop_table(table)
    op.drop_table("app_users")
    op.drop_table("organizations")
    sa.Enum(name="user_role").drop(op.get_bind(), checkfirst=True)
