"""Organization-owned content ORM models.

Four content kinds share the approval/archival shape of ``ContentMixin``:
announcements, programs, carousel slides and files.
"""
import enum
import uuid
from datetime import date

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Date, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import AuditMixin, Base, TimestampMixin, UUIDMixin


class ContentKind(str, enum.Enum):
    ANNOUNCEMENT = "announcements"
    PROGRAM = "programs"
    CAROUSEL_ITEM = "carousel_items"
    ORG_FILE = "org_files"


class ContentMixin(UUIDMixin, TimestampMixin, AuditMixin):
    # Fixed at creation; no update path writes it.
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Announcement(Base, ContentMixin):
    __tablename__ = "announcements"
    kind = ContentKind.ANNOUNCEMENT

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    published_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)

    __table_args__ = (
        Index("idx_announcements_org_approved_archived", "organization_id", "approved", "archived"),
        Index("idx_announcements_published_date", "published_date"),
    )


class Program(Base, ContentMixin):
    __tablename__ = "programs"
    kind = ContentKind.PROGRAM

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    location: Mapped[str | None] = mapped_column(String(300), nullable=True)
    registration_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "end_date IS NULL OR start_date IS NULL OR end_date >= start_date",
            name="valid_date_range",
        ),
        Index("idx_programs_org_approved_archived", "organization_id", "approved", "archived"),
        Index("idx_programs_start_date", "start_date"),
    )


class CarouselItem(Base, ContentMixin):
    __tablename__ = "carousel_items"
    kind = ContentKind.CAROUSEL_ITEM

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    subtitle: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str] = mapped_column(String(500), nullable=False)
    link_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    __table_args__ = (
        Index("idx_carousel_items_org_approved_archived", "organization_id", "approved", "archived"),
        Index("idx_carousel_items_display_order", "display_order"),
    )


class OrgFile(Base, ContentMixin):
    __tablename__ = "org_files"
    kind = ContentKind.ORG_FILE

    file_name: Mapped[str] = mapped_column(String(300), nullable=False)
    file_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    storage_bucket: Mapped[str | None] = mapped_column(String(100), nullable=True)
    storage_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    file_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    uploaded_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("app_users.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        Index("idx_org_files_org_approved_archived", "organization_id", "approved", "archived"),
        Index("idx_org_files_file_type", "file_type"),
    )


ContentModel = Announcement | Program | CarouselItem | OrgFile

# Columns that only the lifecycle operations may write.
PROTECTED_COLUMNS = frozenset(
    {"id", "organization_id", "approved", "archived", "created_by", "updated_by", "created_at", "updated_at"}
)

__all__ = [
    "ContentKind",
    "ContentMixin",
    "Announcement",
    "Program",
    "CarouselItem",
    "OrgFile",
    "ContentModel",
    "PROTECTED_COLUMNS",
]
