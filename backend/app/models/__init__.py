"""SQLAlchemy ORM models."""
from app.models.base import AuditMixin, Base, TimestampMixin, UUIDMixin
from app.models.organization import Organization
from app.models.user import AppUser, UserRole
from app.models.content import (
    Announcement,
    CarouselItem,
    ContentKind,
    ContentMixin,
    OrgFile,
    Program,
)
from app.models.app_setting import AppSetting

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "AuditMixin",
    "Organization",
    "AppUser",
    "UserRole",
    "ContentKind",
    "ContentMixin",
    "Announcement",
    "Program",
    "CarouselItem",
    "OrgFile",
    "AppSetting",
]
