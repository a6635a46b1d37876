"""Application user ORM model."""
import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import AuditMixin, Base, TimestampMixin, UUIDMixin, pg_enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    ORGANIZATION = "organization"


class AppUser(Base, UUIDMixin, TimestampMixin, AuditMixin):
    __tablename__ = "app_users"

    # Null for admins
    organization_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True
    )
    role: Mapped[UserRole] = mapped_column(pg_enum(UserRole, name="user_role"), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    organization = relationship(
        "Organization", back_populates="users", foreign_keys=[organization_id], lazy="selectin"
    )

    __table_args__ = (
        Index("idx_app_users_organization_id", "organization_id"),
        Index("idx_app_users_role", "role"),
        Index("idx_app_users_archived", "archived"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
