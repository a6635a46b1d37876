"""Organization ORM model."""
from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import AuditMixin, Base, TimestampMixin, UUIDMixin

DEFAULT_PRIMARY_COLOR = "#3b82f6"
DEFAULT_SECONDARY_COLOR = "#64748b"


class Organization(Base, UUIDMixin, TimestampMixin, AuditMixin):
    __tablename__ = "organizations"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    website_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    president_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    president_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    president_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    primary_color: Mapped[str] = mapped_column(String(7), nullable=False, default=DEFAULT_PRIMARY_COLOR)
    secondary_color: Mapped[str] = mapped_column(String(7), nullable=False, default=DEFAULT_SECONDARY_COLOR)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    archived: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    users = relationship(
        "AppUser",
        back_populates="organization",
        foreign_keys="AppUser.organization_id",
        lazy="noload",
    )

    __table_args__ = (
        Index("idx_organizations_archived", "archived"),
    )
