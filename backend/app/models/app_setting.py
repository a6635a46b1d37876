"""Global application setting ORM model."""
from sqlalchemy import JSON, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import AuditMixin, Base, TimestampMixin, UUIDMixin


class AppSetting(Base, UUIDMixin, TimestampMixin, AuditMixin):
    __tablename__ = "app_settings"

    setting_key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    setting_value: Mapped[dict] = mapped_column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
