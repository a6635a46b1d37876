"""App setting schemas."""
import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class SettingUpdate(BaseModel):
    setting_value: Any = Field(...)
    description: str | None = None


class SettingResponse(BaseModel):
    id: uuid.UUID
    setting_key: str
    setting_value: Any
    description: str | None = None
    updated_by: uuid.UUID | None = None
    updated_at: datetime

    model_config = {"from_attributes": True}
