"""Content request/response schemas, one set per content kind."""
import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field, model_validator


class ContentResponseBase(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    approved: bool
    archived: bool
    created_by: uuid.UUID | None = None
    updated_by: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# --- announcements ---

class AnnouncementCreate(BaseModel):
    organization_id: uuid.UUID | None = None
    title: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)
    published_date: date | None = None


class AnnouncementUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=300)
    content: str | None = Field(None, min_length=1)
    published_date: date | None = None


class AnnouncementResponse(ContentResponseBase):
    title: str
    content: str
    published_date: date


# --- programs ---

def _check_date_range(start: date | None, end: date | None) -> None:
    if start and end and end < start:
        raise ValueError("end_date must be on or after start_date")


class ProgramCreate(BaseModel):
    organization_id: uuid.UUID | None = None
    title: str = Field(min_length=1, max_length=300)
    description: str = Field(min_length=1)
    start_date: date | None = None
    end_date: date | None = None
    location: str | None = Field(None, max_length=300)
    registration_url: str | None = Field(None, max_length=500)
    image_url: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def check_date_range(self) -> "ProgramCreate":
        _check_date_range(self.start_date, self.end_date)
        return self


class ProgramUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=300)
    description: str | None = Field(None, min_length=1)
    start_date: date | None = None
    end_date: date | None = None
    location: str | None = Field(None, max_length=300)
    registration_url: str | None = Field(None, max_length=500)
    image_url: str | None = Field(None, max_length=500)

    @model_validator(mode="after")
    def check_date_range(self) -> "ProgramUpdate":
        _check_date_range(self.start_date, self.end_date)
        return self


class ProgramResponse(ContentResponseBase):
    title: str
    description: str
    start_date: date | None = None
    end_date: date | None = None
    location: str | None = None
    registration_url: str | None = None
    image_url: str | None = None


# --- carousel ---

class CarouselItemCreate(BaseModel):
    organization_id: uuid.UUID | None = None
    title: str = Field(min_length=1, max_length=300)
    subtitle: str | None = None
    image_url: str = Field(min_length=1, max_length=500)
    link_url: str | None = Field(None, max_length=500)
    display_order: int = Field(0, ge=0)


class CarouselItemUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=300)
    subtitle: str | None = None
    image_url: str | None = Field(None, min_length=1, max_length=500)
    link_url: str | None = Field(None, max_length=500)
    display_order: int | None = Field(None, ge=0)


class CarouselItemResponse(ContentResponseBase):
    title: str
    subtitle: str | None = None
    image_url: str
    link_url: str | None = None
    display_order: int


# --- files ---

class OrgFileCreate(BaseModel):
    """Metadata for a file already placed in storage."""
    organization_id: uuid.UUID | None = None
    file_name: str = Field(min_length=1, max_length=300)
    file_url: str = Field(min_length=1, max_length=1000)
    file_type: str = Field(min_length=1, max_length=100)
    file_size: int = Field(ge=0)
    description: str | None = None


class StoredOrgFileCreate(OrgFileCreate):
    """Set only by the upload service, which chose the object location itself."""
    storage_bucket: str
    storage_path: str


class OrgFileUpdate(BaseModel):
    file_name: str | None = Field(None, min_length=1, max_length=300)
    description: str | None = None


class OrgFileResponse(ContentResponseBase):
    file_name: str
    file_url: str
    file_type: str
    file_size: int
    storage_bucket: str | None = None
    storage_path: str | None = None
    description: str | None = None
    uploaded_by: uuid.UUID | None = None


# --- lifecycle ---

class PermissionResponse(BaseModel):
    can_view: bool
    can_edit: bool
    can_delete: bool
    can_approve: bool
    reason: str | None = None

    model_config = {"from_attributes": True}


class BatchRequest(BaseModel):
    ids: list[uuid.UUID] = Field(min_length=1, max_length=500)


class BatchResult(BaseModel):
    affected: int


class PendingCountResponse(BaseModel):
    pending: int
