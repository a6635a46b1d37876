"""Organization request/response schemas."""
import re
import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


def _check_color(value: str | None) -> str | None:
    if value is not None and not HEX_COLOR.match(value):
        raise ValueError("must be a #RRGGBB hex colour")
    return value


class OrganizationAccountCreate(BaseModel):
    """An organization together with its sign-in account."""
    organization_name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    password: str
    description: str | None = None
    contact_email: EmailStr | None = None
    contact_phone: str | None = Field(None, max_length=50)
    president_name: str | None = Field(None, max_length=200)
    president_email: EmailStr | None = None
    president_phone: str | None = Field(None, max_length=50)


class OrganizationUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    website_url: str | None = Field(None, max_length=500)
    contact_email: EmailStr | None = None
    contact_phone: str | None = Field(None, max_length=50)
    president_name: str | None = Field(None, max_length=200)
    president_email: EmailStr | None = None
    president_phone: str | None = Field(None, max_length=50)
    primary_color: str | None = None
    secondary_color: str | None = None

    @field_validator("primary_color", "secondary_color")
    @classmethod
    def validate_colors(cls, value: str | None) -> str | None:
        return _check_color(value)


class OrganizationCredentialsUpdate(BaseModel):
    email: EmailStr | None = None
    password: str | None = None


class OrganizationPublic(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None = None
    website_url: str | None = None
    contact_email: str | None = None
    contact_phone: str | None = None
    logo_url: str | None = None
    primary_color: str
    secondary_color: str

    model_config = {"from_attributes": True}


class OrganizationResponse(OrganizationPublic):
    president_name: str | None = None
    president_email: str | None = None
    president_phone: str | None = None
    active: bool
    archived: bool
    created_by: uuid.UUID | None = None
    updated_by: uuid.UUID | None = None
    created_at: datetime
    updated_at: datetime


class OrganizationAccountResponse(BaseModel):
    user_id: uuid.UUID
    organization_id: uuid.UUID
    email: str


class TemporaryPasswordResponse(BaseModel):
    temporary_password: str
