"""Auth request/response schemas."""
from uuid import UUID

from pydantic import BaseModel, EmailStr

from app.models.user import UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = 1800


class RefreshRequest(BaseModel):
    refresh_token: str


class UserInfo(BaseModel):
    id: UUID
    email: str
    full_name: str
    role: UserRole
    organization_id: UUID | None = None
    organization_name: str | None = None

    model_config = {"from_attributes": True}
