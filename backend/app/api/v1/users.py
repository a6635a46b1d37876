"""Users API - admin account management."""
import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_db, require_role
from app.models.user import UserRole
from app.repositories import user_repository
from app.schemas.common import APIResponse, PaginationMeta
from app.schemas.user import AdminCreate, UserResponse
from app.services import admin_user_service
from app.services.permission_service import Actor

router = APIRouter()


# GET /users — admin only
@router.get("", response_model=APIResponse)
async def list_users(
    role: UserRole | None = None,
    organization_id: uuid.UUID | None = None,
    search: str | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    _admin: Actor = require_role(UserRole.ADMIN),
    db: AsyncSession = Depends(get_db),
):
    users, total = await user_repository.list_users(
        db, role=role, organization_id=organization_id, search=search,
        skip=(page - 1) * per_page, limit=per_page,
    )
    return APIResponse(
        status="success",
        data=[UserResponse.model_validate(u).model_dump(mode="json") for u in users],
        pagination=PaginationMeta(
            total=total, page=page, per_page=per_page,
            has_next=(page * per_page < total),
        ),
    )


# POST /users/admins — admin only
@router.post("/admins", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def create_admin(
    body: AdminCreate,
    admin: Actor = require_role(UserRole.ADMIN),
    db: AsyncSession = Depends(get_db),
):
    user = await admin_user_service.create_admin_account(
        db, body.email, body.password, body.full_name, created_by=admin.id,
    )
    return APIResponse(
        status="success",
        data=UserResponse.model_validate(user).model_dump(mode="json"),
        message="Admin created",
    )
