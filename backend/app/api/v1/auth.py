"""Auth API endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_actor, get_current_user, get_db
from app.models.user import AppUser
from app.schemas.auth import LoginRequest, RefreshRequest, TokenResponse, UserInfo
from app.schemas.common import APIResponse
from app.schemas.user import UserPasswordUpdate
from app.services import auth_service
from app.services.permission_service import Actor

router = APIRouter()


@router.post("/login", response_model=APIResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    tokens = await auth_service.sign_in(db, body.email, body.password)
    return APIResponse(status="success", data=TokenResponse(**tokens).model_dump())


@router.post("/refresh", response_model=APIResponse)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    tokens = await auth_service.refresh_session(db, body.refresh_token)
    return APIResponse(status="success", data=TokenResponse(**tokens).model_dump())


@router.post("/logout", response_model=APIResponse)
async def logout(actor: Actor = Depends(get_actor)):
    # Ends this session and every refresh token of the user
    await auth_service.sign_out(str(actor.id), actor.session_id)
    return APIResponse(status="success", message="Logged out successfully")


@router.get("/me", response_model=APIResponse)
async def me(current_user: AppUser = Depends(get_current_user)):
    info = UserInfo.model_validate(current_user)
    if current_user.organization is not None:
        info.organization_name = current_user.organization.name
    return APIResponse(status="success", data=info.model_dump())


@router.put("/me/password", response_model=APIResponse)
async def change_password(
    body: UserPasswordUpdate,
    current_user: AppUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.change_password(db, current_user, body.current_password, body.new_password)
    return APIResponse(status="success", message="Password updated")
