"""Settings API - admin key/value app settings."""
from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_db, require_role
from app.models.user import UserRole
from app.schemas.common import APIResponse
from app.schemas.setting import SettingResponse, SettingUpdate
from app.services import setting_service
from app.services.permission_service import Actor

router = APIRouter()

SETTING_KEY = Path(..., min_length=1, max_length=100, pattern=r"^[A-Za-z0-9_.\-]+$")


# GET /settings — admin only
@router.get("", response_model=APIResponse)
async def list_settings(
    _admin: Actor = require_role(UserRole.ADMIN),
    db: AsyncSession = Depends(get_db),
):
    items = await setting_service.list_settings(db)
    return APIResponse(
        status="success",
        data=[SettingResponse.model_validate(s).model_dump(mode="json") for s in items],
    )


# GET /settings/{key} — admin only
@router.get("/{key}", response_model=APIResponse)
async def get_setting(
    key: str = SETTING_KEY,
    _admin: Actor = require_role(UserRole.ADMIN),
    db: AsyncSession = Depends(get_db),
):
    setting = await setting_service.get_setting(db, key)
    return APIResponse(status="success", data=SettingResponse.model_validate(setting).model_dump(mode="json"))


# PUT /settings/{key} — admin only, upsert
@router.put("/{key}", response_model=APIResponse)
async def put_setting(
    body: SettingUpdate,
    key: str = SETTING_KEY,
    admin: Actor = require_role(UserRole.ADMIN),
    db: AsyncSession = Depends(get_db),
):
    setting = await setting_service.put_setting(db, key, body.setting_value, admin, body.description)
    return APIResponse(
        status="success",
        data=SettingResponse.model_validate(setting).model_dump(mode="json"),
        message="Setting saved",
    )
