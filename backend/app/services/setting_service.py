"""Global app settings (admin-only key/value store)."""
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError
from app.models.app_setting import AppSetting
from app.repositories import setting_repository
from app.services.permission_service import Actor


async def list_settings(db: AsyncSession) -> list[AppSetting]:
    return await setting_repository.list_all(db)


async def get_setting(db: AsyncSession, key: str) -> AppSetting:
    setting = await setting_repository.get_by_key(db, key)
    if setting is None:
        raise NotFoundError(f"Setting not found: {key}")
    return setting


async def put_setting(
    db: AsyncSession, key: str, value: Any, actor: Actor, description: str | None = None,
) -> AppSetting:
    setting = await setting_repository.get_by_key(db, key)
    if setting is None:
        setting = AppSetting(setting_key=key, created_by=actor.id)
    values = {"setting_value": value, "updated_by": actor.id}
    if description is not None:
        values["description"] = description
    return await setting_repository.save(db, setting, values)
