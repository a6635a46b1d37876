"""App setting data access layer."""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.app_setting import AppSetting
from app.repositories.base import persist, run


async def get_by_key(db: AsyncSession, key: str) -> AppSetting | None:
    stmt = select(AppSetting).where(AppSetting.setting_key == key)
    return (await run(db, stmt, label="app_settings.get")).scalar_one_or_none()


async def list_all(db: AsyncSession) -> list[AppSetting]:
    stmt = select(AppSetting).order_by(AppSetting.setting_key.asc())
    return list((await run(db, stmt, label="app_settings.list")).scalars().all())


async def save(db: AsyncSession, setting: AppSetting, values: dict | None = None) -> AppSetting:
    await persist(db, setting, values=values, label="app_settings.save")
    return setting
