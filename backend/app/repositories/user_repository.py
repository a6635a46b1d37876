"""User data access layer."""
import uuid as _uuid

from sqlalchemy import delete, func, or_, select, update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import AppUser, UserRole
from app.repositories.base import persist, run


async def get_by_id(db: AsyncSession, user_id: _uuid.UUID) -> AppUser | None:
    stmt = select(AppUser).where(AppUser.id == user_id).execution_options(populate_existing=True)
    return (await run(db, stmt, label="app_users.get")).scalar_one_or_none()


async def get_by_email(db: AsyncSession, email: str) -> AppUser | None:
    stmt = select(AppUser).where(func.lower(AppUser.email) == email.lower())
    return (await run(db, stmt, label="app_users.get_by_email")).scalar_one_or_none()


async def list_by_organization(db: AsyncSession, organization_id: _uuid.UUID) -> list[AppUser]:
    stmt = (
        select(AppUser)
        .where(AppUser.organization_id == organization_id)
        .order_by(AppUser.created_at.asc())
    )
    return list((await run(db, stmt, label="app_users.by_org")).scalars().all())


async def list_users(
    db: AsyncSession,
    *,
    role: UserRole | None = None,
    organization_id: _uuid.UUID | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[AppUser], int]:
    q = select(AppUser)
    count_q = select(func.count()).select_from(AppUser)

    if role:
        q = q.where(AppUser.role == role)
        count_q = count_q.where(AppUser.role == role)
    if organization_id:
        q = q.where(AppUser.organization_id == organization_id)
        count_q = count_q.where(AppUser.organization_id == organization_id)
    if search:
        pattern = f"%{search}%"
        cond = or_(AppUser.full_name.ilike(pattern), AppUser.email.ilike(pattern))
        q = q.where(cond)
        count_q = count_q.where(cond)

    total = (await run(db, count_q, label="app_users.count")).scalar() or 0
    q = q.order_by(AppUser.created_at.desc()).offset(skip).limit(limit)
    rows = (await run(db, q, label="app_users.list")).scalars().all()
    return list(rows), total


async def create(db: AsyncSession, user: AppUser) -> AppUser:
    await persist(db, user, label="app_users.insert")
    return user


async def update(db: AsyncSession, user: AppUser, values: dict) -> AppUser:
    await persist(db, user, values=values, label="app_users.update")
    return user


async def set_archived_for_organization(
    db: AsyncSession, organization_id: _uuid.UUID, archived: bool,
) -> int:
    stmt = (
        sa_update(AppUser)
        .where(AppUser.organization_id == organization_id)
        .values(archived=archived)
        .execution_options(synchronize_session=False)
    )
    return (await run(db, stmt, label="app_users.archive_org")).rowcount or 0


async def delete_for_organization(db: AsyncSession, organization_id: _uuid.UUID) -> int:
    stmt = (
        delete(AppUser)
        .where(AppUser.organization_id == organization_id)
        .execution_options(synchronize_session=False)
    )
    return (await run(db, stmt, label="app_users.delete_org")).rowcount or 0
