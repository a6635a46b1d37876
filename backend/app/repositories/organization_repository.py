"""Organization data access layer."""
import uuid as _uuid

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.organization import Organization
from app.repositories.base import persist, run


async def get_by_id(db: AsyncSession, organization_id: _uuid.UUID) -> Organization | None:
    stmt = (
        select(Organization)
        .where(Organization.id == organization_id)
        .execution_options(populate_existing=True)
    )
    return (await run(db, stmt, label="organizations.get")).scalar_one_or_none()


async def list_organizations(
    db: AsyncSession,
    *,
    search: str | None = None,
    include_archived: bool = False,
    public_only: bool = False,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Organization], int]:
    q = select(Organization)
    count_q = select(func.count()).select_from(Organization)

    if public_only:
        cond = (Organization.active.is_(True)) & (Organization.archived.is_(False))
        q = q.where(cond)
        count_q = count_q.where(cond)
    elif not include_archived:
        q = q.where(Organization.archived.is_(False))
        count_q = count_q.where(Organization.archived.is_(False))
    if search:
        pattern = f"%{search}%"
        cond = or_(Organization.name.ilike(pattern), Organization.contact_email.ilike(pattern))
        q = q.where(cond)
        count_q = count_q.where(cond)

    total = (await run(db, count_q, label="organizations.count")).scalar() or 0
    q = q.order_by(Organization.name.asc()).offset(skip).limit(limit)
    rows = (await run(db, q, label="organizations.list")).scalars().all()
    return list(rows), total


async def create(db: AsyncSession, organization: Organization) -> Organization:
    await persist(db, organization, label="organizations.insert")
    return organization


async def update(db: AsyncSession, organization: Organization, values: dict) -> Organization:
    await persist(db, organization, values=values, label="organizations.update")
    return organization


async def delete_by_id(db: AsyncSession, organization_id: _uuid.UUID) -> int:
    stmt = (
        delete(Organization)
        .where(Organization.id == organization_id)
        .execution_options(synchronize_session=False)
    )
    result = await run(db, stmt, label="organizations.delete")
    return result.rowcount or 0
