"""Content data access layer.

One ``ContentRepository`` per content kind. Every lifecycle write is a
conditional UPDATE whose WHERE clause carries the permission rule, so the
affected-row count is the authoritative answer to "was this allowed".
"""
import uuid as _uuid
from collections.abc import Iterable
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, and_, delete, func, or_, select, true, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.content import Announcement, CarouselItem, ContentKind, OrgFile, Program
from app.repositories.base import persist, run
from app.services.permission_service import Actor

ModelT = TypeVar("ModelT", Announcement, Program, CarouselItem, OrgFile)

SCOPE_MINE = "mine"
SCOPE_ALL = "all"


class ContentRepository(Generic[ModelT]):
    def __init__(self, model: type[ModelT], *order_by: Any) -> None:
        self.model = model
        self.kind: ContentKind = model.kind
        self.order_by = order_by or (model.created_at.desc(),)

    @property
    def table_name(self) -> str:
        return self.model.__tablename__

    # --- reads ---

    async def get_by_id(self, db: AsyncSession, record_id: _uuid.UUID) -> ModelT | None:
        stmt = (
            select(self.model)
            .where(self.model.id == record_id)
            .execution_options(populate_existing=True)
        )
        result = await run(db, stmt, label=f"{self.table_name}.get")
        return result.scalar_one_or_none()

    def visibility_clause(
        self, actor: Actor | None, *, include_archived: bool = False, scope: str = SCOPE_MINE,
    ) -> ColumnElement[bool]:
        """Rows ``actor`` may list.

        Admins see everything; an organization sees its own rows (and, with
        ``scope="all"``, everyone's approved rows); anonymous callers see
        approved, unarchived rows only.
        """
        m = self.model
        if actor is not None and actor.is_admin:
            return true() if include_archived else m.archived.is_(False)

        public = and_(m.approved.is_(True), m.archived.is_(False))
        if actor is None or actor.organization_id is None:
            return public

        own = m.organization_id == actor.organization_id
        if not include_archived:
            own = and_(own, m.archived.is_(False))
        if scope == SCOPE_ALL:
            return or_(own, public)
        return own

    async def list_visible(
        self,
        db: AsyncSession,
        actor: Actor | None,
        *,
        organization_id: _uuid.UUID | None = None,
        approved: bool | None = None,
        include_archived: bool = False,
        scope: str = SCOPE_MINE,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[ModelT], int]:
        m = self.model
        conditions = [self.visibility_clause(actor, include_archived=include_archived, scope=scope)]
        if organization_id:
            conditions.append(m.organization_id == organization_id)
        if approved is not None:
            conditions.append(m.approved.is_(approved))

        count_q = select(func.count()).select_from(m).where(*conditions)
        q = select(m).where(*conditions).order_by(*self.order_by).offset(skip).limit(limit)

        total = (await run(db, count_q, label=f"{self.table_name}.count")).scalar() or 0
        rows = (await run(db, q, label=f"{self.table_name}.list")).scalars().all()
        return list(rows), total

    async def count_pending(self, db: AsyncSession, organization_id: _uuid.UUID | None = None) -> int:
        m = self.model
        q = select(func.count()).select_from(m).where(m.approved.is_(False), m.archived.is_(False))
        if organization_id:
            q = q.where(m.organization_id == organization_id)
        return (await run(db, q, label=f"{self.table_name}.pending")).scalar() or 0

    # --- writes ---

    async def create(self, db: AsyncSession, record: ModelT) -> ModelT:
        await persist(db, record, label=f"{self.table_name}.insert")
        return record

    async def conditional_update(
        self,
        db: AsyncSession,
        record_id: _uuid.UUID,
        values: dict[str, Any],
        *,
        organization_id: _uuid.UUID | None = None,
        require_approved: bool | None = None,
        require_archived: bool | None = None,
    ) -> int:
        """UPDATE one row only if it still matches the guard; returns rows affected."""
        m = self.model
        stmt = update(m).where(m.id == record_id)
        if organization_id is not None:
            stmt = stmt.where(m.organization_id == organization_id)
        if require_approved is not None:
            stmt = stmt.where(m.approved.is_(require_approved))
        if require_archived is not None:
            stmt = stmt.where(m.archived.is_(require_archived))
        stmt = stmt.values(**values).execution_options(synchronize_session=False)
        result = await run(db, stmt, label=f"{self.table_name}.update")
        return result.rowcount or 0

    async def set_flags_many(
        self,
        db: AsyncSession,
        record_ids: Iterable[_uuid.UUID],
        values: dict[str, Any],
        *,
        organization_id: _uuid.UUID | None = None,
    ) -> int:
        ids = list(record_ids)
        if not ids:
            return 0
        m = self.model
        stmt = update(m).where(m.id.in_(ids))
        if organization_id is not None:
            stmt = stmt.where(m.organization_id == organization_id)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)
        result = await run(db, stmt, label=f"{self.table_name}.update_many")
        return result.rowcount or 0

    async def delete_archived(self, db: AsyncSession, record_id: _uuid.UUID) -> int:
        m = self.model
        stmt = (
            delete(m)
            .where(m.id == record_id, m.archived.is_(True))
            .execution_options(synchronize_session=False)
        )
        result = await run(db, stmt, label=f"{self.table_name}.delete")
        return result.rowcount or 0


announcement_repository: ContentRepository[Announcement] = ContentRepository(
    Announcement, Announcement.published_date.desc(), Announcement.created_at.desc()
)
program_repository: ContentRepository[Program] = ContentRepository(
    Program, Program.start_date.desc(), Program.created_at.desc()
)
carousel_item_repository: ContentRepository[CarouselItem] = ContentRepository(
    CarouselItem, CarouselItem.display_order.asc(), CarouselItem.created_at.desc()
)
org_file_repository: ContentRepository[OrgFile] = ContentRepository(OrgFile, OrgFile.created_at.desc())

REPOSITORIES: dict[ContentKind, ContentRepository] = {
    repo.kind: repo
    for repo in (announcement_repository, program_repository, carousel_item_repository, org_file_repository)
}


def for_kind(kind: ContentKind) -> ContentRepository:
    return REPOSITORIES[kind]
