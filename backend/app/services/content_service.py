"""Content lifecycle: create → pending → approved/rejected → archived.

Each mutation is a single conditional statement whose WHERE clause repeats the
permission rule for organization actors (own organization, not approved, not
archived). When nothing matches, the record is re-read only to choose the
right error; the write itself never falls back to a second attempt.
"""
import uuid
from collections.abc import Iterable
from typing import Any

import structlog
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from app.models.content import PROTECTED_COLUMNS, ContentKind
from app.repositories import organization_repository
from app.repositories.content_repository import SCOPE_MINE, ContentRepository
from app.services.permission_service import Actor, PermissionCheck, RecordState, can_see, evaluate
from app.services.storage_service import ObjectStorage

logger = structlog.get_logger()

EDIT_CONFLICT_MESSAGE = "Cannot edit: content is approved or you do not have permission"
NOT_FOUND_MESSAGE = "Content not found"


def _stored_object_of(record) -> tuple[str, str] | None:
    """The upload-service object behind a file record, if it belongs to the record's organization."""
    bucket, path = record.storage_bucket, record.storage_path
    if bucket != settings.FILES_BUCKET or not path:
        return None
    if not path.startswith(f"{record.organization_id}/") or ".." in path.split("/"):
        return None
    return bucket, path


def _require_admin(actor: Actor, action: str) -> None:
    if not actor.is_admin:
        raise PermissionDeniedError(f"Only administrators can {action}")


def _org_scope(actor: Actor) -> uuid.UUID | None:
    """Organization filter for a write: none for admins, the actor's own otherwise."""
    if actor.is_admin:
        return None
    if actor.organization_id is None:
        raise PermissionDeniedError("Account is not linked to an organization")
    return actor.organization_id


async def _explain_miss(db: AsyncSession, repo: ContentRepository, actor: Actor, record_id: uuid.UUID):
    """Turn a zero-row write into NotFound, PermissionDenied or Conflict."""
    record = await repo.get_by_id(db, record_id)
    if record is None or not can_see(RecordState.of(record), actor):
        raise NotFoundError(NOT_FOUND_MESSAGE)
    if not actor.is_admin and not actor.owns(record.organization_id):
        raise PermissionDeniedError("Not your organization content")
    raise ConflictError(EDIT_CONFLICT_MESSAGE)


async def _reload(db: AsyncSession, repo: ContentRepository, record_id: uuid.UUID):
    record = await repo.get_by_id(db, record_id)
    if record is None:
        raise NotFoundError(NOT_FOUND_MESSAGE)
    return record


# --- reads ---

async def list_content(
    db: AsyncSession,
    repo: ContentRepository,
    actor: Actor | None,
    *,
    organization_id: uuid.UUID | None = None,
    approved: bool | None = None,
    include_archived: bool = False,
    scope: str = SCOPE_MINE,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[Any], int]:
    return await repo.list_visible(
        db,
        actor,
        organization_id=organization_id,
        approved=approved,
        include_archived=include_archived,
        scope=scope,
        skip=(page - 1) * per_page,
        limit=per_page,
    )


async def get_content(db: AsyncSession, repo: ContentRepository, actor: Actor | None, record_id: uuid.UUID):
    record = await repo.get_by_id(db, record_id)
    if record is None or not can_see(RecordState.of(record), actor):
        raise NotFoundError(NOT_FOUND_MESSAGE)
    return record


async def check_permissions(
    db: AsyncSession, repo: ContentRepository, actor: Actor, record_id: uuid.UUID,
) -> PermissionCheck:
    record = await repo.get_by_id(db, record_id)
    return evaluate(RecordState.of(record) if record is not None else None, actor)


async def pending_count(
    db: AsyncSession, repo: ContentRepository, actor: Actor, organization_id: uuid.UUID | None = None,
) -> int:
    if not actor.is_admin:
        organization_id = _org_scope(actor)
    return await repo.count_pending(db, organization_id)


# --- writes ---

async def create_content(db: AsyncSession, repo: ContentRepository, actor: Actor, data: BaseModel):
    values = data.model_dump(exclude_none=True)
    organization_id = values.pop("organization_id", None)

    if actor.is_admin:
        if organization_id is None:
            raise ValidationError("organization_id is required", ["organization_id: field required"])
    else:
        own = _org_scope(actor)
        if organization_id is not None and organization_id != own:
            raise PermissionDeniedError("Cannot create content for another organization")
        organization_id = own

    organization = await organization_repository.get_by_id(db, organization_id)
    if organization is None or organization.archived:
        raise NotFoundError("Organization not found")

    values = {k: v for k, v in values.items() if k not in PROTECTED_COLUMNS}
    record = repo.model(
        **values,
        organization_id=organization_id,
        approved=actor.is_admin,
        archived=False,
        created_by=actor.id,
        updated_by=actor.id,
    )
    if repo.kind == ContentKind.ORG_FILE and record.uploaded_by is None:
        record.uploaded_by = actor.id

    await repo.create(db, record)
    logger.info(
        "content_created", kind=repo.kind.value, id=str(record.id),
        organization_id=str(organization_id), approved=record.approved,
    )
    return record


async def update_content(
    db: AsyncSession, repo: ContentRepository, actor: Actor, record_id: uuid.UUID, data: BaseModel,
):
    values = {
        k: v for k, v in data.model_dump(exclude_unset=True).items() if k not in PROTECTED_COLUMNS
    }
    values["updated_by"] = actor.id

    if actor.is_admin:
        affected = await repo.conditional_update(db, record_id, values)
    else:
        affected = await repo.conditional_update(
            db, record_id, values,
            organization_id=_org_scope(actor), require_approved=False, require_archived=False,
        )
    if not affected:
        await _explain_miss(db, repo, actor, record_id)
    return await _reload(db, repo, record_id)


async def set_archived(
    db: AsyncSession, repo: ContentRepository, actor: Actor, record_id: uuid.UUID, archived: bool,
):
    """Archive or restore. The approval flag is left as it was."""
    affected = await repo.conditional_update(
        db, record_id, {"archived": archived, "updated_by": actor.id}, organization_id=_org_scope(actor),
    )
    if not affected:
        await _explain_miss(db, repo, actor, record_id)
    logger.info("content_archived" if archived else "content_restored", kind=repo.kind.value, id=str(record_id))
    return await _reload(db, repo, record_id)


async def archive_content(db: AsyncSession, repo: ContentRepository, actor: Actor, record_id: uuid.UUID):
    return await set_archived(db, repo, actor, record_id, True)


async def restore_content(db: AsyncSession, repo: ContentRepository, actor: Actor, record_id: uuid.UUID):
    return await set_archived(db, repo, actor, record_id, False)


async def set_approved(
    db: AsyncSession, repo: ContentRepository, actor: Actor, record_id: uuid.UUID, approved: bool,
):
    _require_admin(actor, "approve or reject content")
    affected = await repo.conditional_update(db, record_id, {"approved": approved, "updated_by": actor.id})
    if not affected:
        raise NotFoundError(NOT_FOUND_MESSAGE)
    logger.info("content_approved" if approved else "content_rejected", kind=repo.kind.value, id=str(record_id))
    return await _reload(db, repo, record_id)


async def approve_content(db: AsyncSession, repo: ContentRepository, actor: Actor, record_id: uuid.UUID):
    return await set_approved(db, repo, actor, record_id, True)


async def reject_content(db: AsyncSession, repo: ContentRepository, actor: Actor, record_id: uuid.UUID):
    return await set_approved(db, repo, actor, record_id, False)


async def batch_approve(
    db: AsyncSession, repo: ContentRepository, actor: Actor, record_ids: Iterable[uuid.UUID],
) -> int:
    _require_admin(actor, "approve content")
    affected = await repo.set_flags_many(db, record_ids, {"approved": True, "updated_by": actor.id})
    logger.info("content_batch_approved", kind=repo.kind.value, affected=affected)
    return affected


async def batch_archive(
    db: AsyncSession, repo: ContentRepository, actor: Actor, record_ids: Iterable[uuid.UUID],
) -> int:
    affected = await repo.set_flags_many(
        db, record_ids, {"archived": True, "updated_by": actor.id}, organization_id=_org_scope(actor),
    )
    logger.info("content_batch_archived", kind=repo.kind.value, affected=affected)
    return affected


async def hard_delete_content(
    db: AsyncSession,
    repo: ContentRepository,
    actor: Actor,
    record_id: uuid.UUID,
    storage: ObjectStorage | None = None,
):
    """Permanently delete an archived record; returns the deleted row."""
    _require_admin(actor, "permanently delete content")
    record = await repo.get_by_id(db, record_id)
    if record is None:
        raise NotFoundError(NOT_FOUND_MESSAGE)
    if not record.archived:
        raise ConflictError("Only archived content can be permanently deleted")
    if not await repo.delete_archived(db, record_id):
        raise ConflictError("Content was restored before it could be deleted")

    db.expunge(record)

    stored = _stored_object_of(record) if repo.kind == ContentKind.ORG_FILE else None
    if stored is None and repo.kind == ContentKind.ORG_FILE and record.storage_path:
        logger.warning(
            "stored_object_not_owned",
            id=str(record_id), bucket=record.storage_bucket, path=record.storage_path,
        )
    if stored is not None and storage is not None:
        bucket, path = stored
        try:
            await storage.remove(bucket, [path])
        except (OSError, ValidationError) as exc:
            logger.warning("stored_object_cleanup_failed", bucket=bucket, path=path, error=str(exc))
    logger.info("content_deleted", kind=repo.kind.value, id=str(record_id))
    return record
