"""Content API - one router per content kind, 13 endpoints each."""
import uuid
from typing import Literal

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.websocket import manager
from app.dependencies import get_actor, get_db, get_optional_actor, get_storage
from app.repositories.content_repository import (
    SCOPE_MINE,
    ContentRepository,
    announcement_repository,
    carousel_item_repository,
    org_file_repository,
    program_repository,
)
from app.schemas.common import APIResponse, PaginationMeta
from app.schemas.content import (
    AnnouncementCreate,
    AnnouncementResponse,
    AnnouncementUpdate,
    BatchRequest,
    BatchResult,
    CarouselItemCreate,
    CarouselItemResponse,
    CarouselItemUpdate,
    OrgFileCreate,
    OrgFileResponse,
    OrgFileUpdate,
    PendingCountResponse,
    PermissionResponse,
    ProgramCreate,
    ProgramResponse,
    ProgramUpdate,
)
from app.services import content_service
from app.services.permission_service import Actor
from app.services.realtime_service import ChangeEvent, ChangeType
from app.services.storage_service import ObjectStorage


def build_router(
    repo: ContentRepository,
    create_schema: type[BaseModel],
    update_schema: type[BaseModel],
    response_schema: type[BaseModel],
) -> APIRouter:
    router = APIRouter()
    label = repo.kind.value.replace("_", " ")

    def serialize(record) -> dict:
        return response_schema.model_validate(record).model_dump(mode="json")

    def publish(background_tasks: BackgroundTasks, change: ChangeType, new: dict | None, old: dict | None = None):
        background_tasks.add_task(manager.publish, ChangeEvent(repo.kind, change, new=new, old=old))

    # GET /
    @router.get("", response_model=APIResponse)
    async def list_records(
        organization_id: uuid.UUID | None = None,
        approved: bool | None = None,
        include_archived: bool = False,
        scope: Literal["mine", "all"] = SCOPE_MINE,
        page: int = Query(1, ge=1),
        per_page: int = Query(20, ge=1, le=100),
        actor: Actor | None = Depends(get_optional_actor),
        db: AsyncSession = Depends(get_db),
    ):
        records, total = await content_service.list_content(
            db, repo, actor,
            organization_id=organization_id, approved=approved, include_archived=include_archived,
            scope=scope, page=page, per_page=per_page,
        )
        return APIResponse(
            status="success",
            data=[serialize(r) for r in records],
            pagination=PaginationMeta(
                total=total, page=page, per_page=per_page,
                has_next=(page * per_page < total),
            ),
        )

    # POST /
    @router.post("", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
    async def create_record(
        body: create_schema,
        background_tasks: BackgroundTasks,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        record = await content_service.create_content(db, repo, actor, body)
        data = serialize(record)
        publish(background_tasks, ChangeType.INSERT, data)
        return APIResponse(status="success", data=data, message=f"{label.capitalize()} created")

    # GET /pending-count
    @router.get("/pending-count", response_model=APIResponse)
    async def pending_count(
        organization_id: uuid.UUID | None = None,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        count = await content_service.pending_count(db, repo, actor, organization_id)
        return APIResponse(status="success", data=PendingCountResponse(pending=count).model_dump())

    # POST /batch/approve
    @router.post("/batch/approve", response_model=APIResponse)
    async def batch_approve(
        body: BatchRequest,
        background_tasks: BackgroundTasks,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        affected = await content_service.batch_approve(db, repo, actor, body.ids)
        for record_id in body.ids:
            record = await repo.get_by_id(db, record_id)
            if record is not None:
                publish(background_tasks, ChangeType.UPDATE, serialize(record))
        return APIResponse(status="success", data=BatchResult(affected=affected).model_dump())

    # POST /batch/archive
    @router.post("/batch/archive", response_model=APIResponse)
    async def batch_archive(
        body: BatchRequest,
        background_tasks: BackgroundTasks,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        affected = await content_service.batch_archive(db, repo, actor, body.ids)
        for record_id in body.ids:
            record = await repo.get_by_id(db, record_id)
            if record is not None and record.archived:
                publish(background_tasks, ChangeType.UPDATE, serialize(record))
        return APIResponse(status="success", data=BatchResult(affected=affected).model_dump())

    # GET /{id}
    @router.get("/{record_id}", response_model=APIResponse)
    async def get_record(
        record_id: uuid.UUID,
        actor: Actor | None = Depends(get_optional_actor),
        db: AsyncSession = Depends(get_db),
    ):
        record = await content_service.get_content(db, repo, actor, record_id)
        return APIResponse(status="success", data=serialize(record))

    # PUT /{id}
    @router.put("/{record_id}", response_model=APIResponse)
    async def update_record(
        record_id: uuid.UUID,
        body: update_schema,
        background_tasks: BackgroundTasks,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        record = await content_service.update_content(db, repo, actor, record_id, body)
        data = serialize(record)
        publish(background_tasks, ChangeType.UPDATE, data)
        return APIResponse(status="success", data=data, message=f"{label.capitalize()} updated")

    # GET /{id}/permissions
    @router.get("/{record_id}/permissions", response_model=APIResponse)
    async def get_permissions(
        record_id: uuid.UUID,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        check = await content_service.check_permissions(db, repo, actor, record_id)
        return APIResponse(status="success", data=PermissionResponse.model_validate(check).model_dump())

    async def _transition(record_id, background_tasks, actor, db, operation, message):
        before = await repo.get_by_id(db, record_id)
        old = serialize(before) if before is not None else None
        record = await operation(db, repo, actor, record_id)
        data = serialize(record)
        publish(background_tasks, ChangeType.UPDATE, data, old)
        return APIResponse(status="success", data=data, message=message)

    # POST /{id}/archive
    @router.post("/{record_id}/archive", response_model=APIResponse)
    async def archive_record(
        record_id: uuid.UUID,
        background_tasks: BackgroundTasks,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        return await _transition(
            record_id, background_tasks, actor, db, content_service.archive_content, f"{label.capitalize()} archived",
        )

    # POST /{id}/restore
    @router.post("/{record_id}/restore", response_model=APIResponse)
    async def restore_record(
        record_id: uuid.UUID,
        background_tasks: BackgroundTasks,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        return await _transition(
            record_id, background_tasks, actor, db, content_service.restore_content, f"{label.capitalize()} restored",
        )

    # POST /{id}/approve — admin only
    @router.post("/{record_id}/approve", response_model=APIResponse)
    async def approve_record(
        record_id: uuid.UUID,
        background_tasks: BackgroundTasks,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        return await _transition(
            record_id, background_tasks, actor, db, content_service.approve_content, f"{label.capitalize()} approved",
        )

    # POST /{id}/reject — admin only
    @router.post("/{record_id}/reject", response_model=APIResponse)
    async def reject_record(
        record_id: uuid.UUID,
        background_tasks: BackgroundTasks,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
    ):
        return await _transition(
            record_id, background_tasks, actor, db, content_service.reject_content, f"{label.capitalize()} rejected",
        )

    # DELETE /{id} — admin only, archived rows only
    @router.delete("/{record_id}", response_model=APIResponse)
    async def delete_record(
        record_id: uuid.UUID,
        background_tasks: BackgroundTasks,
        actor: Actor = Depends(get_actor),
        db: AsyncSession = Depends(get_db),
        storage: ObjectStorage = Depends(get_storage),
    ):
        record = await content_service.hard_delete_content(db, repo, actor, record_id, storage)
        publish(background_tasks, ChangeType.DELETE, None, serialize(record))
        return APIResponse(status="success", message=f"{label.capitalize()} deleted")

    return router


announcements_router = build_router(
    announcement_repository, AnnouncementCreate, AnnouncementUpdate, AnnouncementResponse,
)
programs_router = build_router(program_repository, ProgramCreate, ProgramUpdate, ProgramResponse)
carousel_items_router = build_router(
    carousel_item_repository, CarouselItemCreate, CarouselItemUpdate, CarouselItemResponse,
)
files_router = build_router(org_file_repository, OrgFileCreate, OrgFileUpdate, OrgFileResponse)
