"""Upload API - carousel slide images and PDF documents (multipart)."""
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.websocket import manager
from app.dependencies import get_actor, get_db, get_storage
from app.models.content import ContentKind
from app.schemas.common import APIResponse
from app.schemas.content import OrgFileResponse
from app.services import file_service
from app.services.permission_service import Actor
from app.services.realtime_service import ChangeEvent, ChangeType
from app.services.storage_service import ObjectStorage

router = APIRouter()


# POST /carousel-items/image
@router.post("/carousel-items/image", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def upload_carousel_image(
    file: UploadFile = File(...),
    organization_id: uuid.UUID | None = Form(None),
    actor: Actor = Depends(get_actor),
    storage: ObjectStorage = Depends(get_storage),
):
    target = file_service.resolve_organization(actor, organization_id)
    data = await file.read()
    result = await file_service.upload_carousel_image(
        storage, target, data, file.content_type or "", file.filename or "image",
    )
    return APIResponse(status="success", data=result, message="Image uploaded")


# POST /files/upload
@router.post("/files/upload", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    organization_id: uuid.UUID | None = Form(None),
    description: str | None = Form(None),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    target = file_service.resolve_organization(actor, organization_id)
    data = await file.read()
    record = await file_service.upload_document(
        db, storage, actor, target, data, file.content_type or "", file.filename or "document.pdf", description,
    )
    payload = OrgFileResponse.model_validate(record).model_dump(mode="json")
    background_tasks.add_task(manager.publish, ChangeEvent(ContentKind.ORG_FILE, ChangeType.INSERT, new=payload))
    return APIResponse(status="success", data=payload, message="File uploaded")
