"""Uploads into organization buckets: images, carousel slides, logos, PDFs."""
import os
import time
import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import AppException, NotFoundError, PermissionDeniedError
from app.models.content import OrgFile
from app.models.organization import Organization
from app.repositories import organization_repository
from app.repositories.content_repository import org_file_repository
from app.schemas.content import StoredOrgFileCreate
from app.services import content_service
from app.services.permission_service import Actor
from app.services.storage_service import ObjectStorage
from app.utils.file_validation import MB, FileType, fit_within, validate_file

logger = structlog.get_logger()


def resolve_organization(actor: Actor, organization_id: uuid.UUID | None) -> uuid.UUID:
    """Target organization of an upload: admins name one, members use their own."""
    if actor.is_admin:
        if organization_id is None:
            raise PermissionDeniedError("Administrators must name the organization")
        return organization_id
    if actor.organization_id is None:
        raise PermissionDeniedError("Account is not linked to an organization")
    if organization_id is not None and organization_id != actor.organization_id:
        raise PermissionDeniedError("Cannot upload for another organization")
    return actor.organization_id


async def upload_image(
    storage: ObjectStorage, data: bytes, content_type: str, filename: str, prefix: str,
) -> dict[str, str]:
    checked = validate_file(data, content_type, FileType.IMAGE, filename, settings.MAX_IMAGE_SIZE_MB * MB)
    path = f"{prefix}/{int(time.time() * 1000)}-{checked['safe_filename']}"
    await storage.upload(settings.IMAGES_BUCKET, path, data)
    logger.info("image_uploaded", bucket=settings.IMAGES_BUCKET, path=path, size=len(data))
    return {"url": storage.get_public_url(settings.IMAGES_BUCKET, path), "path": path}


async def upload_carousel_image(
    storage: ObjectStorage, organization_id: uuid.UUID, data: bytes, content_type: str, filename: str,
) -> dict[str, str]:
    return await upload_image(storage, data, content_type, filename, f"{organization_id}/carousel")


async def upload_logo(
    db: AsyncSession,
    storage: ObjectStorage,
    organization_id: uuid.UUID,
    data: bytes,
    content_type: str,
    filename: str,
) -> Organization:
    """Replace the organization's logo with a copy resized to fit the logo box."""
    organization = await organization_repository.get_by_id(db, organization_id)
    if organization is None:
        raise NotFoundError("Organization not found")

    validate_file(data, content_type, FileType.IMAGE, filename, settings.MAX_IMAGE_SIZE_MB * MB)
    resized, mime = fit_within(data, settings.LOGO_MAX_DIMENSION)
    ext = ".png" if mime == "image/png" else ".jpg"

    prefix = f"{organization_id}/logo"
    existing = await storage.list_objects(settings.IMAGES_BUCKET, prefix + "/")
    if existing:
        await storage.remove(settings.IMAGES_BUCKET, existing)

    path = f"{prefix}/logo{ext}"
    await storage.upload(settings.IMAGES_BUCKET, path, resized, upsert=True)

    # Cache-busting suffix so clients refetch the replaced object
    logo_url = f"{storage.get_public_url(settings.IMAGES_BUCKET, path)}?v={int(time.time())}"
    await organization_repository.update(db, organization, {"logo_url": logo_url})
    logger.info("logo_uploaded", organization_id=str(organization_id), size=len(resized))
    return organization


async def upload_document(
    db: AsyncSession,
    storage: ObjectStorage,
    actor: Actor,
    organization_id: uuid.UUID,
    data: bytes,
    content_type: str,
    filename: str,
    description: str | None = None,
) -> OrgFile:
    """Store a PDF and register it as an ``org_files`` record.

    If the record cannot be created the stored object is removed again.
    """
    checked = validate_file(
        data, content_type, FileType.DOCUMENT, filename, settings.MAX_DOCUMENT_SIZE_MB * MB,
    )
    _, ext = os.path.splitext(checked["safe_filename"])
    path = f"{organization_id}/documents/{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ext}"
    await storage.upload(settings.FILES_BUCKET, path, data)

    payload = StoredOrgFileCreate(
        organization_id=organization_id,
        file_name=os.path.basename(filename)[:300] or checked["safe_filename"],
        file_url=storage.get_public_url(settings.FILES_BUCKET, path),
        file_type=checked["detected_mime"],
        file_size=len(data),
        storage_bucket=settings.FILES_BUCKET,
        storage_path=path,
        description=description,
    )
    try:
        return await content_service.create_content(db, org_file_repository, actor, payload)
    except AppException:
        try:
            await storage.remove(settings.FILES_BUCKET, [path])
        except OSError as cleanup_exc:
            logger.warning("uploaded_object_cleanup_failed", path=path, error=str(cleanup_exc))
        raise
