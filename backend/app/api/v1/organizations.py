"""Organizations API - public directory and admin account management."""
import uuid

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_actor, get_db, get_storage, require_role
from app.exceptions import PermissionDeniedError
from app.models.user import UserRole
from app.repositories import organization_repository
from app.schemas.common import APIResponse, PaginationMeta
from app.schemas.organization import (
    OrganizationAccountCreate,
    OrganizationAccountResponse,
    OrganizationCredentialsUpdate,
    OrganizationPublic,
    OrganizationResponse,
    OrganizationUpdate,
    TemporaryPasswordResponse,
)
from app.services import admin_user_service, file_service
from app.services.permission_service import Actor
from app.services.storage_service import ObjectStorage

router = APIRouter()


def _pagination(total: int, page: int, per_page: int) -> PaginationMeta:
    return PaginationMeta(total=total, page=page, per_page=per_page, has_next=(page * per_page < total))


# GET /organizations/public — no auth
@router.get("/public", response_model=APIResponse)
async def list_public_organizations(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    orgs, total = await organization_repository.list_organizations(
        db, public_only=True, skip=(page - 1) * per_page, limit=per_page,
    )
    return APIResponse(
        status="success",
        data=[OrganizationPublic.model_validate(o).model_dump(mode="json") for o in orgs],
        pagination=_pagination(total, page, per_page),
    )


# GET /organizations — admin only
@router.get("", response_model=APIResponse)
async def list_organizations(
    search: str | None = None,
    include_archived: bool = False,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    _admin: Actor = require_role(UserRole.ADMIN),
    db: AsyncSession = Depends(get_db),
):
    orgs, total = await organization_repository.list_organizations(
        db, search=search, include_archived=include_archived, skip=(page - 1) * per_page, limit=per_page,
    )
    return APIResponse(
        status="success",
        data=[OrganizationResponse.model_validate(o).model_dump(mode="json") for o in orgs],
        pagination=_pagination(total, page, per_page),
    )


# POST /organizations — admin only, creates the organization and its account
@router.post("", response_model=APIResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    body: OrganizationAccountCreate,
    admin: Actor = require_role(UserRole.ADMIN),
    db: AsyncSession = Depends(get_db),
):
    organization, user = await admin_user_service.create_organization_account(db, body, admin)
    result = OrganizationAccountResponse(user_id=user.id, organization_id=organization.id, email=user.email)
    return APIResponse(status="success", data=result.model_dump(mode="json"), message="Organization created")


# GET /organizations/{id} — admin or the organization itself
@router.get("/{organization_id}", response_model=APIResponse)
async def get_organization(
    organization_id: uuid.UUID,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    organization = await admin_user_service.get_organization(db, organization_id, actor)
    return APIResponse(status="success", data=OrganizationResponse.model_validate(organization).model_dump(mode="json"))


# PUT /organizations/{id} — admin or the organization itself
@router.put("/{organization_id}", response_model=APIResponse)
async def update_organization(
    organization_id: uuid.UUID,
    body: OrganizationUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
):
    organization = await admin_user_service.update_organization(db, organization_id, body, actor)
    return APIResponse(
        status="success",
        data=OrganizationResponse.model_validate(organization).model_dump(mode="json"),
        message="Organization updated",
    )


# PUT /organizations/{id}/credentials — admin only
@router.put("/{organization_id}/credentials", response_model=APIResponse)
async def update_credentials(
    organization_id: uuid.UUID,
    body: OrganizationCredentialsUpdate,
    _admin: Actor = require_role(UserRole.ADMIN),
    db: AsyncSession = Depends(get_db),
):
    await admin_user_service.update_organization_credentials(db, organization_id, body)
    return APIResponse(status="success", message="Credentials updated")


# POST /organizations/{id}/deactivate — admin only
@router.post("/{organization_id}/deactivate", response_model=APIResponse)
async def deactivate_organization(
    organization_id: uuid.UUID,
    admin: Actor = require_role(UserRole.ADMIN),
    db: AsyncSession = Depends(get_db),
):
    organization = await admin_user_service.deactivate_organization_account(db, organization_id, admin)
    return APIResponse(
        status="success",
        data=OrganizationResponse.model_validate(organization).model_dump(mode="json"),
        message="Organization deactivated",
    )


# POST /organizations/{id}/reactivate — admin only
@router.post("/{organization_id}/reactivate", response_model=APIResponse)
async def reactivate_organization(
    organization_id: uuid.UUID,
    admin: Actor = require_role(UserRole.ADMIN),
    db: AsyncSession = Depends(get_db),
):
    organization = await admin_user_service.reactivate_organization_account(db, organization_id, admin)
    return APIResponse(
        status="success",
        data=OrganizationResponse.model_validate(organization).model_dump(mode="json"),
        message="Organization reactivated",
    )


# POST /organizations/{id}/reset-password — admin only
@router.post("/{organization_id}/reset-password", response_model=APIResponse)
async def reset_password(
    organization_id: uuid.UUID,
    _admin: Actor = require_role(UserRole.ADMIN),
    db: AsyncSession = Depends(get_db),
):
    temporary = await admin_user_service.reset_organization_password(db, organization_id)
    return APIResponse(status="success", data=TemporaryPasswordResponse(temporary_password=temporary).model_dump())


# DELETE /organizations/{id} — admin only
@router.delete("/{organization_id}", response_model=APIResponse)
async def delete_organization(
    organization_id: uuid.UUID,
    _admin: Actor = require_role(UserRole.ADMIN),
    db: AsyncSession = Depends(get_db),
):
    await admin_user_service.delete_organization_account(db, organization_id)
    return APIResponse(status="success", message="Organization deleted")


# POST /organizations/{id}/logo — admin or the organization itself
@router.post("/{organization_id}/logo", response_model=APIResponse)
async def upload_logo(
    organization_id: uuid.UUID,
    file: UploadFile = File(...),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
):
    if not actor.is_admin and not actor.owns(organization_id):
        raise PermissionDeniedError("Not your organization")
    data = await file.read()
    organization = await file_service.upload_logo(
        db, storage, organization_id, data, file.content_type or "", file.filename or "logo",
    )
    return APIResponse(
        status="success",
        data=OrganizationResponse.model_validate(organization).model_dump(mode="json"),
        message="Logo uploaded",
    )
