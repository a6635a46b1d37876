"""Palette API - site colour palette document."""
from fastapi import APIRouter, Body, Depends, File, UploadFile
from fastapi.responses import Response

from app.dependencies import get_storage, require_role
from app.models.user import UserRole
from app.schemas.common import APIResponse
from app.services import palette_service
from app.services.permission_service import Actor
from app.services.storage_service import ObjectStorage

router = APIRouter()


# GET /palette — public
@router.get("", response_model=APIResponse)
async def get_palette(storage: ObjectStorage = Depends(get_storage)):
    return APIResponse(status="success", data=await palette_service.get_palette(storage))


# PUT /palette — admin only
@router.put("", response_model=APIResponse)
async def update_palette(
    palette: dict = Body(...),
    admin: Actor = require_role(UserRole.ADMIN),
    storage: ObjectStorage = Depends(get_storage),
):
    saved = await palette_service.update_palette(storage, palette, str(admin.id))
    return APIResponse(status="success", data=saved, message="Palette updated")


# POST /palette/upload — admin only
@router.post("/upload", response_model=APIResponse)
async def upload_palette(
    file: UploadFile = File(...),
    admin: Actor = require_role(UserRole.ADMIN),
    storage: ObjectStorage = Depends(get_storage),
):
    saved = await palette_service.upload_palette_file(storage, await file.read(), str(admin.id))
    return APIResponse(status="success", data=saved, message="Palette uploaded")


# GET /palette/export
@router.get("/export")
async def export_palette(storage: ObjectStorage = Depends(get_storage)):
    return Response(
        content=await palette_service.export_palette(storage),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="color-palette.json"'},
    )
