from typing import Literal

from fastapi import APIRouter, Depends, Query

from drive_api.core.deps import get_current_user, get_drive_service
from drive_api.core.security import Identity
from drive_api.schemas.folder import FolderListing, RestoreRequest, Success
from drive_api.services.drive_service import DriveService

router = APIRouter(
    prefix="/trash",
    tags=["Trash"]
)


@router.get("", response_model=FolderListing)
async def list_trash(
    user: Identity = Depends(get_current_user),
    drive: DriveService = Depends(get_drive_service),
):
    return await drive.list_trash(user.user_id)


@router.post("/restore", response_model=Success)
async def restore_item(
    payload: RestoreRequest,
    user: Identity = Depends(get_current_user),
    drive: DriveService = Depends(get_drive_service),
):
    await drive.restore(user.user_id, payload.id, payload.type)
    return Success()


@router.delete("/{item_id}", response_model=Success)
async def permanent_delete(
    item_id: str,
    item_type: Literal["file", "folder"] = Query(..., alias="type"),
    user: Identity = Depends(get_current_user),
    drive: DriveService = Depends(get_drive_service),
):
    await drive.permanent_delete(user.user_id, item_id, item_type)
    return Success()
