from fastapi import APIRouter, Depends, status

from drive_api.core.deps import get_current_user, get_drive_service
from drive_api.core.security import Identity
from drive_api.repositories.metadata_store import UNSET
from drive_api.schemas.folder import FolderCreate, FolderListing, FolderResponse, FolderUpdate
from drive_api.services.drive_service import DriveService

router = APIRouter(
    prefix="/folders",
    tags=["Folders"]
)


@router.post("", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
async def create_folder(
    payload: FolderCreate,
    user: Identity = Depends(get_current_user),
    drive: DriveService = Depends(get_drive_service),
):
    return await drive.create_folder(user.user_id, payload.name, payload.parent_id)


# pass "root" as the id for the top level
@router.get("/{folder_id}", response_model=FolderListing)
async def list_folder(
    folder_id: str,
    user: Identity = Depends(get_current_user),
    drive: DriveService = Depends(get_drive_service),
):
    return await drive.list_folder(user.user_id, None if folder_id == "root" else folder_id)


@router.patch("/{folder_id}", response_model=FolderResponse)
async def update_folder(
    folder_id: str,
    payload: FolderUpdate,
    user: Identity = Depends(get_current_user),
    drive: DriveService = Depends(get_drive_service),
):
    parent_id = payload.parent_id if "parent_id" in payload.model_fields_set else UNSET
    return await drive.update_folder(user.user_id, folder_id, name=payload.name, parent_id=parent_id)
