from fastapi import APIRouter, Depends

from drive_api.core.deps import get_current_user, get_drive_service
from drive_api.core.security import Identity
from drive_api.schemas.file import FileResponse, SharedFileResponse
from drive_api.schemas.folder import FolderListing
from drive_api.services.drive_service import DriveService

router = APIRouter(tags=["Sharing"])


# public access, no credentials: the share id is the capability
@router.get("/shared/{share_id}", response_model=SharedFileResponse)
async def resolve_shared_file(
    share_id: str,
    drive: DriveService = Depends(get_drive_service),
):
    db_file, url = await drive.resolve_shared_file(share_id)
    return SharedFileResponse(
        **FileResponse.model_validate(db_file).model_dump(),
        url=url,
    )


@router.get("/shared-with-me", response_model=FolderListing)
async def shared_with_me(
    user: Identity = Depends(get_current_user),
    drive: DriveService = Depends(get_drive_service),
):
    return await drive.shared_with_me(user.email)
