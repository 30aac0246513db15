from fastapi import APIRouter, Depends, Query

from drive_api.core.deps import get_current_user, get_drive_service
from drive_api.core.security import Identity
from drive_api.schemas.file import FileResponse
from drive_api.services.drive_service import DriveService

router = APIRouter(tags=["Search"])


@router.get("/search", response_model=list[FileResponse])
async def search_files(
    q: str = Query(..., min_length=1),
    user: Identity = Depends(get_current_user),
    drive: DriveService = Depends(get_drive_service),
):
    return await drive.search(user.user_id, q)
