from fastapi import APIRouter, Depends, status

from drive_api.core.deps import get_current_user, get_drive_service
from drive_api.core.security import Identity
from drive_api.repositories.metadata_store import UNSET
from drive_api.schemas.file import (
    CompleteUploadRequest,
    DownloadURL,
    FileResponse,
    FileUpdate,
    InitUploadRequest,
    InitUploadResponse,
)
from drive_api.schemas.folder import Success
from drive_api.schemas.share import PublicShareResponse, ShareEmailRequest, ShareResponse
from drive_api.services.drive_service import DriveService


router = APIRouter(
    prefix="/files",
    tags=["Files"]
)

# -------------Upload files -----------------

@router.post("/init", response_model=InitUploadResponse)
async def init_upload(
    payload: InitUploadRequest,
    user: Identity = Depends(get_current_user),
    drive: DriveService = Depends(get_drive_service),
):
    return await drive.init_upload(user.user_id, payload.name, payload.folder_id)


@router.post("/complete", response_model=FileResponse, status_code=status.HTTP_201_CREATED)
async def complete_upload(
    payload: CompleteUploadRequest,
    user: Identity = Depends(get_current_user),
    drive: DriveService = Depends(get_drive_service),
):
    return await drive.complete_upload(
        user.user_id,
        file_id=payload.file_id,
        name=payload.name,
        mime_type=payload.mime_type,
        size_bytes=payload.size_bytes,
        folder_id=payload.folder_id,
        storage_key=payload.storage_key,
    )

#-----------Download url------------------

@router.get("/{file_id}", response_model=DownloadURL)
async def download_url(
    file_id: str,
    user: Identity = Depends(get_current_user),
    drive: DriveService = Depends(get_drive_service),
):
    return await drive.get_download(user.user_id, file_id)

#-----------Rename / move-------------

@router.patch("/{file_id}", response_model=FileResponse)
async def update_file(
    file_id: str,
    payload: FileUpdate,
    user: Identity = Depends(get_current_user),
    drive: DriveService = Depends(get_drive_service),
):
    folder_id = payload.folder_id if "folder_id" in payload.model_fields_set else UNSET
    return await drive.update_file(user.user_id, file_id, name=payload.name, folder_id=folder_id)

#-----------Delete-------------

@router.delete("/{file_id}", response_model=Success)
async def delete_file(
    file_id: str,
    user: Identity = Depends(get_current_user),
    drive: DriveService = Depends(get_drive_service),
):
    await drive.delete_file(user.user_id, file_id)
    return Success()

#-----------Sharing--------------------

@router.post("/{file_id}/share", response_model=PublicShareResponse)
async def share_file(
    file_id: str,
    user: Identity = Depends(get_current_user),
    drive: DriveService = Depends(get_drive_service),
):
    share = await drive.share(user.user_id, file_id)
    return PublicShareResponse(shareId=share.id, isPublic=share.is_public)


@router.post("/{file_id}/share-email", response_model=ShareResponse, status_code=status.HTTP_201_CREATED)
async def share_with_email(
    file_id: str,
    payload: ShareEmailRequest,
    user: Identity = Depends(get_current_user),
    drive: DriveService = Depends(get_drive_service),
):
    return await drive.share_with_email(user.user_id, file_id, payload.email)
