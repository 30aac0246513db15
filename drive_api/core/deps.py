from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from drive_api.config import settings
from drive_api.core.security import Identity, IdentityGate, JwtIdentityGate
from drive_api.database import get_async_session
from drive_api.repositories.metadata_store import MetadataStore
from drive_api.services.drive_service import DriveService
from drive_api.storage.base import BlobGateway
from drive_api.storage.s3 import S3Storage

bearer_scheme = HTTPBearer(auto_error=False)


def get_identity_gate() -> IdentityGate:
    return JwtIdentityGate(settings.SECRET_KEY, settings.ALGORITHM, settings.JWT_AUDIENCE)


@lru_cache
def get_blob_gateway() -> BlobGateway:
    return S3Storage()


async def get_current_user(
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
        gate: IdentityGate = Depends(get_identity_gate),
) -> Identity:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")

    return gate.verify(credentials.credentials)


def get_metadata_store(session: AsyncSession = Depends(get_async_session)) -> MetadataStore:
    return MetadataStore(session)


def get_drive_service(
        store: MetadataStore = Depends(get_metadata_store),
        blobs: BlobGateway = Depends(get_blob_gateway),
) -> DriveService:
    return DriveService(store, blobs)
