import os
import tempfile
from pathlib import Path

import pytest

_TMP_DIR = Path(tempfile.mkdtemp(prefix="drive-api-tests-"))
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ALGORITHM"] = "HS256"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR / 'unused.db'}"
os.environ.pop("JWT_AUDIENCE", None)
os.environ.pop("VERIFY_UPLOADS", None)

from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from drive_api.core.deps import get_blob_gateway
from drive_api.core.errors import BlobStoreError, NotFound
from drive_api.core.security import create_access_token
from drive_api.database import Base, get_async_session
from drive_api.main import app
from drive_api.models import file, folder, pending_upload, share  # noqa: F401
from drive_api.repositories.metadata_store import MetadataStore
from drive_api.services.drive_service import DriveService
from drive_api.storage.base import BlobGateway, BlobStat, UploadTicket


class FakeBlobGateway(BlobGateway):
    """In-memory object store recording every capability it hands out."""

    def __init__(self):
        self.objects: dict[str, BlobStat] = {}
        self.purged: list[str] = []
        self.failing_keys: set[str] = set()

    def put(self, key: str, size: int, content_type: str | None = None) -> None:
        # what the client does with the presigned upload URL
        self.objects[key] = BlobStat(size=size, content_type=content_type)

    def begin_upload(self, *, owner_id, file_id, name):
        key = self.storage_key_for(owner_id, file_id, name)
        return UploadTicket(storage_key=key, url=f"https://blobs.test/upload/{key}", token=None, expires_in=900)

    def issue_download(self, *, key, expires_in):
        return f"https://blobs.test/{key}?expires_in={expires_in}"

    def stat(self, *, key):
        if key not in self.objects:
            raise NotFound("Object not found in storage")
        return self.objects[key]

    def purge(self, *, key):
        if key in self.failing_keys:
            raise BlobStoreError(f"Failed to delete object {key}: simulated outage")
        self.objects.pop(key, None)
        self.purged.append(key)


@pytest.fixture
async def engine(tmp_path):
    # NullPool: no connection outlives the event loop that opened it
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'drive.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def blobs():
    return FakeBlobGateway()


@pytest.fixture
def store(session):
    return MetadataStore(session)


@pytest.fixture
def drive(store, blobs):
    return DriveService(store, blobs)


@pytest.fixture
def upload(blobs):
    """Run the two-phase upload for ``owner_id`` and return the completed file."""

    async def _upload(drive, owner_id, name, folder_id=None, size=1024, mime_type="application/pdf"):
        ticket = await drive.init_upload(owner_id, name, folder_id)
        blobs.put(ticket["storageKey"], size, mime_type)
        return await drive.complete_upload(
            owner_id,
            file_id=ticket["fileId"],
            name=name,
            mime_type=mime_type,
            size_bytes=size,
            folder_id=folder_id,
            storage_key=ticket["storageKey"],
        )

    return _upload


@pytest.fixture
def client(session_maker, blobs):
    async def override_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_session
    app.dependency_overrides[get_blob_gateway] = lambda: blobs
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user_id: str, email: str | None = None) -> dict:
        token = create_access_token(user_id, email or f"{user_id}@example.com")
        return {"Authorization": f"Bearer {token}"}

    return _headers
