import logging
from datetime import datetime
from uuid import uuid4

from fastapi.concurrency import run_in_threadpool

from drive_api.config import Settings, settings as default_settings
from drive_api.core.errors import BlobStoreError, NotFound, ValidationFailed
from drive_api.models.file import File
from drive_api.models.folder import Folder
from drive_api.models.share import Share
from drive_api.repositories.metadata_store import UNSET, ItemType, MetadataStore
from drive_api.storage.base import BlobGateway

log = logging.getLogger(__name__)


class DriveService:
    """
    Composes the metadata store and the blob gateway into the drive operations.

    Both collaborators are injected so either can be swapped for a double.
    """

    def __init__(self, store: MetadataStore, blobs: BlobGateway, settings: Settings = default_settings):
        self.store = store
        self.blobs = blobs
        self.settings = settings

    # -------------Folders -----------------

    async def create_folder(self, owner_id: str, name: str, parent_id: str | None) -> Folder:
        return await self.store.create_folder(name, parent_id, owner_id)

    async def list_folder(self, owner_id: str, folder_id: str | None) -> dict:
        folder = None
        if folder_id is not None:
            # folders in the trash, or under one, cannot be browsed
            folder = await self.store.get_visible_folder(folder_id, owner_id)

        folders, files = await self.store.list_children(folder_id, owner_id)
        return {"folder": folder, "children": {"folders": folders, "files": files}}

    async def update_folder(self, owner_id: str, folder_id: str, *, name: str | None = None, parent_id=UNSET) -> Folder:
        return await self.store.update_folder(folder_id, owner_id, name=name, parent_id=parent_id)

    # -------------Upload files -----------------

    async def init_upload(self, owner_id: str, name: str, folder_id: str | None) -> dict:
        if folder_id is not None:
            await self.store.get_visible_folder(folder_id, owner_id)

        file_id = str(uuid4())
        ticket = await run_in_threadpool(self.blobs.begin_upload, owner_id=owner_id, file_id=file_id, name=name)
        await self.store.add_pending_upload(
            file_id=file_id,
            owner_id=owner_id,
            name=name,
            folder_id=folder_id,
            storage_key=ticket.storage_key,
        )
        log.info(f"[upload] init file={file_id} key={ticket.storage_key}")

        return {
            "fileId": file_id,
            "storageKey": ticket.storage_key,
            "uploadUrl": ticket.url,
            "token": ticket.token,
        }

    async def complete_upload(
            self,
            owner_id: str,
            *,
            file_id: str,
            name: str,
            mime_type: str,
            size_bytes: int,
            folder_id: str | None,
            storage_key: str,
    ) -> File:
        pending = await self.store.get_pending_upload(file_id, owner_id)
        if pending is None:
            if await self.store.file_exists(file_id):
                raise ValidationFailed("Upload already completed")
            raise NotFound("Upload not found")

        if storage_key != pending.storage_key:
            raise ValidationFailed("Storage key does not match the initialised upload")

        if folder_id is not None:
            await self.store.get_visible_folder(folder_id, owner_id)

        if self.settings.VERIFY_UPLOADS:
            stat = await run_in_threadpool(self.blobs.stat, key=storage_key)
            size_bytes = stat.size
            mime_type = stat.content_type or mime_type

        db_file = await self.store.complete_upload(
            pending,
            name=name,
            mime_type=mime_type,
            size_bytes=size_bytes,
            folder_id=folder_id,
        )
        log.info(f"[upload] complete file={db_file.id} size={db_file.size_bytes}")
        return db_file

    # -------------Files -----------------

    async def get_download(self, owner_id: str, file_id: str) -> dict:
        db_file = await self.store.get_visible_file(file_id, owner_id)
        url = await run_in_threadpool(
            self.blobs.issue_download,
            key=db_file.storage_key,
            expires_in=self.settings.OWNER_DOWNLOAD_TTL_SECONDS,
        )
        return {"url": url, "name": db_file.name}

    async def update_file(self, owner_id: str, file_id: str, *, name: str | None = None, folder_id=UNSET) -> File:
        return await self.store.update_file(file_id, owner_id, name=name, folder_id=folder_id)

    async def delete_file(self, owner_id: str, file_id: str) -> None:
        # bytes stay in storage until the file is purged from the trash
        await self.store.soft_delete(file_id, "file", owner_id)

    async def search(self, owner_id: str, query: str) -> list[File]:
        return await self.store.search(owner_id, query)

    # -------------Trash -----------------

    async def list_trash(self, owner_id: str) -> dict:
        folders, files = await self.store.list_trash(owner_id)
        return {"folder": {"name": "Trash"}, "children": {"folders": folders, "files": files}}

    async def restore(self, owner_id: str, item_id: str, item_type: ItemType) -> None:
        await self.store.restore(item_id, item_type, owner_id)

    async def permanent_delete(self, owner_id: str, item_id: str, item_type: ItemType) -> None:
        """
        Remove an item for good. Blobs are purged before their rows go;
        a file whose purge fails keeps its row (and, for a folder, the
        folders above it) so nothing leaks unrecorded and the call can be
        retried.
        """
        if item_type == "file":
            try:
                db_file = await self.store.get_file(item_id, owner_id, include_deleted=True)
            except NotFound:
                return
            await self._purge(db_file)
            await self.store.delete_file_rows([db_file.id], owner_id)
            return

        try:
            folders, files = await self.store.folder_subtree(item_id, owner_id)
        except NotFound:
            return

        failed: list[File] = []
        purged: list[str] = []
        for db_file in files:
            try:
                await self._purge(db_file)
            except BlobStoreError:
                failed.append(db_file)
            else:
                purged.append(db_file.id)

        await self.store.delete_file_rows(purged, owner_id)

        parents = {f.id: f.parent_id for f in folders}
        keep: set[str] = set()
        for db_file in failed:
            current = db_file.folder_id
            while current is not None and current in parents and current not in keep:
                keep.add(current)
                if current == item_id:
                    break
                current = parents[current]

        await self.store.delete_folder_rows([f.id for f in folders if f.id not in keep], owner_id)

        if failed:
            raise BlobStoreError(
                f"Failed to purge {len(failed)} file(s) from storage; they remain in the trash"
            )

    async def _purge(self, db_file: File) -> None:
        try:
            await run_in_threadpool(self.blobs.purge, key=db_file.storage_key)
        except BlobStoreError:
            log.error(f"[trash] purge failed file={db_file.id} key={db_file.storage_key}, row kept")
            raise

    # -------------Sharing -----------------

    async def share(self, owner_id: str, file_id: str) -> Share:
        await self.store.get_visible_file(file_id, owner_id)
        return await self.store.create_or_get_public_share(file_id)

    async def resolve_shared_file(self, share_id: str) -> tuple[File, str]:
        file_id = await self.store.resolve_share(share_id)
        db_file = await self.store.get_shared_file(file_id)
        if db_file is None or db_file.is_deleted or await self.store.in_hidden_folder(db_file):
            raise NotFound("Link expired or invalid")

        url = await run_in_threadpool(
            self.blobs.issue_download,
            key=db_file.storage_key,
            expires_in=self.settings.PUBLIC_DOWNLOAD_TTL_SECONDS,
        )
        return db_file, url

    async def share_with_email(self, owner_id: str, file_id: str, email: str) -> Share:
        await self.store.get_visible_file(file_id, owner_id)
        return await self.store.create_targeted_share(file_id, email)

    async def shared_with_me(self, email: str) -> dict:
        files = await self.store.list_shared_with(email)
        return {"folder": {"name": "Shared with me"}, "children": {"folders": [], "files": files}}

    # -------------Maintenance -----------------

    async def sweep_stale_uploads(self, older_than: datetime) -> int:
        """Purge blobs of uploads initialised before ``older_than`` and never completed."""
        swept = 0
        for pending in await self.store.list_stale_uploads(older_than):
            try:
                await run_in_threadpool(self.blobs.purge, key=pending.storage_key)
            except BlobStoreError:
                log.error(f"[sweep] purge failed file={pending.file_id} key={pending.storage_key}")
                continue
            await self.store.delete_pending_upload(pending.file_id)
            swept += 1

        if swept:
            log.info(f"[sweep] removed {swept} abandoned upload(s)")
        return swept
