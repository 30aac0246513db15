import logging
from datetime import datetime
from typing import Literal

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from drive_api.core.errors import NotFound, ValidationFailed
from drive_api.models.file import File
from drive_api.models.folder import Folder
from drive_api.models.pending_upload import PendingUpload
from drive_api.models.share import Share

log = logging.getLogger(__name__)

ItemType = Literal["file", "folder"]

# distinguishes "move to root" (None) from "leave where it is"
UNSET = object()


class MetadataStore:
    """
    Folder, file and share records of the drive.

    Every read and write of folders and files is scoped by ``owner_id``;
    shares are the only way to reach another user's file. Mutating
    methods commit their own unit of work.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------- Folders -----------------

    async def get_folder(self, folder_id: str, owner_id: str) -> Folder:
        result = await self.session.execute(
            select(Folder).where(Folder.id == folder_id, Folder.owner_id == owner_id)
        )
        folder = result.scalar_one_or_none()
        if folder is None:
            raise NotFound("Folder not found")
        return folder

    async def get_visible_folder(self, folder_id: str, owner_id: str) -> Folder:
        """Like ``get_folder`` but a folder in the trash, or under one, is not found."""
        folder = await self.get_folder(folder_id, owner_id)
        if folder.is_deleted or await self._has_deleted_ancestor(folder):
            raise NotFound("Folder not found")
        return folder

    async def _ancestors(self, folder: Folder) -> list[Folder]:
        chain = []
        seen = {folder.id}
        parent_id = folder.parent_id
        while parent_id is not None:
            if parent_id in seen:
                raise ValidationFailed("Folder hierarchy contains a cycle")
            seen.add(parent_id)
            parent = await self.session.get(Folder, parent_id)
            if parent is None:
                break
            chain.append(parent)
            parent_id = parent.parent_id
        return chain

    async def _has_deleted_ancestor(self, folder: Folder) -> bool:
        return any(a.is_deleted for a in await self._ancestors(folder))

    async def create_folder(self, name: str, parent_id: str | None, owner_id: str) -> Folder:
        if parent_id is not None:
            await self.get_visible_folder(parent_id, owner_id)

        folder = Folder(name=name, parent_id=parent_id, owner_id=owner_id)
        self.session.add(folder)
        await self.session.commit()
        await self.session.refresh(folder)
        return folder

    async def list_children(self, folder_id: str | None, owner_id: str) -> tuple[list[Folder], list[File]]:
        folder_query = select(Folder).where(Folder.owner_id == owner_id, Folder.is_deleted.is_(False))
        file_query = select(File).where(File.owner_id == owner_id, File.is_deleted.is_(False))

        if folder_id is None:
            folder_query = folder_query.where(Folder.parent_id.is_(None))
            file_query = file_query.where(File.folder_id.is_(None))
        else:
            folder_query = folder_query.where(Folder.parent_id == folder_id)
            file_query = file_query.where(File.folder_id == folder_id)

        folders = await self.session.execute(folder_query.order_by(Folder.name))
        files = await self.session.execute(file_query.order_by(File.name))
        return list(folders.scalars().all()), list(files.scalars().all())

    async def update_folder(self, folder_id: str, owner_id: str, *, name: str | None = None, parent_id=UNSET) -> Folder:
        folder = await self.get_folder(folder_id, owner_id)

        if parent_id is not UNSET and parent_id != folder.parent_id:
            if parent_id is not None:
                if parent_id == folder.id:
                    raise ValidationFailed("A folder cannot be moved into itself")
                new_parent = await self.get_visible_folder(parent_id, owner_id)
                if folder.id in {a.id for a in await self._ancestors(new_parent)}:
                    raise ValidationFailed("A folder cannot be moved into its own descendant")
            folder.parent_id = parent_id

        if name is not None:
            folder.name = name

        await self.session.commit()
        return folder

    async def hidden_folder_ids(self, owner_id: str) -> set[str]:
        """Ids of the owner's folders that are deleted or sit under a deleted folder."""
        result = await self.session.execute(
            select(Folder.id, Folder.parent_id, Folder.is_deleted).where(Folder.owner_id == owner_id)
        )
        rows = {row.id: (row.parent_id, row.is_deleted) for row in result}

        hidden: dict[str, bool] = {}

        def resolve(folder_id: str) -> bool:
            path = []
            current = folder_id
            verdict = False
            while current is not None and current in rows:
                if current in hidden:
                    verdict = hidden[current]
                    break
                if current in path:
                    break
                path.append(current)
                parent_id, is_deleted = rows[current]
                if is_deleted:
                    verdict = True
                    break
                current = parent_id
            for visited in path:
                hidden[visited] = verdict
            return verdict

        return {folder_id for folder_id in rows if resolve(folder_id)}

    async def folder_subtree(self, folder_id: str, owner_id: str) -> tuple[list[Folder], list[File]]:
        """The folder, all its descendant folders and every file inside them."""
        root = await self.get_folder(folder_id, owner_id)
        folders = [root]
        seen = {root.id}
        frontier = [root.id]
        while frontier:
            result = await self.session.execute(
                select(Folder).where(Folder.owner_id == owner_id, Folder.parent_id.in_(frontier))
            )
            children = [f for f in result.scalars().all() if f.id not in seen]
            seen.update(f.id for f in children)
            folders.extend(children)
            frontier = [f.id for f in children]

        files = await self.session.execute(
            select(File).where(File.owner_id == owner_id, File.folder_id.in_([f.id for f in folders]))
        )
        return folders, list(files.scalars().all())

    # ------------- Files -----------------

    async def get_file(self, file_id: str, owner_id: str, *, include_deleted: bool = False) -> File:
        query = select(File).where(File.id == file_id, File.owner_id == owner_id)
        if not include_deleted:
            query = query.where(File.is_deleted.is_(False))
        result = await self.session.execute(query)
        db_file = result.scalar_one_or_none()
        if db_file is None:
            raise NotFound("File not found")
        return db_file

    async def get_visible_file(self, file_id: str, owner_id: str) -> File:
        """Like ``get_file`` but a file under a folder in the trash is not found."""
        db_file = await self.get_file(file_id, owner_id)
        if await self.in_hidden_folder(db_file):
            raise NotFound("File not found")
        return db_file

    async def in_hidden_folder(self, db_file: File) -> bool:
        if db_file.folder_id is None:
            return False
        folder = await self.session.get(Folder, db_file.folder_id)
        if folder is None:
            return False
        return folder.is_deleted or await self._has_deleted_ancestor(folder)

    async def file_exists(self, file_id: str) -> bool:
        return await self.session.get(File, file_id) is not None

    async def update_file(self, file_id: str, owner_id: str, *, name: str | None = None, folder_id=UNSET) -> File:
        db_file = await self.get_file(file_id, owner_id)

        if folder_id is not UNSET and folder_id != db_file.folder_id:
            if folder_id is not None:
                await self.get_visible_folder(folder_id, owner_id)
            db_file.folder_id = folder_id

        # storage_key stays as issued at init
        if name is not None:
            db_file.name = name

        await self.session.commit()
        return db_file

    async def search(self, owner_id: str, query: str) -> list[File]:
        result = await self.session.execute(
            select(File)
            .where(
                File.owner_id == owner_id,
                File.is_deleted.is_(False),
                File.name.icontains(query, autoescape=True),
            )
            .order_by(File.name)
        )
        files = result.scalars().all()
        hidden = await self.hidden_folder_ids(owner_id)
        return [f for f in files if f.folder_id not in hidden]

    # ------------- Trash -----------------

    async def _get_item(self, item_id: str, item_type: ItemType, owner_id: str) -> Folder | File:
        if item_type == "folder":
            return await self.get_folder(item_id, owner_id)
        return await self.get_file(item_id, owner_id, include_deleted=True)

    async def soft_delete(self, item_id: str, item_type: ItemType, owner_id: str) -> None:
        item = await self._get_item(item_id, item_type, owner_id)
        item.is_deleted = True
        await self.session.commit()

    async def restore(self, item_id: str, item_type: ItemType, owner_id: str) -> None:
        item = await self._get_item(item_id, item_type, owner_id)
        item.is_deleted = False
        await self.session.commit()

    async def list_trash(self, owner_id: str) -> tuple[list[Folder], list[File]]:
        folders = await self.session.execute(
            select(Folder).where(Folder.owner_id == owner_id, Folder.is_deleted.is_(True)).order_by(Folder.name)
        )
        files = await self.session.execute(
            select(File).where(File.owner_id == owner_id, File.is_deleted.is_(True)).order_by(File.name)
        )
        return list(folders.scalars().all()), list(files.scalars().all())

    async def delete_file_rows(self, file_ids: list[str], owner_id: str) -> None:
        if not file_ids:
            return
        await self.session.execute(delete(Share).where(Share.file_id.in_(file_ids)))
        await self.session.execute(delete(File).where(File.id.in_(file_ids), File.owner_id == owner_id))
        await self.session.commit()

    async def delete_folder_rows(self, folder_ids: list[str], owner_id: str) -> None:
        if not folder_ids:
            return
        await self.session.execute(delete(Folder).where(Folder.id.in_(folder_ids), Folder.owner_id == owner_id))
        await self.session.commit()

    # ------------- Shares -----------------

    async def get_public_share(self, file_id: str) -> Share | None:
        result = await self.session.execute(
            select(Share).where(Share.file_id == file_id, Share.is_public.is_(True))
        )
        return result.scalar_one_or_none()

    async def create_or_get_public_share(self, file_id: str) -> Share:
        share = await self.get_public_share(file_id)
        if share is not None:
            return share

        share = Share(file_id=file_id, is_public=True)
        self.session.add(share)
        try:
            await self.session.commit()
        except IntegrityError:
            # a concurrent request created the link first
            await self.session.rollback()
            existing = await self.get_public_share(file_id)
            if existing is None:
                raise
            log.info(f"[share] public share for file={file_id} created concurrently, reusing {existing.id}")
            return existing

        log.info(f"[share] created public share={share.id} file={file_id}")
        return share

    async def create_targeted_share(self, file_id: str, email: str) -> Share:
        share = Share(file_id=file_id, is_public=False, grantee_email=email.lower())
        self.session.add(share)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ValidationFailed(f"File is already shared with {email}")

        log.info(f"[share] shared file={file_id} with {share.grantee_email}")
        return share

    async def resolve_share(self, share_id: str) -> str:
        result = await self.session.execute(
            select(Share.file_id).where(Share.id == share_id, Share.is_public.is_(True))
        )
        file_id = result.scalar_one_or_none()
        if file_id is None:
            raise NotFound("Link expired or invalid")
        return file_id

    async def get_shared_file(self, file_id: str) -> File | None:
        # reached through a share, so deliberately not owner scoped
        return await self.session.get(File, file_id)

    async def list_shared_with(self, email: str) -> list[File]:
        result = await self.session.execute(
            select(File)
            .join(Share, Share.file_id == File.id)
            .where(Share.grantee_email == email.lower(), File.is_deleted.is_(False))
            .order_by(File.name)
        )
        files = result.scalars().unique().all()
        return [f for f in files if not await self.in_hidden_folder(f)]

    # ------------- Pending uploads -----------------

    async def add_pending_upload(
            self, *, file_id: str, owner_id: str, name: str, folder_id: str | None, storage_key: str
    ) -> PendingUpload:
        pending = PendingUpload(
            file_id=file_id,
            owner_id=owner_id,
            name=name,
            folder_id=folder_id,
            storage_key=storage_key,
        )
        self.session.add(pending)
        await self.session.commit()
        return pending

    async def get_pending_upload(self, file_id: str, owner_id: str) -> PendingUpload | None:
        result = await self.session.execute(
            select(PendingUpload).where(PendingUpload.file_id == file_id, PendingUpload.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def complete_upload(
            self,
            pending: PendingUpload,
            *,
            name: str,
            mime_type: str,
            size_bytes: int,
            folder_id: str | None,
    ) -> File:
        """Insert the file row and drop the pending upload in one transaction."""
        db_file = File(
            id=pending.file_id,
            owner_id=pending.owner_id,
            name=name,
            mime_type=mime_type,
            size_bytes=size_bytes,
            storage_key=pending.storage_key,
            folder_id=folder_id,
        )
        self.session.add(db_file)
        try:
            await self.session.execute(delete(PendingUpload).where(PendingUpload.file_id == pending.file_id))
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise ValidationFailed("Upload already completed")
        return db_file

    async def list_stale_uploads(self, older_than: datetime) -> list[PendingUpload]:
        result = await self.session.execute(
            select(PendingUpload).where(PendingUpload.created_at < older_than).order_by(PendingUpload.created_at)
        )
        return list(result.scalars().all())

    async def delete_pending_upload(self, file_id: str) -> None:
        await self.session.execute(delete(PendingUpload).where(PendingUpload.file_id == file_id))
        await self.session.commit()
