from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class UploadTicket:
    storage_key: str
    url: str
    token: str | None
    expires_in: int


@dataclass(frozen=True)
class BlobStat:
    size: int
    content_type: str | None


class BlobGateway(ABC):
    """
    Object store seen by the drive: it hands out presigned capabilities
    and removes objects, the bytes never pass through the service.
    """

    @staticmethod
    def storage_key_for(owner_id: str, file_id: str, name: str) -> str:
        # namespaced per owner so keys never collide across users
        return f"users/{owner_id}/{file_id}-{name}"

    @abstractmethod
    def begin_upload(self, *, owner_id: str, file_id: str, name: str) -> UploadTicket:
        """Derive the storage key and issue a short-lived write capability for it."""

    @abstractmethod
    def issue_download(self, *, key: str, expires_in: int) -> str:
        """Return a time-limited read URL for ``key``."""

    @abstractmethod
    def stat(self, *, key: str) -> BlobStat:
        """Size and content type of a stored object, ``NotFound`` if absent."""

    @abstractmethod
    def purge(self, *, key: str) -> None:
        """Physically delete ``key``. Deleting a missing object succeeds."""
