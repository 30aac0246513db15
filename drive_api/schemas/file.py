from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from pydantic.config import ConfigDict


def check_item_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("name must not be empty")
    if "/" in value or "\x00" in value:
        raise ValueError("name must not contain '/' or NUL characters")
    return value


class RequestModel(BaseModel):
    # unknown fields are rejected instead of silently dropped
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class InitUploadRequest(RequestModel):
    name: str = Field(max_length=255)
    folder_id: str | None = Field(default=None, alias="folderId")

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return check_item_name(value)


class CompleteUploadRequest(RequestModel):
    file_id: str = Field(alias="fileId")
    name: str = Field(max_length=255)
    mime_type: str = Field(min_length=1, max_length=255, alias="mimeType")
    size_bytes: int = Field(ge=0, alias="sizeBytes")
    folder_id: str | None = Field(default=None, alias="folderId")
    storage_key: str = Field(alias="storageKey")

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return check_item_name(value)


class FileUpdate(RequestModel):
    name: str | None = Field(default=None, max_length=255)
    folder_id: str | None = Field(default=None, alias="folderId")

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str | None) -> str | None:
        return None if value is None else check_item_name(value)


class FileResponse(BaseModel):
    id: str
    name: str
    mime_type: str
    size_bytes: int
    storage_key: str
    folder_id: str | None = None
    owner_id: str
    is_deleted: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SharedFileResponse(FileResponse):
    url: str


class InitUploadResponse(BaseModel):
    fileId: str
    storageKey: str
    uploadUrl: str
    token: str | None = None


class DownloadURL(BaseModel):
    url: str
    name: str
