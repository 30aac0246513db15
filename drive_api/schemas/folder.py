from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

from drive_api.schemas.file import FileResponse, RequestModel, check_item_name


class FolderCreate(RequestModel):
    name: str = Field(max_length=255)
    parent_id: str | None = Field(default=None, alias="parentId")

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return check_item_name(value)


class FolderUpdate(RequestModel):
    name: str | None = Field(default=None, max_length=255)
    parent_id: str | None = Field(default=None, alias="parentId")

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str | None) -> str | None:
        return None if value is None else check_item_name(value)


class FolderResponse(BaseModel):
    id: str
    name: str
    parent_id: str | None = None
    owner_id: str
    is_deleted: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class FolderLabel(BaseModel):
    name: str


class FolderChildren(BaseModel):
    folders: list[FolderResponse]
    files: list[FileResponse]


class FolderListing(BaseModel):
    folder: FolderResponse | FolderLabel | None = None
    children: FolderChildren


class RestoreRequest(RequestModel):
    id: str
    type: Literal["file", "folder"]


class Success(BaseModel):
    success: bool = True
