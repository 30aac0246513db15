from datetime import datetime

from pydantic import BaseModel, EmailStr
from pydantic.config import ConfigDict

from drive_api.schemas.file import RequestModel


class ShareEmailRequest(RequestModel):
    email: EmailStr


class PublicShareResponse(BaseModel):
    shareId: str
    isPublic: bool


class ShareResponse(BaseModel):
    id: str
    file_id: str
    is_public: bool
    grantee_email: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
