"""Uploaded file schemas."""

from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field

from app.schemas.common import APIResponse


class UploadedFileResponse(BaseModel):
    id: UUID
    filename: str = Field(..., validation_alias=AliasChoices("original_filename", "filename"))
    file_type: str
    file_size: int
    category: str
    created_at: datetime

    class Config:
        from_attributes = True


class FileEnvelope(APIResponse):
    file: UploadedFileResponse


class FileListResponse(APIResponse):
    files: List[UploadedFileResponse]
