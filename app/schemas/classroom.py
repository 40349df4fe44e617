"""Class schemas."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import APIResponse
from app.schemas.profile import StudentListItem


class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class ClassUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class ClassResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    class_code: str
    teacher_id: UUID
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ClassEnvelope(APIResponse):
    class_: ClassResponse = Field(..., alias="class")

    class Config:
        populate_by_name = True


class ClassListResponse(APIResponse):
    classes: List[ClassResponse]


class ClassDetailResponse(ClassEnvelope):
    students: List[StudentListItem] = []
