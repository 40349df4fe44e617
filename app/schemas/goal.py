"""Goal and activity schemas."""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import APIResponse


# ==================== Goals ====================

class GoalCreate(BaseModel):
    student_id: Optional[UUID] = Field(None, description="Target profile; staff only")
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = Field(None, description="academic, career, personal, skill or project")
    priority: Optional[str] = Field(None, description="low, medium, high or urgent")
    status: Optional[str] = Field(None, description="active, completed, paused or cancelled")
    target_date: Optional[str] = Field(None, description="YYYY-MM-DD")
    progress_notes: Optional[str] = None


class GoalUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None
    target_date: Optional[str] = None
    progress_notes: Optional[str] = None


class GoalResponse(BaseModel):
    id: UUID
    student_profile_id: UUID
    created_by: Optional[UUID] = None
    title: str
    description: str
    category: str
    priority: str
    status: str
    target_date: Optional[date] = None
    progress_notes: Optional[str] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GoalEnvelope(APIResponse):
    goal: GoalResponse


class GoalListResponse(APIResponse):
    goals: List[GoalResponse]
    count: int


# ==================== Activities ====================

class ActivityCreate(BaseModel):
    student_id: Optional[UUID] = Field(None, description="Target profile; staff only")
    title: Optional[str] = None
    category: Optional[str] = Field(
        None, description="academic, sports, volunteer, work, creative, leadership or other"
    )
    description: Optional[str] = None
    start_date: Optional[str] = Field(None, description="YYYY-MM-DD")
    end_date: Optional[str] = Field(None, description="YYYY-MM-DD")
    is_current: Optional[bool] = None
    hours: Optional[int] = None
    organization: Optional[str] = None
    position: Optional[str] = None
    achievements: Optional[str] = None


class ActivityUpdate(BaseModel):
    title: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_current: Optional[bool] = None
    hours: Optional[int] = None
    organization: Optional[str] = None
    position: Optional[str] = None
    achievements: Optional[str] = None


class ActivityResponse(BaseModel):
    id: UUID
    student_profile_id: UUID
    title: str
    category: str
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_current: bool = False
    hours: int = 0
    organization: Optional[str] = None
    position: Optional[str] = None
    achievements: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ActivityEnvelope(APIResponse):
    activity: ActivityResponse


class ActivityListResponse(APIResponse):
    activities: List[ActivityResponse]
    count: int
