"""Group schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import APIResponse, Pagination


class GroupCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    project: Optional[str] = None
    max_size: Optional[int] = 4
    status: Optional[str] = "active"
    formation_criteria: Optional[Dict[str, Any]] = None
    member_ids: List[UUID] = Field(default_factory=list, description="Student profile ids")


class GroupUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    project: Optional[str] = None
    max_size: Optional[int] = None
    status: Optional[str] = None
    member_ids: Optional[List[UUID]] = Field(None, description="Replaces the member list when sent")


class GroupMemberResponse(BaseModel):
    student_profile_id: UUID
    first_name: str
    last_name: str
    year_level: Optional[str] = None
    major: Optional[str] = None
    profile_completion_percentage: int = 0
    role: Optional[str] = None


class GroupResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    project: Optional[str] = None
    max_size: int
    status: str
    formation_criteria: Optional[Dict[str, Any]] = None
    created_by: Optional[UUID] = None
    created_at: datetime
    members: List[GroupMemberResponse] = []
    quality_score: Optional[int] = None
    analysis: Optional[Dict[str, Any]] = None


class GroupEnvelope(APIResponse):
    group: GroupResponse


class GroupListResponse(APIResponse):
    groups: List[GroupResponse]
    pagination: Pagination


class GroupScoreRequest(BaseModel):
    groups: List[List[UUID]] = Field(..., min_length=1, description="Rosters of student profile ids")


class GroupScore(BaseModel):
    members: List[UUID]
    quality_score: int
    interest_overlap: int
    breakdown: Dict[str, float]
    analysis: Dict[str, Any]


class GroupScoreResponse(APIResponse):
    groups: List[GroupScore]
    summary: Dict[str, Any]


class FormedGroup(BaseModel):
    name: Optional[str] = None
    member_ids: List[UUID]


class GroupBatchCreate(BaseModel):
    """Groups formed by a client-side algorithm, persisted as-is."""

    algorithm: str = Field(..., min_length=1, max_length=100)
    project: Optional[str] = None
    max_size: Optional[int] = 4
    groups: List[FormedGroup] = Field(..., min_length=1)


class GroupBatchResponse(APIResponse):
    groups: List[GroupResponse]
    summary: Dict[str, Any]
