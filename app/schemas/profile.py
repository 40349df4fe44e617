"""Student profile schemas."""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.auth import UserResponse
from app.schemas.common import APIResponse, Pagination


class SkillItem(BaseModel):
    name: str
    proficiency: str = "beginner"


class ProfileUpdate(BaseModel):
    """
    Full profile payload for PUT /users/profile and PUT /students/{id}.

    Only fields that are sent are applied; skill and interest lists, when
    sent, replace the stored lists.
    """

    # User fields
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    # Academic
    student_id_num: Optional[str] = None
    year_level: Optional[str] = Field(None, description="Freshman, Sophomore, Junior, Senior or Graduate")
    major: Optional[str] = None
    date_of_birth: Optional[str] = Field(None, description="YYYY-MM-DD")
    bio: Optional[str] = None

    # Goals
    short_term_goals: Optional[str] = None
    long_term_goals: Optional[str] = None
    career_aspirations: Optional[str] = None

    # Links
    linkedin_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    github_url: Optional[str] = None

    technical_skills: Optional[List[SkillItem]] = None
    soft_skills: Optional[List[SkillItem]] = None
    interests: Optional[List[str]] = None


class StudentSkillResponse(BaseModel):
    id: UUID = Field(..., description="Catalog skill id")
    name: str
    category: str
    proficiency_level: str
    years_experience: int = 0
    verified: bool = False


class StudentInterestResponse(BaseModel):
    id: UUID = Field(..., description="Catalog interest id")
    name: str
    category: Optional[str] = None
    interest_level: str


class StudentProfileResponse(BaseModel):
    id: UUID
    user_id: UUID
    student_id_num: Optional[str] = None
    year_level: Optional[str] = None
    major: Optional[str] = None
    date_of_birth: Optional[date] = None
    bio: Optional[str] = None
    short_term_goals: Optional[str] = None
    long_term_goals: Optional[str] = None
    career_aspirations: Optional[str] = None
    linkedin_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    github_url: Optional[str] = None
    profile_completion_percentage: int = 0
    profile_photo_id: Optional[UUID] = None
    technical_skills: List[StudentSkillResponse] = []
    soft_skills: List[StudentSkillResponse] = []
    interests: List[StudentInterestResponse] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserProfileResponse(APIResponse):
    user: UserResponse
    profile: Optional[StudentProfileResponse] = None


class StudentListItem(BaseModel):
    id: UUID
    user_id: UUID
    first_name: str
    last_name: str
    email: str
    year_level: Optional[str] = None
    major: Optional[str] = None
    profile_completion_percentage: int = 0


class StudentListResponse(APIResponse):
    students: List[StudentListItem]
    pagination: Pagination
