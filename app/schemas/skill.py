"""Skill and interest schemas: catalog entries and per-student rows."""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import APIResponse
from app.schemas.profile import StudentInterestResponse, StudentSkillResponse


class CatalogSkill(BaseModel):
    id: UUID
    name: str
    category: str

    class Config:
        from_attributes = True


class CatalogInterest(BaseModel):
    id: UUID
    name: str
    category: Optional[str] = None

    class Config:
        from_attributes = True


class CatalogSkillList(APIResponse):
    skills: List[CatalogSkill]


class CatalogInterestList(APIResponse):
    interests: List[CatalogInterest]


class StudentSkillCreate(BaseModel):
    name: Optional[str] = None
    category: str = Field("technical", description="technical or soft")
    proficiency: Optional[str] = Field("beginner", description="beginner, intermediate, advanced or expert")
    years_experience: Optional[int] = 0
    verified: Optional[bool] = Field(None, description="Teacher/admin only")


class StudentSkillUpdate(BaseModel):
    proficiency: Optional[str] = None
    years_experience: Optional[int] = None
    verified: Optional[bool] = None


class StudentInterestCreate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    interest_level: Optional[str] = Field("medium", description="low, medium or high")


class StudentSkillEnvelope(APIResponse):
    skill: StudentSkillResponse
    profile_completion_percentage: int


class StudentSkillList(APIResponse):
    skills: List[StudentSkillResponse]


class StudentInterestEnvelope(APIResponse):
    interest: StudentInterestResponse
    profile_completion_percentage: int


class StudentInterestList(APIResponse):
    interests: List[StudentInterestResponse]
