"""Survey schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.schemas.common import APIResponse


class QuestionIn(BaseModel):
    question_text: Optional[str] = None
    question_type: Optional[str] = None
    is_required: bool = False
    options: Optional[List[str]] = None


class SurveyTemplateCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    template_type: Optional[str] = "general"
    questions: Optional[List[QuestionIn]] = None


class SurveyTemplateUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    template_type: Optional[str] = None
    is_active: Optional[bool] = None
    questions: Optional[List[QuestionIn]] = Field(None, description="Replaces all questions when sent")


class QuestionResponse(BaseModel):
    id: UUID
    position: int
    question_text: str
    question_type: str
    is_required: bool
    options: Optional[List[str]] = None

    class Config:
        from_attributes = True


class SurveyTemplateResponse(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    template_type: str
    created_by: UUID
    is_active: bool
    created_at: datetime
    questions: List[QuestionResponse] = []


class SurveyTemplateEnvelope(APIResponse):
    template: SurveyTemplateResponse


class SurveyTemplateList(APIResponse):
    templates: List[SurveyTemplateResponse]


class SurveyAnswerSubmit(BaseModel):
    responses: Dict[str, Any] = Field(default_factory=dict, description="Answers keyed by question id")
    completion_status: str = Field("completed", description="in_progress or completed")


class SurveyResponseOut(BaseModel):
    id: UUID
    template_id: UUID
    student_profile_id: UUID
    responses: Dict[str, Any]
    completion_status: str
    completed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SurveyResponseEnvelope(APIResponse):
    response: SurveyResponseOut


class SurveyResponseList(APIResponse):
    responses: List[SurveyResponseOut]


class AvailableSurvey(BaseModel):
    id: UUID
    title: str
    description: Optional[str] = None
    template_type: str
    question_count: int
    response_status: Optional[str] = Field(None, description="None when not started")


class AvailableSurveyList(APIResponse):
    surveys: List[AvailableSurvey]
