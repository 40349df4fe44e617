"""Staff analytics responses."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from app.schemas.common import APIResponse
from app.schemas.student import StudentDetailResponse


class AnalyticsResponse(APIResponse):
    class_id: Optional[UUID] = None
    analytics: Dict[str, Any]


class StudentAnalyticsResponse(StudentDetailResponse):
    survey_responses: List[Dict[str, Any]] = []
