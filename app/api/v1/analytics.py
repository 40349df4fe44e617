"""
Staff analytics API (Teacher/Admin)
- Every view can be narrowed to one class with ``class_id``
- Teachers may only narrow to classes they own
- Survey figures cover the caller's own templates (admins: all templates)
"""

import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, ensure_class_scope, get_cache, require_staff
from app.api.v1.students import build_student_detail, load_student
from app.config import settings
from app.core.cache import CacheManager, dashboard_cache_key
from app.core.exceptions import NotFoundError
from app.core.security import Role
from app.db.session import get_db
from app.models.classroom import ClassEnrollment
from app.models.survey import SurveyResponse, SurveyTemplate
from app.schemas.analytics import AnalyticsResponse, StudentAnalyticsResponse
from app.services import analytics

logger = structlog.get_logger(__name__)

router = APIRouter()


class ClassScope:
    """Resolved ``class_id`` filter plus the caller it was checked for."""

    def __init__(self, caller: CurrentUser, class_id: Optional[uuid.UUID]):
        self.caller = caller
        self.class_id = class_id

    @property
    def template_owner(self) -> Optional[uuid.UUID]:
        return None if self.caller.role == Role.ADMIN else self.caller.id


async def class_scope(
    class_id: Optional[uuid.UUID] = Query(None, description="Only students enrolled in this class"),
    caller: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> ClassScope:
    return ClassScope(caller, await ensure_class_scope(db, caller, class_id))


# ==================== Overview ====================

@router.get("/dashboard", response_model=AnalyticsResponse)
async def dashboard(
    scope: ClassScope = Depends(class_scope),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    """
    Overview counts, recent student activity, top skills, goal progress
    and survey completion

    **RBAC**: Teacher, Admin

    Cached briefly per caller and class.
    """
    cache_key = dashboard_cache_key(scope.caller.id, scope.class_id)
    cached = cache.get(cache_key)
    if cached is not None:
        return AnalyticsResponse(class_id=scope.class_id, analytics=cached)

    data = await analytics.dashboard_analytics(db, scope.template_owner, scope.class_id)
    cache.set(cache_key, data, ttl=settings.CACHE_ANALYTICS_TTL)
    logger.info("dashboard_computed", user_id=str(scope.caller.id), class_id=str(scope.class_id))
    return AnalyticsResponse(class_id=scope.class_id, analytics=data)


@router.get("/trends", response_model=AnalyticsResponse)
async def trends(scope: ClassScope = Depends(class_scope), db: AsyncSession = Depends(get_db)):
    """
    Weekly profile completion, skill, goal and survey series for the last
    90 days

    **RBAC**: Teacher, Admin
    """
    data = await analytics.trends_analytics(db, scope.class_id)
    return AnalyticsResponse(class_id=scope.class_id, analytics=data)


# ==================== Breakdowns ====================

@router.get("/skills", response_model=AnalyticsResponse)
async def skills(scope: ClassScope = Depends(class_scope), db: AsyncSession = Depends(get_db)):
    """
    Skill distribution by category, proficiency levels, top and trending skills

    **RBAC**: Teacher, Admin
    """
    data = await analytics.skills_analytics(db, scope.class_id)
    return AnalyticsResponse(class_id=scope.class_id, analytics=data)


@router.get("/goals", response_model=AnalyticsResponse)
async def goals(scope: ClassScope = Depends(class_scope), db: AsyncSession = Depends(get_db)):
    """
    Goal completion rate, goals by category and priority, monthly completions

    **RBAC**: Teacher, Admin
    """
    data = await analytics.goals_analytics(db, scope.class_id)
    return AnalyticsResponse(class_id=scope.class_id, analytics=data)


@router.get("/surveys", response_model=AnalyticsResponse)
async def surveys(scope: ClassScope = Depends(class_scope), db: AsyncSession = Depends(get_db)):
    """
    Response and completion rates per survey

    **RBAC**: Teacher (own surveys), Admin
    """
    data = await analytics.survey_analytics(db, scope.template_owner, scope.class_id)
    return AnalyticsResponse(class_id=scope.class_id, analytics=data)


# ==================== Single Student ====================

@router.get("/students/{student_id}", response_model=StudentAnalyticsResponse)
async def student(
    student_id: uuid.UUID,
    scope: ClassScope = Depends(class_scope),
    db: AsyncSession = Depends(get_db),
):
    """
    One student's full record with their survey responses

    **RBAC**: Teacher, Admin

    With ``class_id`` the student must be enrolled in that class.
    """
    profile = await load_student(db, student_id)
    if scope.class_id is not None:
        enrolled = await db.execute(
            select(ClassEnrollment.id).where(
                ClassEnrollment.class_id == scope.class_id,
                ClassEnrollment.student_profile_id == profile.id,
            )
        )
        if enrolled.scalar_one_or_none() is None:
            raise NotFoundError("Student not found in this class")

    detail = await build_student_detail(db, profile)
    responses = await db.execute(
        select(SurveyResponse, SurveyTemplate)
        .join(SurveyTemplate, SurveyTemplate.id == SurveyResponse.template_id)
        .where(SurveyResponse.student_profile_id == profile.id)
        .order_by(SurveyResponse.created_at.desc())
    )
    return StudentAnalyticsResponse(
        **detail.model_dump(),
        survey_responses=[
            {
                "template_id": str(template.id),
                "survey_title": template.title,
                "template_type": template.template_type,
                "completion_status": response.completion_status,
                "completed_at": response.completed_at.isoformat() if response.completed_at else None,
                "answered_questions": len(response.responses or {}),
            }
            for response, template in responses.all()
        ],
    )
