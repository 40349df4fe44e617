"""
Survey API
- Teacher/Admin: manage templates and read responses
- Student: list available surveys and submit answers
"""

import uuid
from datetime import datetime
from typing import List

import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, get_own_profile, require_auth, require_staff, require_student
from app.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.core.security import Role
from app.db.session import atomic, get_db
from app.models.survey import SurveyQuestion, SurveyResponse, SurveyTemplate
from app.schemas.common import APIResponse
from app.schemas.survey import (
    AvailableSurvey,
    AvailableSurveyList,
    QuestionIn,
    QuestionResponse,
    SurveyAnswerSubmit,
    SurveyResponseEnvelope,
    SurveyResponseList,
    SurveyResponseOut,
    SurveyTemplateCreate,
    SurveyTemplateEnvelope,
    SurveyTemplateList,
    SurveyTemplateResponse,
    SurveyTemplateUpdate,
)
from app.services.activity_log import log_activity
from app.utils.constants import SURVEY_CHOICE_TYPES
from app.utils.validators import sanitize_text, validate_survey_answers, validate_survey_template

logger = structlog.get_logger(__name__)

router = APIRouter()


async def load_template(db: AsyncSession, template_id: uuid.UUID) -> SurveyTemplate:
    result = await db.execute(select(SurveyTemplate).where(SurveyTemplate.id == template_id))
    template = result.scalar_one_or_none()
    if template is None:
        raise NotFoundError("Survey template not found")
    return template


async def load_questions(db: AsyncSession, template_id: uuid.UUID) -> List[SurveyQuestion]:
    result = await db.execute(
        select(SurveyQuestion)
        .where(SurveyQuestion.template_id == template_id)
        .order_by(SurveyQuestion.position)
    )
    return list(result.scalars().all())


async def template_response(db: AsyncSession, template: SurveyTemplate) -> SurveyTemplateResponse:
    questions = await load_questions(db, template.id)
    return SurveyTemplateResponse(
        id=template.id,
        title=template.title,
        description=template.description,
        template_type=template.template_type,
        created_by=template.created_by,
        is_active=template.is_active,
        created_at=template.created_at,
        questions=[QuestionResponse.model_validate(q) for q in questions],
    )


def _ensure_owner(caller: CurrentUser, template: SurveyTemplate) -> None:
    if caller.role != Role.ADMIN and template.created_by != caller.id:
        raise AuthorizationError("Only the survey creator or an admin can change this survey")


def _add_questions(db: AsyncSession, template_id: uuid.UUID, questions: List[QuestionIn]) -> None:
    for position, question in enumerate(questions, start=1):
        options = None
        if question.question_type in SURVEY_CHOICE_TYPES:
            options = [o.strip() for o in question.options or [] if o and o.strip()]
        db.add(
            SurveyQuestion(
                template_id=template_id,
                position=position,
                question_text=sanitize_text(question.question_text),
                question_type=question.question_type,
                is_required=question.is_required,
                options=options,
            )
        )


# ==================== Templates (Teacher/Admin) ====================

@router.get("", response_model=SurveyTemplateList)
async def list_templates(
    caller: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """
    List active survey templates

    **RBAC**: Teacher (own templates), Admin (all)
    """
    query = select(SurveyTemplate).where(SurveyTemplate.is_active.is_(True))
    if caller.role != Role.ADMIN:
        query = query.where(SurveyTemplate.created_by == caller.id)
    result = await db.execute(query.order_by(SurveyTemplate.created_at.desc()))
    return SurveyTemplateList(
        templates=[await template_response(db, t) for t in result.scalars().all()]
    )


@router.post("", response_model=SurveyTemplateEnvelope, status_code=201)
async def create_template(
    payload: SurveyTemplateCreate,
    request: Request,
    caller: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    data = payload.model_dump()
    data["title"] = sanitize_text(data.get("title"))
    result = validate_survey_template(data)
    if not result.is_valid:
        raise ValidationError(result.errors)

    async with atomic(db):
        template = SurveyTemplate(
            title=data["title"],
            description=sanitize_text(data.get("description")),
            template_type=data.get("template_type") or "general",
            created_by=caller.id,
        )
        db.add(template)
        await db.flush()
        _add_questions(db, template.id, payload.questions)
        log_activity(db, caller.id, "survey_create", resource_type="survey_template",
                     resource_id=template.id, request=request)

    return SurveyTemplateEnvelope(
        message="Survey created successfully",
        template=await template_response(db, template),
    )


# ==================== Student Surveys ====================

@router.get("/available", response_model=AvailableSurveyList)
async def available_surveys(
    caller: CurrentUser = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    """
    Active surveys with the caller's own response status

    **RBAC**: Student
    """
    profile = await get_own_profile(db, caller)
    if profile is None:
        raise NotFoundError("Student profile not found")

    question_counts = (
        select(SurveyQuestion.template_id, func.count(SurveyQuestion.id).label("question_count"))
        .group_by(SurveyQuestion.template_id)
        .subquery()
    )
    result = await db.execute(
        select(SurveyTemplate, question_counts.c.question_count, SurveyResponse.completion_status)
        .outerjoin(question_counts, question_counts.c.template_id == SurveyTemplate.id)
        .outerjoin(
            SurveyResponse,
            (SurveyResponse.template_id == SurveyTemplate.id)
            & (SurveyResponse.student_profile_id == profile.id),
        )
        .where(SurveyTemplate.is_active.is_(True))
        .order_by(SurveyTemplate.created_at.desc())
    )
    surveys = [
        AvailableSurvey(
            id=template.id,
            title=template.title,
            description=template.description,
            template_type=template.template_type,
            question_count=count or 0,
            response_status=status,
        )
        for template, count, status in result.all()
    ]
    return AvailableSurveyList(surveys=surveys)


# ==================== Single Template ====================

@router.get("/{template_id}", response_model=SurveyTemplateEnvelope)
async def get_template(
    template_id: uuid.UUID,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    """
    Survey template with its questions

    **Auth**: Teacher/Admin (any), Student (active surveys only)
    """
    template = await load_template(db, template_id)
    if not caller.is_staff and not template.is_active:
        raise NotFoundError("Survey template not found")
    return SurveyTemplateEnvelope(template=await template_response(db, template))


@router.put("/{template_id}", response_model=SurveyTemplateEnvelope)
async def update_template(
    template_id: uuid.UUID,
    payload: SurveyTemplateUpdate,
    request: Request,
    caller: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """
    Update a survey template

    **RBAC**: creator, Admin. ``questions`` replaces the whole question list.
    """
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError(message="No valid fields to update")

    template = await load_template(db, template_id)
    _ensure_owner(caller, template)

    if "title" in changes:
        changes["title"] = sanitize_text(changes["title"])
    result = validate_survey_template(changes, partial=True)
    if not result.is_valid:
        raise ValidationError(result.errors)

    async with atomic(db):
        for name in ("title", "description", "template_type", "is_active"):
            if name in changes and changes[name] is not None:
                value = changes[name]
                setattr(template, name, sanitize_text(value) if name == "description" else value)
        if payload.questions is not None:
            await db.execute(delete(SurveyQuestion).where(SurveyQuestion.template_id == template.id))
            _add_questions(db, template.id, payload.questions)
        template.updated_at = datetime.utcnow()
        log_activity(db, caller.id, "survey_update", resource_type="survey_template",
                     resource_id=template.id, details={"fields": sorted(changes)}, request=request)

    return SurveyTemplateEnvelope(
        message="Survey updated successfully",
        template=await template_response(db, template),
    )


@router.delete("/{template_id}", response_model=APIResponse)
async def delete_template(
    template_id: uuid.UUID,
    request: Request,
    caller: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Soft delete: the template is deactivated, responses are kept."""
    template = await load_template(db, template_id)
    _ensure_owner(caller, template)

    async with atomic(db):
        template.is_active = False
        log_activity(db, caller.id, "survey_delete", resource_type="survey_template",
                     resource_id=template.id, request=request)

    return APIResponse(message="Survey deleted successfully")


# ==================== Responses ====================

@router.post("/{template_id}/responses", response_model=SurveyResponseEnvelope)
async def submit_response(
    template_id: uuid.UUID,
    payload: SurveyAnswerSubmit,
    request: Request,
    caller: CurrentUser = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    """
    Save the caller's answers to a survey

    **RBAC**: Student

    One response per student and survey: submitting again overwrites it.
    Required questions must be answered once ``completion_status`` is
    ``completed``.
    """
    template = await load_template(db, template_id)
    if not template.is_active:
        raise ValidationError(message="Survey is no longer active")

    profile = await get_own_profile(db, caller)
    if profile is None:
        raise NotFoundError("Student profile not found")

    questions = await load_questions(db, template.id)
    result = validate_survey_answers(questions, payload.responses, payload.completion_status)
    if not result.is_valid:
        raise ValidationError(result.errors)

    existing = await db.execute(
        select(SurveyResponse).where(
            SurveyResponse.template_id == template.id,
            SurveyResponse.student_profile_id == profile.id,
        )
    )
    response = existing.scalar_one_or_none()

    async with atomic(db, conflict_message="Response already submitted, please retry"):
        if response is None:
            response = SurveyResponse(template_id=template.id, student_profile_id=profile.id)
            db.add(response)
        response.responses = dict(payload.responses)
        response.completion_status = payload.completion_status
        response.completed_at = datetime.utcnow() if payload.completion_status == "completed" else None
        await db.flush()
        log_activity(db, caller.id, "survey_response", resource_type="survey_response",
                     resource_id=response.id, details={"status": payload.completion_status},
                     request=request)

    return SurveyResponseEnvelope(
        message="Response saved successfully",
        response=SurveyResponseOut.model_validate(response),
    )


@router.get("/{template_id}/responses", response_model=SurveyResponseList)
async def list_responses(
    template_id: uuid.UUID,
    caller: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """
    All responses to a survey

    **RBAC**: Teacher, Admin
    """
    await load_template(db, template_id)
    result = await db.execute(
        select(SurveyResponse)
        .where(SurveyResponse.template_id == template_id)
        .order_by(SurveyResponse.updated_at.desc())
    )
    return SurveyResponseList(
        responses=[SurveyResponseOut.model_validate(r) for r in result.scalars().all()]
    )
