"""
Activity CRUD API
Extracurricular and work history attached to a student profile.
"""

import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, ensure_student_access, get_cache, get_own_profile, require_auth
from app.api.v1.goals import resolve_target_profile
from app.core.cache import CacheManager, profile_cache_key
from app.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.db.session import atomic, get_db
from app.models.goal import Activity
from app.schemas.common import APIResponse
from app.schemas.goal import (
    ActivityCreate,
    ActivityEnvelope,
    ActivityListResponse,
    ActivityResponse,
    ActivityUpdate,
)
from app.services.activity_log import log_activity
from app.utils.validators import parse_date, sanitize_text, validate_activity

logger = structlog.get_logger(__name__)

router = APIRouter()

TEXT_FIELDS = ("title", "description", "organization", "position", "achievements")
DATE_FIELDS = ("start_date", "end_date")


async def load_activity(db: AsyncSession, caller: CurrentUser, activity_id: uuid.UUID) -> Activity:
    result = await db.execute(select(Activity).where(Activity.id == activity_id))
    activity = result.scalar_one_or_none()
    if activity is None:
        raise NotFoundError("Activity not found")
    await ensure_student_access(db, caller, activity.student_profile_id)
    return activity


def _clean(data: dict) -> dict:
    return {k: sanitize_text(v) if k in TEXT_FIELDS else v for k, v in data.items()}


@router.get("", response_model=ActivityListResponse)
async def list_activities(
    student_id: Optional[uuid.UUID] = Query(None, description="Staff: filter by student profile"),
    category: Optional[str] = None,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    """
    List activities, most recent first

    **Auth**: Student (own activities), Teacher/Admin (all or one student)
    """
    query = select(Activity)
    if caller.is_student:
        profile = await get_own_profile(db, caller)
        if profile is None:
            raise NotFoundError("Student profile not found")
        if student_id is not None and student_id != profile.id:
            raise AuthorizationError("Access denied: you can only access your own data")
        query = query.where(Activity.student_profile_id == profile.id)
    elif student_id is not None:
        query = query.where(Activity.student_profile_id == student_id)

    if category:
        query = query.where(Activity.category == category)

    result = await db.execute(query.order_by(Activity.start_date.desc(), Activity.created_at.desc()))
    activities = [ActivityResponse.model_validate(a) for a in result.scalars().all()]
    return ActivityListResponse(activities=activities, count=len(activities))


@router.post("", response_model=ActivityEnvelope, status_code=201)
async def create_activity(
    payload: ActivityCreate,
    request: Request,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    """
    Create an activity

    **Auth**: Student (for themself), Teacher/Admin (``student_id`` required)
    """
    data = _clean(payload.model_dump(exclude={"student_id"}))
    result = validate_activity(data)
    if not result.is_valid:
        raise ValidationError(result.errors)

    profile_id = await resolve_target_profile(
        db, caller, payload.student_id, "Students can only create activities for themselves"
    )

    async with atomic(db):
        activity = Activity(
            student_profile_id=profile_id,
            title=data["title"],
            category=data["category"],
            description=data.get("description"),
            start_date=parse_date(data.get("start_date")),
            end_date=parse_date(data.get("end_date")),
            is_current=bool(data.get("is_current")),
            hours=data.get("hours") or 0,
            organization=data.get("organization"),
            position=data.get("position"),
            achievements=data.get("achievements"),
        )
        db.add(activity)
        await db.flush()
        log_activity(db, caller.id, "activity_create", resource_type="activity",
                     resource_id=activity.id, details={"student_profile_id": str(profile_id)},
                     request=request)

    cache.delete(profile_cache_key(profile_id))
    return ActivityEnvelope(
        message="Activity created successfully",
        activity=ActivityResponse.model_validate(activity),
    )


@router.get("/{activity_id}", response_model=ActivityEnvelope)
async def get_activity(
    activity_id: uuid.UUID,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    activity = await load_activity(db, caller, activity_id)
    return ActivityEnvelope(activity=ActivityResponse.model_validate(activity))


@router.put("/{activity_id}", response_model=ActivityEnvelope)
async def update_activity(
    activity_id: uuid.UUID,
    payload: ActivityUpdate,
    request: Request,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    """
    Update an activity

    **Auth**: owning Student, Teacher, Admin

    The date range is checked against the stored dates when only one end
    is supplied.
    """
    changes = _clean(payload.model_dump(exclude_unset=True))
    if not changes:
        raise ValidationError(message="No valid fields to update")

    activity = await load_activity(db, caller, activity_id)

    merged = {
        "title": activity.title,
        "category": activity.category,
        "description": activity.description,
        "start_date": activity.start_date.isoformat() if activity.start_date else None,
        "end_date": activity.end_date.isoformat() if activity.end_date else None,
        "hours": activity.hours,
        "organization": activity.organization,
        "position": activity.position,
        "achievements": activity.achievements,
    }
    merged.update(changes)
    result = validate_activity(merged)
    if not result.is_valid:
        raise ValidationError(result.errors)

    async with atomic(db):
        for name, value in changes.items():
            if name in DATE_FIELDS:
                value = parse_date(value) if value else None
            elif name == "hours":
                value = value or 0
            elif name == "is_current":
                value = bool(value)
            setattr(activity, name, value)
        log_activity(db, caller.id, "activity_update", resource_type="activity",
                     resource_id=activity.id, details={"fields": sorted(changes)}, request=request)

    cache.delete(profile_cache_key(activity.student_profile_id))
    return ActivityEnvelope(
        message="Activity updated successfully",
        activity=ActivityResponse.model_validate(activity),
    )


@router.delete("/{activity_id}", response_model=APIResponse)
async def delete_activity(
    activity_id: uuid.UUID,
    request: Request,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    activity = await load_activity(db, caller, activity_id)
    profile_id = activity.student_profile_id

    async with atomic(db):
        await db.delete(activity)
        log_activity(db, caller.id, "activity_delete", resource_type="activity",
                     resource_id=activity_id, request=request)

    cache.delete(profile_cache_key(profile_id))
    return APIResponse(message="Activity deleted successfully")
