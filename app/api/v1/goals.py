"""
Goal CRUD API
- Student: own goals only
- Teacher/Admin: any student's goals (``student_id`` names the profile)
"""

import uuid
from datetime import datetime
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import case, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, ensure_student_access, get_cache, get_own_profile, require_auth
from app.core.cache import CacheManager, profile_cache_key
from app.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.db.session import atomic, get_db
from app.models.goal import Goal
from app.models.student import StudentProfile
from app.schemas.common import APIResponse
from app.schemas.goal import GoalCreate, GoalEnvelope, GoalListResponse, GoalResponse, GoalUpdate
from app.services.activity_log import log_activity
from app.services.goal_lifecycle import transition_error
from app.utils.validators import parse_date, sanitize_text, validate_goal

logger = structlog.get_logger(__name__)

router = APIRouter()

TEXT_FIELDS = ("title", "description", "progress_notes")

# urgent first
PRIORITY_ORDER = case(
    {"urgent": 4, "high": 3, "medium": 2, "low": 1},
    value=Goal.priority,
    else_=0,
)


async def resolve_target_profile(
    db: AsyncSession,
    caller: CurrentUser,
    student_id: Optional[uuid.UUID],
    forbidden_message: str,
) -> uuid.UUID:
    """
    Profile a write is aimed at: the caller's own for students, the named
    one for staff.
    """
    if caller.is_student:
        profile = await get_own_profile(db, caller)
        if profile is None:
            raise NotFoundError("Student profile not found")
        if student_id is not None and student_id != profile.id:
            raise AuthorizationError(forbidden_message)
        return profile.id

    if not caller.is_staff:
        raise AuthorizationError("Invalid user role")
    if student_id is None:
        raise ValidationError(["student_id is required"])
    exists = await db.execute(select(StudentProfile.id).where(StudentProfile.id == student_id))
    if exists.scalar_one_or_none() is None:
        raise NotFoundError("Student not found")
    return student_id


async def load_goal(db: AsyncSession, caller: CurrentUser, goal_id: uuid.UUID) -> Goal:
    goal = (await db.execute(select(Goal).where(Goal.id == goal_id))).scalar_one_or_none()
    if goal is None:
        raise NotFoundError("Goal not found")
    await ensure_student_access(db, caller, goal.student_profile_id)
    return goal


def _clean(data: dict) -> dict:
    return {k: sanitize_text(v) if k in TEXT_FIELDS else v for k, v in data.items()}


@router.get("", response_model=GoalListResponse)
async def list_goals(
    student_id: Optional[uuid.UUID] = Query(None, description="Staff: filter by student profile"),
    status: Optional[str] = None,
    category: Optional[str] = None,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    """
    List goals, highest priority first, then by target date

    **Auth**: Student (own goals), Teacher/Admin (all or one student)
    """
    query = select(Goal)
    if caller.is_student:
        profile = await get_own_profile(db, caller)
        if profile is None:
            raise NotFoundError("Student profile not found")
        if student_id is not None and student_id != profile.id:
            raise AuthorizationError("Access denied: you can only access your own data")
        query = query.where(Goal.student_profile_id == profile.id)
    elif student_id is not None:
        query = query.where(Goal.student_profile_id == student_id)

    if status:
        query = query.where(Goal.status == status)
    if category:
        query = query.where(Goal.category == category)

    result = await db.execute(
        query.order_by(PRIORITY_ORDER.desc(), Goal.target_date.asc(), Goal.created_at.desc())
    )
    goals = [GoalResponse.model_validate(g) for g in result.scalars().all()]
    return GoalListResponse(goals=goals, count=len(goals))


@router.post("", response_model=GoalEnvelope, status_code=201)
async def create_goal(
    payload: GoalCreate,
    request: Request,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    """
    Create a goal

    **Auth**: Student (for themself), Teacher/Admin (``student_id`` required)
    """
    data = _clean(payload.model_dump(exclude={"student_id"}))
    result = validate_goal(data)
    if not result.is_valid:
        raise ValidationError(result.errors)

    profile_id = await resolve_target_profile(
        db, caller, payload.student_id, "Students can only create goals for themselves"
    )

    status = data.get("status") or "active"
    async with atomic(db):
        goal = Goal(
            student_profile_id=profile_id,
            created_by=caller.id,
            title=data["title"],
            description=data["description"],
            category=data["category"],
            priority=data.get("priority") or "medium",
            status=status,
            target_date=parse_date(data.get("target_date")),
            progress_notes=data.get("progress_notes"),
            completed_at=datetime.utcnow() if status == "completed" else None,
        )
        db.add(goal)
        await db.flush()
        log_activity(db, caller.id, "goal_create", resource_type="goal", resource_id=goal.id,
                     details={"student_profile_id": str(profile_id)}, request=request)

    cache.delete(profile_cache_key(profile_id))
    return GoalEnvelope(message="Goal created successfully", goal=GoalResponse.model_validate(goal))


@router.get("/{goal_id}", response_model=GoalEnvelope)
async def get_goal(
    goal_id: uuid.UUID,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    goal = await load_goal(db, caller, goal_id)
    return GoalEnvelope(goal=GoalResponse.model_validate(goal))


@router.put("/{goal_id}", response_model=GoalEnvelope)
async def update_goal(
    goal_id: uuid.UUID,
    payload: GoalUpdate,
    request: Request,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    """
    Update a goal

    **Auth**: owning Student, Teacher, Admin

    Only provided fields change. Status changes follow the goal lifecycle:
    active -> completed/paused/cancelled, paused -> active.
    """
    changes = _clean(payload.model_dump(exclude_unset=True))
    if not changes:
        raise ValidationError(message="No valid fields to update")

    goal = await load_goal(db, caller, goal_id)

    merged = {
        "title": goal.title,
        "description": goal.description,
        "category": goal.category,
        "priority": goal.priority,
        "status": goal.status,
        "target_date": goal.target_date.isoformat() if goal.target_date else None,
    }
    merged.update(changes)
    result = validate_goal(merged)
    if not result.is_valid:
        raise ValidationError(result.errors)

    new_status = changes.get("status")
    if new_status:
        error = transition_error(goal.status, new_status)
        if error:
            raise ValidationError([error])

    async with atomic(db):
        for name, value in changes.items():
            if name == "target_date":
                value = parse_date(value) if value else None
            elif name in ("status", "priority") and value is None:
                continue
            setattr(goal, name, value)
        if new_status == "completed" and goal.completed_at is None:
            goal.completed_at = datetime.utcnow()
        log_activity(db, caller.id, "goal_update", resource_type="goal", resource_id=goal.id,
                     details={"fields": sorted(changes)}, request=request)

    cache.delete(profile_cache_key(goal.student_profile_id))
    return GoalEnvelope(message="Goal updated successfully", goal=GoalResponse.model_validate(goal))


@router.delete("/{goal_id}", response_model=APIResponse)
async def delete_goal(
    goal_id: uuid.UUID,
    request: Request,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    goal = await load_goal(db, caller, goal_id)
    profile_id = goal.student_profile_id

    async with atomic(db):
        await db.delete(goal)
        log_activity(db, caller.id, "goal_delete", resource_type="goal", resource_id=goal_id,
                     request=request)

    cache.delete(profile_cache_key(profile_id))
    return APIResponse(message="Goal deleted successfully")
