"""
Student directory and per-student profile API
- Teacher/Admin: list and view every student
- Student: own record only (ownership resolved from the caller's profile)
"""

import uuid
from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import (
    CurrentUser,
    get_cache,
    pagination_payload,
    require_staff,
    require_student_ownership,
)
from app.config import settings
from app.core.cache import CacheManager, profile_cache_key
from app.core.exceptions import NotFoundError
from app.db.session import atomic, get_db
from app.models.goal import Activity, Goal
from app.models.student import StudentProfile
from app.models.user import User
from app.schemas.auth import UserResponse
from app.schemas.goal import ActivityResponse, GoalResponse
from app.schemas.profile import ProfileUpdate, StudentListItem, StudentListResponse
from app.schemas.student import StudentDetailResponse
from app.services.activity_log import log_activity
from app.services.profile_service import build_profile_response, get_profile, update_student_profile
from app.utils import constants

logger = structlog.get_logger(__name__)

router = APIRouter()


async def load_student(db: AsyncSession, student_id: uuid.UUID) -> StudentProfile:
    profile = await get_profile(db, student_id)
    if profile is None:
        raise NotFoundError("Student not found")
    return profile


async def build_student_detail(db: AsyncSession, profile: StudentProfile) -> StudentDetailResponse:
    user = (await db.execute(select(User).where(User.id == profile.user_id))).scalar_one()
    goals = await db.execute(
        select(Goal).where(Goal.student_profile_id == profile.id).order_by(Goal.created_at.desc())
    )
    activities = await db.execute(
        select(Activity)
        .where(Activity.student_profile_id == profile.id)
        .order_by(Activity.start_date.desc(), Activity.created_at.desc())
    )
    return StudentDetailResponse(
        user=UserResponse.model_validate(user),
        profile=await build_profile_response(db, profile),
        goals=[GoalResponse.model_validate(g) for g in goals.scalars().all()],
        activities=[ActivityResponse.model_validate(a) for a in activities.scalars().all()],
    )


# ==================== Student Directory (Teacher/Admin) ====================

@router.get("", response_model=StudentListResponse)
async def list_students(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: Optional[str] = Query(None, description="Matches first name, last name or email"),
    year_level: Optional[str] = None,
    major: Optional[str] = None,
    caller: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """
    List students with filters and pagination

    **RBAC**: Teacher, Admin
    """
    query = select(StudentProfile, User).join(User, User.id == StudentProfile.user_id).where(
        User.is_active.is_(True)
    )

    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
                User.email.ilike(pattern),
            )
        )
    if year_level:
        query = query.where(StudentProfile.year_level == year_level)
    if major:
        query = query.where(StudentProfile.major.ilike(f"%{major}%"))

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()

    result = await db.execute(
        query.order_by(User.last_name, User.first_name).offset((page - 1) * limit).limit(limit)
    )
    students = [
        StudentListItem(
            id=profile.id,
            user_id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            year_level=profile.year_level,
            major=profile.major,
            profile_completion_percentage=profile.profile_completion_percentage,
        )
        for profile, user in result.all()
    ]

    return StudentListResponse(students=students, pagination=pagination_payload(page, limit, total))


# ==================== Single Student ====================

@router.get("/{student_id}", response_model=StudentDetailResponse)
async def get_student(
    student_id: uuid.UUID,
    caller: CurrentUser = Depends(require_student_ownership),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    """
    Full student record: profile, skills, interests, goals and activities

    **Auth**: the student themself, Teacher, Admin

    Served from the profile cache when possible.
    """
    cache_key = profile_cache_key(student_id)
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    profile = await load_student(db, student_id)
    detail = await build_student_detail(db, profile)
    cache.set(cache_key, detail.model_dump(mode="json"), ttl=settings.CACHE_PROFILE_TTL)
    return detail


@router.put("/{student_id}", response_model=StudentDetailResponse)
async def update_student(
    student_id: uuid.UUID,
    payload: ProfileUpdate,
    request: Request,
    caller: CurrentUser = Depends(require_student_ownership),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    """
    Update a student's profile

    **Auth**: the student themself, Teacher, Admin

    Same semantics as ``PUT /users/profile`` applied to the addressed student.
    """
    profile = await load_student(db, student_id)
    owner = (await db.execute(select(User).where(User.id == profile.user_id))).scalar_one()

    async with atomic(db):
        await update_student_profile(db, owner, payload)
        log_activity(
            db,
            caller.id,
            constants.ACTION_PROFILE_UPDATE,
            resource_type="student_profile",
            resource_id=profile.id,
            details={"fields": sorted(payload.model_dump(exclude_unset=True))},
            request=request,
        )

    cache.delete(profile_cache_key(profile.id))
    detail = await build_student_detail(db, profile)
    detail.message = "Profile updated successfully"
    return detail
