"""
Class management API
- Teacher: create classes and manage their own
- Admin: every class
Students join a class with its code at registration.
"""

import uuid

import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, require_class_access, require_staff
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.security import Role, generate_class_code
from app.db.session import atomic, get_db
from app.models.classroom import Class, ClassEnrollment
from app.models.student import StudentProfile
from app.models.user import User
from app.schemas.classroom import (
    ClassCreate,
    ClassDetailResponse,
    ClassEnvelope,
    ClassListResponse,
    ClassResponse,
    ClassUpdate,
)
from app.schemas.profile import StudentListItem
from app.services.activity_log import log_activity
from app.utils.validators import sanitize_text

logger = structlog.get_logger(__name__)

router = APIRouter()

CLASS_CODE_ATTEMPTS = 5


async def load_class(db: AsyncSession, class_id: uuid.UUID) -> Class:
    class_ = (await db.execute(select(Class).where(Class.id == class_id))).scalar_one_or_none()
    if class_ is None:
        raise NotFoundError("Class not found")
    return class_


async def load_roster(db: AsyncSession, class_id: uuid.UUID) -> list:
    result = await db.execute(
        select(StudentProfile, User)
        .join(ClassEnrollment, ClassEnrollment.student_profile_id == StudentProfile.id)
        .join(User, User.id == StudentProfile.user_id)
        .where(ClassEnrollment.class_id == class_id)
        .order_by(User.last_name, User.first_name)
    )
    return [
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


@router.post("", response_model=ClassEnvelope, status_code=201)
async def create_class(
    payload: ClassCreate,
    request: Request,
    caller: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a class with a fresh join code

    **RBAC**: Teacher, Admin
    """
    name = sanitize_text(payload.name)
    if not name:
        raise ValidationError(["Class name is required"])

    # Codes are random; retry the rare collision with a new one
    for attempt in range(1, CLASS_CODE_ATTEMPTS + 1):
        try:
            async with atomic(db, conflict_message="Class code already in use"):
                class_ = Class(
                    name=name,
                    description=sanitize_text(payload.description),
                    class_code=generate_class_code(),
                    teacher_id=caller.id,
                )
                db.add(class_)
                await db.flush()
                log_activity(db, caller.id, "class_create", resource_type="class",
                             resource_id=class_.id, request=request)
            break
        except ConflictError:
            logger.warning("class_code_collision", attempt=attempt)
            if attempt == CLASS_CODE_ATTEMPTS:
                raise

    logger.info("class_created", class_id=str(class_.id), teacher_id=str(caller.id))
    return ClassEnvelope(message="Class created successfully", class_=ClassResponse.model_validate(class_))


@router.get("", response_model=ClassListResponse)
async def list_classes(
    caller: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """
    List classes

    **RBAC**: Teacher (own classes), Admin (all)
    """
    query = select(Class)
    if caller.role != Role.ADMIN:
        query = query.where(Class.teacher_id == caller.id)
    result = await db.execute(query.order_by(Class.created_at.desc()))
    return ClassListResponse(classes=[ClassResponse.model_validate(c) for c in result.scalars().all()])


@router.get("/{class_id}", response_model=ClassDetailResponse)
async def get_class(
    class_id: uuid.UUID,
    caller: CurrentUser = Depends(require_class_access),
    db: AsyncSession = Depends(get_db),
):
    """Class with its enrolled students."""
    class_ = await load_class(db, class_id)
    return ClassDetailResponse(
        class_=ClassResponse.model_validate(class_),
        students=await load_roster(db, class_id),
    )


@router.put("/{class_id}", response_model=ClassEnvelope)
async def update_class(
    class_id: uuid.UUID,
    payload: ClassUpdate,
    request: Request,
    caller: CurrentUser = Depends(require_class_access),
    db: AsyncSession = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError(message="No valid fields to update")

    class_ = await load_class(db, class_id)
    async with atomic(db):
        if changes.get("name"):
            class_.name = sanitize_text(changes["name"])
        if "description" in changes:
            class_.description = sanitize_text(changes["description"])
        if changes.get("is_active") is not None:
            class_.is_active = changes["is_active"]
        log_activity(db, caller.id, "class_update", resource_type="class", resource_id=class_.id,
                     details={"fields": sorted(changes)}, request=request)

    return ClassEnvelope(message="Class updated successfully", class_=ClassResponse.model_validate(class_))
