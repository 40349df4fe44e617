"""
Per-student skills and interests
Mounted under ``/students``; every route goes through the ownership check.
Catalog rows are shared, so adding a skill upserts the catalog entry first.
"""

import uuid

import structlog
from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, get_cache, require_student_ownership
from app.api.v1.students import load_student
from app.core.cache import CacheManager, profile_cache_key
from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.db.session import atomic, get_db
from app.models.skill import Interest, Skill, StudentInterest, StudentSkill
from app.models.student import StudentProfile
from app.models.user import User
from app.schemas.common import APIResponse
from app.schemas.profile import StudentInterestResponse, StudentSkillResponse
from app.schemas.skill import (
    StudentInterestCreate,
    StudentInterestEnvelope,
    StudentInterestList,
    StudentSkillCreate,
    StudentSkillEnvelope,
    StudentSkillList,
    StudentSkillUpdate,
)
from app.services.activity_log import log_activity
from app.services.catalog import upsert_interest, upsert_skill
from app.services.profile_service import load_interests, load_skills, recompute_completion
from app.utils.validators import sanitize_text, validate_interest_entry, validate_skill_entry

logger = structlog.get_logger(__name__)

router = APIRouter()


async def _owner(db: AsyncSession, profile: StudentProfile) -> User:
    return (await db.execute(select(User).where(User.id == profile.user_id))).scalar_one()


async def _load_link(db: AsyncSession, student_id: uuid.UUID, skill_id: uuid.UUID):
    result = await db.execute(
        select(StudentSkill, Skill)
        .join(Skill, Skill.id == StudentSkill.skill_id)
        .where(StudentSkill.student_profile_id == student_id, StudentSkill.skill_id == skill_id)
    )
    row = result.first()
    if row is None:
        raise NotFoundError("Skill not found for this student")
    return row


def _skill_response(link: StudentSkill, skill: Skill) -> StudentSkillResponse:
    return StudentSkillResponse(
        id=skill.id,
        name=skill.name,
        category=skill.category,
        proficiency_level=link.proficiency_level,
        years_experience=link.years_experience or 0,
        verified=link.verified,
    )


# ==================== Skills ====================

@router.get("/{student_id}/skills", response_model=StudentSkillList)
async def list_student_skills(
    student_id: uuid.UUID,
    caller: CurrentUser = Depends(require_student_ownership),
    db: AsyncSession = Depends(get_db),
):
    await load_student(db, student_id)
    return StudentSkillList(skills=await load_skills(db, student_id))


@router.post("/{student_id}/skills", response_model=StudentSkillEnvelope, status_code=201)
async def add_student_skill(
    student_id: uuid.UUID,
    payload: StudentSkillCreate,
    request: Request,
    caller: CurrentUser = Depends(require_student_ownership),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    """
    Add a skill to a student

    **Auth**: the student themself, Teacher, Admin. Only staff may set ``verified``.
    """
    data = payload.model_dump()
    data["name"] = sanitize_text(data.get("name"))
    result = validate_skill_entry(data)
    if not result.is_valid:
        raise ValidationError(result.errors)
    if payload.verified and not caller.is_staff:
        raise AuthorizationError("Only teachers and admins can verify skills")

    profile = await load_student(db, student_id)

    async with atomic(db, conflict_message="Student already has this skill"):
        skill_id = await upsert_skill(db, data["name"], data["category"])
        existing = await db.execute(
            select(StudentSkill.id).where(
                StudentSkill.student_profile_id == profile.id, StudentSkill.skill_id == skill_id
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("Student already has this skill")

        db.add(
            StudentSkill(
                student_profile_id=profile.id,
                skill_id=skill_id,
                proficiency_level=data.get("proficiency") or "beginner",
                years_experience=data.get("years_experience") or 0,
                verified=bool(payload.verified),
            )
        )
        completion = await recompute_completion(db, profile, await _owner(db, profile))
        log_activity(db, caller.id, "skill_add", resource_type="student_skill", resource_id=skill_id,
                     details={"student_profile_id": str(profile.id)}, request=request)

    cache.delete(profile_cache_key(profile.id))
    link, skill = await _load_link(db, profile.id, skill_id)
    return StudentSkillEnvelope(
        message="Skill added successfully",
        skill=_skill_response(link, skill),
        profile_completion_percentage=completion,
    )


@router.put("/{student_id}/skills/{skill_id}", response_model=StudentSkillEnvelope)
async def update_student_skill(
    student_id: uuid.UUID,
    skill_id: uuid.UUID,
    payload: StudentSkillUpdate,
    request: Request,
    caller: CurrentUser = Depends(require_student_ownership),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError(message="No valid fields to update")
    if "verified" in changes and not caller.is_staff:
        raise AuthorizationError("Only teachers and admins can verify skills")

    link, skill = await _load_link(db, student_id, skill_id)
    check = {
        "name": skill.name,
        "proficiency": changes.get("proficiency"),
        "years_experience": changes.get("years_experience"),
    }
    result = validate_skill_entry(check)
    if not result.is_valid:
        raise ValidationError(result.errors)

    async with atomic(db):
        if changes.get("proficiency"):
            link.proficiency_level = changes["proficiency"]
        if changes.get("years_experience") is not None:
            link.years_experience = changes["years_experience"]
        if changes.get("verified") is not None:
            link.verified = changes["verified"]
        log_activity(db, caller.id, "skill_update", resource_type="student_skill", resource_id=skill_id,
                     details={"fields": sorted(changes)}, request=request)

    cache.delete(profile_cache_key(student_id))
    profile = await load_student(db, student_id)
    return StudentSkillEnvelope(
        message="Skill updated successfully",
        skill=_skill_response(link, skill),
        profile_completion_percentage=profile.profile_completion_percentage,
    )


@router.delete("/{student_id}/skills/{skill_id}", response_model=APIResponse)
async def remove_student_skill(
    student_id: uuid.UUID,
    skill_id: uuid.UUID,
    request: Request,
    caller: CurrentUser = Depends(require_student_ownership),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    link, _ = await _load_link(db, student_id, skill_id)
    profile = await load_student(db, student_id)

    async with atomic(db):
        await db.delete(link)
        await recompute_completion(db, profile, await _owner(db, profile))
        log_activity(db, caller.id, "skill_remove", resource_type="student_skill",
                     resource_id=skill_id, request=request)

    cache.delete(profile_cache_key(student_id))
    return APIResponse(message="Skill removed successfully")


# ==================== Interests ====================

@router.get("/{student_id}/interests", response_model=StudentInterestList)
async def list_student_interests(
    student_id: uuid.UUID,
    caller: CurrentUser = Depends(require_student_ownership),
    db: AsyncSession = Depends(get_db),
):
    await load_student(db, student_id)
    return StudentInterestList(interests=await load_interests(db, student_id))


@router.post("/{student_id}/interests", response_model=StudentInterestEnvelope, status_code=201)
async def add_student_interest(
    student_id: uuid.UUID,
    payload: StudentInterestCreate,
    request: Request,
    caller: CurrentUser = Depends(require_student_ownership),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    data = payload.model_dump()
    data["name"] = sanitize_text(data.get("name"))
    result = validate_interest_entry(data)
    if not result.is_valid:
        raise ValidationError(result.errors)

    profile = await load_student(db, student_id)

    async with atomic(db, conflict_message="Student already has this interest"):
        interest_id = await upsert_interest(db, data["name"], sanitize_text(data.get("category")))
        existing = await db.execute(
            select(StudentInterest.id).where(
                StudentInterest.student_profile_id == profile.id,
                StudentInterest.interest_id == interest_id,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("Student already has this interest")

        level = data.get("interest_level") or "medium"
        db.add(
            StudentInterest(student_profile_id=profile.id, interest_id=interest_id, interest_level=level)
        )
        completion = await recompute_completion(db, profile, await _owner(db, profile))
        log_activity(db, caller.id, "interest_add", resource_type="student_interest",
                     resource_id=interest_id, details={"student_profile_id": str(profile.id)},
                     request=request)

    cache.delete(profile_cache_key(profile.id))
    interest = (await db.execute(select(Interest).where(Interest.id == interest_id))).scalar_one()
    return StudentInterestEnvelope(
        message="Interest added successfully",
        interest=StudentInterestResponse(
            id=interest.id, name=interest.name, category=interest.category, interest_level=level
        ),
        profile_completion_percentage=completion,
    )


@router.delete("/{student_id}/interests/{interest_id}", response_model=APIResponse)
async def remove_student_interest(
    student_id: uuid.UUID,
    interest_id: uuid.UUID,
    request: Request,
    caller: CurrentUser = Depends(require_student_ownership),
    db: AsyncSession = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
):
    result = await db.execute(
        select(StudentInterest).where(
            StudentInterest.student_profile_id == student_id,
            StudentInterest.interest_id == interest_id,
        )
    )
    link = result.scalar_one_or_none()
    if link is None:
        raise NotFoundError("Interest not found for this student")
    profile = await load_student(db, student_id)

    async with atomic(db):
        await db.delete(link)
        await recompute_completion(db, profile, await _owner(db, profile))
        log_activity(db, caller.id, "interest_remove", resource_type="student_interest",
                     resource_id=interest_id, request=request)

    cache.delete(profile_cache_key(student_id))
    return APIResponse(message="Interest removed successfully")
