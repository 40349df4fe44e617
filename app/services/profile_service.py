"""
Student profile reads and writes.

A profile write touches the user row, the profile row, the skill and
interest join rows and the stored completion percentage. Callers run
``update_student_profile`` inside one ``atomic`` block so that either all
of it lands or none of it does.
"""

from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, ValidationError
from app.core.security import Role
from app.models.skill import Interest, Skill, StudentInterest, StudentSkill
from app.models.student import StudentProfile
from app.models.user import User
from app.schemas.profile import (
    ProfileUpdate,
    StudentInterestResponse,
    StudentProfileResponse,
    StudentSkillResponse,
)
from app.services.catalog import upsert_interest, upsert_skill
from app.services.profile_completion import calculate_profile_completion
from app.utils.validators import (
    PROFILE_TEXT_FIELDS,
    PROFILE_URL_FIELDS,
    parse_date,
    sanitize_profile,
    sanitize_text,
    validate_email,
    validate_interest_entry,
    validate_name,
    validate_phone,
    validate_skill_entry,
    validate_student_profile,
)

logger = structlog.get_logger(__name__)

USER_FIELDS = ("first_name", "last_name", "email", "phone")
PROFILE_FIELDS = tuple(f for f in PROFILE_TEXT_FIELDS if f != "phone") + ("date_of_birth",) + PROFILE_URL_FIELDS


async def get_profile_by_user(session: AsyncSession, user_id) -> Optional[StudentProfile]:
    result = await session.execute(select(StudentProfile).where(StudentProfile.user_id == user_id))
    return result.scalar_one_or_none()


async def get_profile(session: AsyncSession, profile_id) -> Optional[StudentProfile]:
    result = await session.execute(select(StudentProfile).where(StudentProfile.id == profile_id))
    return result.scalar_one_or_none()


async def load_skills(session: AsyncSession, profile_id) -> List[StudentSkillResponse]:
    result = await session.execute(
        select(StudentSkill, Skill)
        .join(Skill, Skill.id == StudentSkill.skill_id)
        .where(StudentSkill.student_profile_id == profile_id)
        .order_by(Skill.category, Skill.name)
    )
    return [
        StudentSkillResponse(
            id=skill.id,
            name=skill.name,
            category=skill.category,
            proficiency_level=link.proficiency_level,
            years_experience=link.years_experience or 0,
            verified=link.verified,
        )
        for link, skill in result.all()
    ]


async def load_interests(session: AsyncSession, profile_id) -> List[StudentInterestResponse]:
    result = await session.execute(
        select(StudentInterest, Interest)
        .join(Interest, Interest.id == StudentInterest.interest_id)
        .where(StudentInterest.student_profile_id == profile_id)
        .order_by(Interest.name)
    )
    return [
        StudentInterestResponse(
            id=interest.id,
            name=interest.name,
            category=interest.category,
            interest_level=link.interest_level,
        )
        for link, interest in result.all()
    ]


async def build_profile_response(session: AsyncSession, profile: StudentProfile) -> StudentProfileResponse:
    skills = await load_skills(session, profile.id)
    response = StudentProfileResponse.model_validate(profile)
    response.technical_skills = [s for s in skills if s.category == "technical"]
    response.soft_skills = [s for s in skills if s.category == "soft"]
    response.interests = await load_interests(session, profile.id)
    return response


async def recompute_completion(session: AsyncSession, profile: StudentProfile, user: User) -> int:
    """Recompute and store the completion percentage from the persisted rows."""
    await session.flush()

    skill_counts = dict(
        (
            await session.execute(
                select(Skill.category, func.count(StudentSkill.id))
                .join(Skill, Skill.id == StudentSkill.skill_id)
                .where(StudentSkill.student_profile_id == profile.id)
                .group_by(Skill.category)
            )
        ).all()
    )
    interest_count = (
        await session.execute(
            select(func.count(StudentInterest.id)).where(StudentInterest.student_profile_id == profile.id)
        )
    ).scalar_one()

    record = {
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email": user.email,
        "year_level": profile.year_level,
        "major": profile.major,
        "short_term_goals": profile.short_term_goals,
        "long_term_goals": profile.long_term_goals,
        "bio": profile.bio,
        "technical_skills": [None] * skill_counts.get("technical", 0),
        "soft_skills": [None] * skill_counts.get("soft", 0),
        "interests": [None] * interest_count,
    }
    profile.profile_completion_percentage = calculate_profile_completion(record)
    return profile.profile_completion_percentage


def _validate_update(data: Dict[str, Any]) -> List[str]:
    errors = list(validate_student_profile(data).errors)

    for name, label in (("first_name", "First name"), ("last_name", "Last name")):
        if name in data:
            if not validate_name(data[name]):
                errors.append(f"{label} must be 2-50 characters")
    if "email" in data and not validate_email(data["email"] or ""):
        errors.append("Invalid email format")
    if data.get("phone") and not validate_phone(data["phone"]):
        errors.append("Invalid phone number")

    for key, label in (("technical_skills", "Technical skill"), ("soft_skills", "Soft skill")):
        for number, item in enumerate(data.get(key) or [], start=1):
            entry = {"name": sanitize_text(item.get("name")), "proficiency": item.get("proficiency")}
            errors.extend(f"{label} {number}: {e}" for e in validate_skill_entry(entry).errors)
    for number, name in enumerate(data.get("interests") or [], start=1):
        entry = {"name": sanitize_text(name)}
        errors.extend(f"Interest {number}: {e}" for e in validate_interest_entry(entry).errors)
    return errors


async def ensure_profile(session: AsyncSession, user: User) -> StudentProfile:
    """The student's profile, created on first use."""
    profile = await get_profile_by_user(session, user.id)
    if profile is None:
        profile = StudentProfile(user_id=user.id, profile_completion_percentage=0)
        session.add(profile)
        await session.flush()
        logger.info("student_profile_created", user_id=str(user.id))
    return profile


async def _replace_skills(
    session: AsyncSession, profile: StudentProfile, category: str, items: List[Dict[str, Any]]
) -> None:
    existing = select(StudentSkill.id).join(Skill, Skill.id == StudentSkill.skill_id).where(
        StudentSkill.student_profile_id == profile.id, Skill.category == category
    )
    await session.execute(
        delete(StudentSkill).where(StudentSkill.id.in_(existing)).execution_options(synchronize_session=False)
    )

    seen = set()
    for item in items:
        name = sanitize_text(item["name"])
        if name in seen:
            continue
        seen.add(name)
        skill_id = await upsert_skill(session, name, category)
        session.add(
            StudentSkill(
                student_profile_id=profile.id,
                skill_id=skill_id,
                proficiency_level=item.get("proficiency") or "beginner",
            )
        )


async def _replace_interests(session: AsyncSession, profile: StudentProfile, names: List[str]) -> None:
    await session.execute(
        delete(StudentInterest)
        .where(StudentInterest.student_profile_id == profile.id)
        .execution_options(synchronize_session=False)
    )

    seen = set()
    for raw_name in names:
        name = sanitize_text(raw_name)
        if name in seen:
            continue
        seen.add(name)
        interest_id = await upsert_interest(session, name)
        session.add(StudentInterest(student_profile_id=profile.id, interest_id=interest_id))


async def update_student_profile(
    session: AsyncSession,
    user: User,
    payload: ProfileUpdate,
) -> Optional[StudentProfile]:
    """
    Apply a profile payload for ``user``.

    Only fields present in the payload change. Skill and interest lists
    replace what is stored. Returns the profile (None for non-students,
    who only have user fields).
    """
    data = payload.model_dump(exclude_unset=True)

    errors = _validate_update(data)
    if errors:
        raise ValidationError(errors)

    profile_keys = [k for k in data if k in PROFILE_FIELDS or k in ("technical_skills", "soft_skills", "interests")]
    if user.role != Role.STUDENT and profile_keys:
        raise ValidationError(["Only students have a student profile"])

    # User fields
    if "email" in data:
        email = data["email"].strip().lower()
        if email != user.email:
            taken = await session.execute(select(User.id).where(User.email == email, User.id != user.id))
            if taken.scalar_one_or_none() is not None:
                raise ConflictError("Email is already in use")
            user.email = email
    for name in ("first_name", "last_name"):
        if name in data:
            setattr(user, name, sanitize_text(data[name]))

    sanitized = sanitize_profile(data)
    if "phone" in sanitized:
        user.phone = sanitized.pop("phone") or None

    if user.role != Role.STUDENT:
        return None

    profile = await ensure_profile(session, user)
    for name, value in sanitized.items():
        if name == "date_of_birth":
            value = parse_date(value) if value else None
        setattr(profile, name, value if value != "" else None)

    if "technical_skills" in data:
        await _replace_skills(session, profile, "technical", data["technical_skills"] or [])
    if "soft_skills" in data:
        await _replace_skills(session, profile, "soft", data["soft_skills"] or [])
    if "interests" in data:
        await _replace_interests(session, profile, data["interests"] or [])

    await recompute_completion(session, profile, user)
    return profile
