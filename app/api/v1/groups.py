"""
Student group API (Teacher/Admin)

Groups are formed by the caller; the service stores them, keeps the member
lists consistent and reports a quality score for each roster.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import structlog
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, pagination_payload, require_staff
from app.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.db.session import atomic, get_db
from app.models.group import Group, GroupMember
from app.models.skill import Interest, Skill, StudentInterest, StudentSkill
from app.models.student import StudentProfile
from app.models.user import User
from app.schemas.common import APIResponse
from app.schemas.group import (
    GroupBatchCreate,
    GroupBatchResponse,
    GroupCreate,
    GroupEnvelope,
    GroupListResponse,
    GroupMemberResponse,
    GroupResponse,
    GroupScore,
    GroupScoreRequest,
    GroupScoreResponse,
    GroupUpdate,
)
from app.services.activity_log import log_activity
from app.services.group_quality import (
    MemberSnapshot,
    analyze_group_composition,
    analyze_group_quality,
    calculate_interest_overlap_score,
    score_group,
)
from app.utils.constants import GROUP_DEFAULT_SIZE
from app.utils.validators import sanitize_text, validate_group

logger = structlog.get_logger(__name__)

router = APIRouter()


# ==================== Helpers ====================

async def load_members(
    db: AsyncSession, profile_ids: Sequence[uuid.UUID]
) -> Dict[uuid.UUID, GroupMemberResponse]:
    """Member rows for the given profile ids; unknown ids are left out."""
    if not profile_ids:
        return {}
    result = await db.execute(
        select(StudentProfile, User)
        .join(User, User.id == StudentProfile.user_id)
        .where(StudentProfile.id.in_(profile_ids))
    )
    return {
        profile.id: GroupMemberResponse(
            student_profile_id=profile.id,
            first_name=user.first_name,
            last_name=user.last_name,
            year_level=profile.year_level,
            major=profile.major,
            profile_completion_percentage=profile.profile_completion_percentage or 0,
        )
        for profile, user in result.all()
    }


async def load_snapshots(
    db: AsyncSession, members: Sequence[GroupMemberResponse]
) -> List[MemberSnapshot]:
    ids = [m.student_profile_id for m in members]
    snapshots = {
        m.student_profile_id: MemberSnapshot(
            student_profile_id=m.student_profile_id,
            year_level=m.year_level,
            major=m.major,
            profile_completion_percentage=m.profile_completion_percentage,
        )
        for m in members
    }
    if not ids:
        return []

    skills = await db.execute(
        select(StudentSkill.student_profile_id, Skill.name, Skill.category)
        .join(Skill, Skill.id == StudentSkill.skill_id)
        .where(StudentSkill.student_profile_id.in_(ids))
    )
    for profile_id, name, category in skills.all():
        snapshots[profile_id].skills.append({"name": name, "category": category})

    interests = await db.execute(
        select(StudentInterest.student_profile_id, Interest.name)
        .join(Interest, Interest.id == StudentInterest.interest_id)
        .where(StudentInterest.student_profile_id.in_(ids))
    )
    for profile_id, name in interests.all():
        snapshots[profile_id].interests.append(name)

    return [snapshots[i] for i in ids]


async def resolve_roster(db: AsyncSession, member_ids: Sequence[uuid.UUID]) -> List[GroupMemberResponse]:
    """Members in request order; every id must name an existing student."""
    found = await load_members(db, member_ids)
    missing = [str(i) for i in member_ids if i not in found]
    if missing:
        raise ValidationError([f"Student not found: {i}" for i in missing])
    return [found[i] for i in member_ids]


async def build_group_response(db: AsyncSession, group: Group) -> GroupResponse:
    rows = await db.execute(
        select(GroupMember).where(GroupMember.group_id == group.id).order_by(GroupMember.created_at)
    )
    links = rows.scalars().all()
    found = await load_members(db, [link.student_profile_id for link in links])

    members = []
    for link in links:
        member = found.get(link.student_profile_id)
        if member is not None:
            members.append(member.model_copy(update={"role": link.role}))

    snapshots = await load_snapshots(db, members)
    return GroupResponse(
        id=group.id,
        name=group.name,
        description=group.description,
        project=group.project,
        max_size=group.max_size,
        status=group.status,
        formation_criteria=group.formation_criteria,
        created_by=group.created_by,
        created_at=group.created_at,
        members=members,
        quality_score=score_group(snapshots).quality_score if snapshots else None,
        analysis=analyze_group_composition(snapshots) if snapshots else None,
    )


async def load_group(db: AsyncSession, group_id: uuid.UUID) -> Group:
    group = (await db.execute(select(Group).where(Group.id == group_id))).scalar_one_or_none()
    if group is None:
        raise NotFoundError("Group not found")
    return group


def _add_members(db: AsyncSession, group_id: uuid.UUID, member_ids: Sequence[uuid.UUID]) -> None:
    for profile_id in member_ids:
        db.add(GroupMember(group_id=group_id, student_profile_id=profile_id, role="member"))


# ==================== Scoring ====================

@router.post("/score", response_model=GroupScoreResponse)
async def score_groups(
    payload: GroupScoreRequest,
    caller: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """
    Score candidate rosters without saving anything

    **RBAC**: Teacher, Admin
    """
    scored = []
    for member_ids in payload.groups:
        roster = await resolve_roster(db, list(dict.fromkeys(member_ids)))
        snapshots = await load_snapshots(db, roster)
        score = score_group(snapshots)
        scored.append(
            GroupScore(
                members=[m.student_profile_id for m in roster],
                quality_score=score.quality_score,
                interest_overlap=calculate_interest_overlap_score(snapshots),
                breakdown=score.breakdown,
                analysis=analyze_group_composition(snapshots),
            )
        )

    summary = analyze_group_quality([g.model_dump() for g in scored])
    return GroupScoreResponse(groups=scored, summary=summary)


@router.post("/batch", response_model=GroupBatchResponse, status_code=201)
async def create_groups_batch(
    payload: GroupBatchCreate,
    request: Request,
    caller: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """
    Persist groups formed by a client-side algorithm

    **RBAC**: Teacher, Admin

    Each group's ``formation_criteria`` records the algorithm, the formation
    time and the quality score computed here.
    """
    max_size = payload.max_size or GROUP_DEFAULT_SIZE
    errors = []
    seen = set()
    for number, formed in enumerate(payload.groups, start=1):
        result = validate_group(
            {"name": formed.name or f"Group {number}", "max_size": max_size, "member_ids": formed.member_ids}
        )
        errors.extend(f"Group {number}: {e}" for e in result.errors)
        overlap = seen.intersection(formed.member_ids)
        if overlap:
            errors.append(f"Group {number}: students already placed in another group")
        seen.update(formed.member_ids)
    if errors:
        raise ValidationError(errors)

    formation_date = datetime.utcnow().isoformat()
    created = []
    async with atomic(db):
        for number, formed in enumerate(payload.groups, start=1):
            roster = await resolve_roster(db, formed.member_ids)
            snapshots = await load_snapshots(db, roster)
            group = Group(
                name=sanitize_text(formed.name) or f"Group {number}",
                project=sanitize_text(payload.project),
                max_size=max_size,
                status="active",
                formation_criteria={
                    "algorithm": payload.algorithm,
                    "formation_date": formation_date,
                    "quality_score": score_group(snapshots).quality_score,
                },
                created_by=caller.id,
            )
            db.add(group)
            await db.flush()
            _add_members(db, group.id, formed.member_ids)
            created.append(group)
        log_activity(db, caller.id, "group_batch_create", resource_type="group",
                     details={"algorithm": payload.algorithm, "count": len(created)}, request=request)

    groups = [await build_group_response(db, g) for g in created]
    summary = analyze_group_quality([g.model_dump() for g in groups])
    logger.info("groups_created", count=len(groups), algorithm=payload.algorithm)
    return GroupBatchResponse(
        message=f"{len(groups)} groups created successfully",
        groups=groups,
        summary=summary,
    )


# ==================== CRUD ====================

@router.get("", response_model=GroupListResponse)
async def list_groups(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    status: Optional[str] = None,
    caller: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """
    List groups, newest first

    **RBAC**: Teacher, Admin
    """
    query = select(Group)
    if status:
        query = query.where(Group.status == status)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(
        query.order_by(Group.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    groups = [await build_group_response(db, g) for g in result.scalars().all()]
    return GroupListResponse(groups=groups, pagination=pagination_payload(page, limit, total))


@router.post("", response_model=GroupEnvelope, status_code=201)
async def create_group(
    payload: GroupCreate,
    request: Request,
    caller: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    data = payload.model_dump()
    data["name"] = sanitize_text(data.get("name"))
    result = validate_group(data)
    if not result.is_valid:
        raise ValidationError(result.errors)

    await resolve_roster(db, payload.member_ids)

    async with atomic(db):
        group = Group(
            name=data["name"],
            description=sanitize_text(data.get("description")),
            project=sanitize_text(data.get("project")),
            max_size=data.get("max_size") or GROUP_DEFAULT_SIZE,
            status=data.get("status") or "active",
            formation_criteria=data.get("formation_criteria") or {"algorithm": "manual"},
            created_by=caller.id,
        )
        db.add(group)
        await db.flush()
        _add_members(db, group.id, payload.member_ids)
        log_activity(db, caller.id, "group_create", resource_type="group", resource_id=group.id,
                     details={"members": len(payload.member_ids)}, request=request)

    return GroupEnvelope(message="Group created successfully", group=await build_group_response(db, group))


@router.get("/{group_id}", response_model=GroupEnvelope)
async def get_group(
    group_id: uuid.UUID,
    caller: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """Group with its members, quality score and composition."""
    group = await load_group(db, group_id)
    return GroupEnvelope(group=await build_group_response(db, group))


@router.put("/{group_id}", response_model=GroupEnvelope)
async def update_group(
    group_id: uuid.UUID,
    payload: GroupUpdate,
    request: Request,
    caller: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    """
    Update a group

    **RBAC**: Teacher, Admin

    ``member_ids`` replaces the member list in the same transaction as the
    other changes.
    """
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError(message="No valid fields to update")

    group = await load_group(db, group_id)
    if "name" in changes:
        changes["name"] = sanitize_text(changes["name"])

    check = dict(changes)
    check.setdefault("max_size", group.max_size)
    if check["max_size"] is None:
        check["max_size"] = group.max_size
    result = validate_group(check, partial=True)
    if not result.is_valid:
        raise ValidationError(result.errors)

    member_ids = changes.get("member_ids")
    if member_ids is None and changes.get("max_size") is not None:
        # A smaller limit must still fit the current members
        current = (
            await db.execute(select(func.count(GroupMember.id)).where(GroupMember.group_id == group.id))
        ).scalar_one()
        if current > changes["max_size"]:
            raise ValidationError([f"Group cannot have more than {changes['max_size']} members"])

    if member_ids is not None:
        await resolve_roster(db, member_ids)

    async with atomic(db):
        for name in ("name", "max_size", "status"):
            if changes.get(name) is not None:
                setattr(group, name, changes[name])
        for name in ("description", "project"):
            if name in changes:
                setattr(group, name, sanitize_text(changes[name]))
        if member_ids is not None:
            await db.execute(delete(GroupMember).where(GroupMember.group_id == group.id))
            _add_members(db, group.id, member_ids)
        group.updated_at = datetime.utcnow()
        log_activity(db, caller.id, "group_update", resource_type="group", resource_id=group.id,
                     details={"fields": sorted(changes)}, request=request)

    return GroupEnvelope(message="Group updated successfully", group=await build_group_response(db, group))


@router.delete("/{group_id}", response_model=APIResponse)
async def delete_group(
    group_id: uuid.UUID,
    request: Request,
    caller: CurrentUser = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
):
    group = await load_group(db, group_id)

    async with atomic(db):
        await db.execute(delete(GroupMember).where(GroupMember.group_id == group.id))
        await db.delete(group)
        log_activity(db, caller.id, "group_delete", resource_type="group", resource_id=group_id,
                     request=request)

    return APIResponse(message="Group deleted successfully")
