"""
Staff data exports.

Each export type yields flat rows plus the column order used for CSV. JSON
exports wrap the same rows in a document that records the export type,
time and filters.
"""

import csv
import io
import json
import uuid
from collections import defaultdict
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.models.goal import Activity, Goal
from app.models.group import Group, GroupMember
from app.models.skill import Interest, Skill, StudentInterest, StudentSkill
from app.models.student import StudentProfile
from app.models.user import User
from app.services import analytics
from app.services.group_quality import MemberSnapshot, score_group
from app.utils.constants import PROFICIENCY_LEVELS

EXPORT_TYPES = ("students", "groups", "analytics", "skills", "goals", "surveys", "comprehensive")
EXPORT_FORMATS = ("csv", "json")

STUDENT_COLUMNS = [
    "id", "user_id", "first_name", "last_name", "email", "phone", "student_id_num",
    "year_level", "major", "registration_date", "last_login",
    "profile_completion_percentage", "short_term_goals", "long_term_goals",
    "career_aspirations", "linkedin_url", "portfolio_url", "github_url",
    "skills_list", "interests_list", "goals_count", "activities_count",
]
GROUP_COLUMNS = [
    "id", "name", "description", "project", "status", "max_size", "current_size",
    "quality_score", "created_at", "updated_at", "members_list", "group_skills", "formation_details",
]
SKILL_COLUMNS = ["id", "name", "category", "total_students"] + [
    f"{level}_count" for level in PROFICIENCY_LEVELS
] + ["created_at", "students_list"]
GOAL_COLUMNS = [
    "id", "title", "description", "category", "status", "priority", "target_date",
    "completed_at", "created_at", "updated_at", "student_name", "student_email", "year_level", "major",
]
SURVEY_COLUMNS = [
    "template_id", "title", "template_type", "question_count", "total_responses",
    "completed_responses", "completion_rate", "response_rate",
]
ANALYTICS_COLUMNS = [
    "type", "name", "category", "status", "count", "avg_level", "most_common_level",
    "avg_priority", "avg_size", "avg_quality",
]
COMPREHENSIVE_COLUMNS = ["section", "total_records"]

# Bands used by the ``profile_completion`` student filter
COMPLETION_BANDS = {
    "high": (80, None),
    "medium": (50, 80),
    "low": (None, 50),
}


# ==================== Rendering ====================

def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def to_csv(rows: Sequence[Dict[str, Any]], columns: Sequence[str]) -> str:
    """CSV text with a header row; keys outside ``columns`` are left out."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(columns), extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow({column: _cell(row.get(column)) for column in columns})
    return buffer.getvalue()


def to_json(document: Dict[str, Any]) -> str:
    return json.dumps(document, indent=2, default=str)


def export_filename(export_type: str, fmt: str, today: Optional[date] = None) -> str:
    return f"{export_type}_export_{(today or date.today()).isoformat()}.{fmt}"


def export_document(export_type: str, data: Any, filters: Dict[str, Any]) -> Dict[str, Any]:
    document = {
        "export_type": export_type,
        "export_date": datetime.utcnow().isoformat(),
        "filters": filters,
        "data": data,
    }
    if isinstance(data, list):
        document["total_records"] = len(data)
    return document


# ==================== Filters ====================

def parse_filters(raw: Optional[str]) -> Dict[str, Any]:
    """Decode the ``filters`` query parameter, a JSON object."""
    if not raw:
        return {}
    try:
        filters = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError(message="Invalid filters format")
    if not isinstance(filters, dict):
        raise ValidationError(message="Invalid filters format")
    return filters


def class_filter(filters: Dict[str, Any]) -> Optional[uuid.UUID]:
    value = filters.get("class_id")
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError(["Invalid class_id filter"])


# ==================== Row builders ====================

async def student_rows(session: AsyncSession, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    One row per active student with skills and interests joined into text.

    Filters: ``search`` (name or email), ``year_level``, ``major``,
    ``profile_completion`` (high, medium or low) and ``class_id``.
    """
    query = (
        select(StudentProfile, User)
        .join(User, User.id == StudentProfile.user_id)
        .where(StudentProfile.id.in_(analytics.student_scope(class_filter(filters))))
    )
    search = (filters.get("search") or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(User.first_name.ilike(pattern), User.last_name.ilike(pattern), User.email.ilike(pattern))
        )
    if filters.get("year_level"):
        query = query.where(StudentProfile.year_level == filters["year_level"])
    if filters.get("major"):
        query = query.where(StudentProfile.major.ilike(f"%{filters['major']}%"))
    band = COMPLETION_BANDS.get(filters.get("profile_completion") or "")
    if band:
        low, high = band
        if low is not None:
            query = query.where(StudentProfile.profile_completion_percentage >= low)
        if high is not None:
            query = query.where(StudentProfile.profile_completion_percentage < high)

    result = await session.execute(query.order_by(User.last_name, User.first_name))
    pairs = result.all()
    ids = [profile.id for profile, _ in pairs]
    if not ids:
        return []

    skills: Dict[uuid.UUID, List[str]] = defaultdict(list)
    for profile_id, name, level in (
        await session.execute(
            select(StudentSkill.student_profile_id, Skill.name, StudentSkill.proficiency_level)
            .join(Skill, Skill.id == StudentSkill.skill_id)
            .where(StudentSkill.student_profile_id.in_(ids))
            .order_by(Skill.name)
        )
    ).all():
        skills[profile_id].append(f"{name} ({level})")

    interests: Dict[uuid.UUID, List[str]] = defaultdict(list)
    for profile_id, name in (
        await session.execute(
            select(StudentInterest.student_profile_id, Interest.name)
            .join(Interest, Interest.id == StudentInterest.interest_id)
            .where(StudentInterest.student_profile_id.in_(ids))
            .order_by(Interest.name)
        )
    ).all():
        interests[profile_id].append(name)

    goal_counts = dict(
        (
            await session.execute(
                select(Goal.student_profile_id, func.count(Goal.id))
                .where(Goal.student_profile_id.in_(ids))
                .group_by(Goal.student_profile_id)
            )
        ).all()
    )
    activity_counts = dict(
        (
            await session.execute(
                select(Activity.student_profile_id, func.count(Activity.id))
                .where(Activity.student_profile_id.in_(ids))
                .group_by(Activity.student_profile_id)
            )
        ).all()
    )

    return [
        {
            "id": str(profile.id),
            "user_id": str(user.id),
            "first_name": user.first_name,
            "last_name": user.last_name,
            "email": user.email,
            "phone": user.phone,
            "student_id_num": profile.student_id_num,
            "year_level": profile.year_level,
            "major": profile.major,
            "date_of_birth": profile.date_of_birth,
            "bio": profile.bio,
            "registration_date": user.created_at,
            "last_login": user.last_login,
            "profile_completion_percentage": profile.profile_completion_percentage,
            "short_term_goals": profile.short_term_goals,
            "long_term_goals": profile.long_term_goals,
            "career_aspirations": profile.career_aspirations,
            "linkedin_url": profile.linkedin_url,
            "portfolio_url": profile.portfolio_url,
            "github_url": profile.github_url,
            "profile_updated": profile.updated_at,
            "skills_list": "; ".join(skills[profile.id]),
            "interests_list": "; ".join(interests[profile.id]),
            "goals_count": goal_counts.get(profile.id, 0),
            "activities_count": activity_counts.get(profile.id, 0),
        }
        for profile, user in pairs
    ]


async def group_rows(session: AsyncSession, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    One row per group with its members, pooled skills and quality score.

    Filters: ``status`` and ``project``.
    """
    query = select(Group)
    if filters.get("status"):
        query = query.where(Group.status == filters["status"])
    if filters.get("project"):
        query = query.where(Group.project.ilike(f"%{filters['project']}%"))
    groups = (await session.execute(query.order_by(Group.created_at.desc()))).scalars().all()
    if not groups:
        return []

    members = await session.execute(
        select(GroupMember, StudentProfile, User)
        .join(StudentProfile, StudentProfile.id == GroupMember.student_profile_id)
        .join(User, User.id == StudentProfile.user_id)
        .where(GroupMember.group_id.in_([g.id for g in groups]))
        .order_by(GroupMember.created_at)
    )
    by_group: Dict[uuid.UUID, list] = defaultdict(list)
    snapshots: Dict[uuid.UUID, MemberSnapshot] = {}
    for link, profile, user in members.all():
        by_group[link.group_id].append((link, profile, user))
        snapshots[profile.id] = MemberSnapshot(
            student_profile_id=profile.id,
            year_level=profile.year_level,
            major=profile.major,
            profile_completion_percentage=profile.profile_completion_percentage or 0,
        )

    if snapshots:
        skills = await session.execute(
            select(StudentSkill.student_profile_id, Skill.name, Skill.category)
            .join(Skill, Skill.id == StudentSkill.skill_id)
            .where(StudentSkill.student_profile_id.in_(list(snapshots)))
        )
        for profile_id, name, category in skills.all():
            snapshots[profile_id].skills.append({"name": name, "category": category})

    rows = []
    for group in groups:
        roster = by_group[group.id]
        members_snapshots = [snapshots[profile.id] for _, profile, _ in roster]
        rows.append({
            "id": str(group.id),
            "name": group.name,
            "description": group.description,
            "project": group.project,
            "status": group.status,
            "max_size": group.max_size,
            "current_size": len(roster),
            "quality_score": score_group(members_snapshots).quality_score if members_snapshots else None,
            "created_at": group.created_at,
            "updated_at": group.updated_at,
            "members_list": "; ".join(
                f"{user.first_name} {user.last_name} ({link.role or 'member'})" for link, _, user in roster
            ),
            "group_skills": "; ".join(
                sorted({skill["name"] for snapshot in members_snapshots for skill in snapshot.skills})
            ),
            "formation_details": group.formation_criteria or {},
        })
    return rows


async def skill_rows(session: AsyncSession, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Every catalog skill with how many students in scope hold it, per level."""
    catalog = (await session.execute(select(Skill).order_by(Skill.name))).scalars().all()
    holders = await session.execute(
        select(StudentSkill.skill_id, StudentSkill.proficiency_level, User.first_name, User.last_name)
        .join(StudentProfile, StudentProfile.id == StudentSkill.student_profile_id)
        .join(User, User.id == StudentProfile.user_id)
        .where(StudentSkill.student_profile_id.in_(analytics.student_scope(class_filter(filters))))
        .order_by(User.last_name, User.first_name)
    )
    by_skill: Dict[uuid.UUID, list] = defaultdict(list)
    for skill_id, level, first_name, last_name in holders.all():
        by_skill[skill_id].append((level, f"{first_name} {last_name}"))

    rows = []
    for skill in catalog:
        held = by_skill[skill.id]
        row = {
            "id": str(skill.id),
            "name": skill.name,
            "category": skill.category,
            "total_students": len(held),
            "created_at": skill.created_at,
            "students_list": "; ".join(f"{name} ({level})" for level, name in held),
        }
        for level in PROFICIENCY_LEVELS:
            row[f"{level}_count"] = sum(1 for held_level, _ in held if held_level == level)
        rows.append(row)
    rows.sort(key=lambda row: (-row["total_students"], row["name"]))
    return rows


async def goal_rows(session: AsyncSession, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Goals of students in scope, newest first.

    Filters: ``status``, ``category`` and ``class_id``.
    """
    query = (
        select(Goal, StudentProfile, User)
        .join(StudentProfile, StudentProfile.id == Goal.student_profile_id)
        .join(User, User.id == StudentProfile.user_id)
        .where(Goal.student_profile_id.in_(analytics.student_scope(class_filter(filters))))
    )
    if filters.get("status"):
        query = query.where(Goal.status == filters["status"])
    if filters.get("category"):
        query = query.where(Goal.category == filters["category"])

    result = await session.execute(query.order_by(Goal.created_at.desc()))
    return [
        {
            "id": str(goal.id),
            "title": goal.title,
            "description": goal.description,
            "category": goal.category,
            "status": goal.status,
            "priority": goal.priority,
            "target_date": goal.target_date,
            "completed_at": goal.completed_at,
            "created_at": goal.created_at,
            "updated_at": goal.updated_at,
            "student_name": f"{user.first_name} {user.last_name}",
            "student_email": user.email,
            "year_level": profile.year_level,
            "major": profile.major,
        }
        for goal, profile, user in result.all()
    ]


async def survey_rows(
    session: AsyncSession, owner_id: Optional[uuid.UUID], filters: Dict[str, Any]
) -> List[Dict[str, Any]]:
    return (await analytics.survey_analytics(session, owner_id, class_filter(filters)))["response_rates"]


async def analytics_report(session: AsyncSession, filters: Dict[str, Any]) -> Dict[str, Any]:
    """Analytics summary with a per-status groups overview."""
    report = await analytics.export_summary(session, class_filter(filters))

    by_status: Dict[str, list] = defaultdict(list)
    for row in await group_rows(session, {}):
        by_status[row["status"]].append(row)
    report["groups_overview"] = [
        {
            "status": status,
            "group_count": len(rows),
            "avg_group_size": round(sum(r["current_size"] for r in rows) / len(rows), 2),
            "avg_quality_score": round(sum(r["quality_score"] or 0 for r in rows) / len(rows), 2),
        }
        for status, rows in sorted(by_status.items(), key=lambda item: -len(item[1]))
    ]
    return report


def flatten_analytics(report: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Skill, goal and group rows of an analytics report, for CSV."""
    rows = [
        {
            "type": "skill",
            "name": skill["name"],
            "category": skill["category"],
            "count": skill["student_count"],
            "avg_level": skill["avg_proficiency"],
            "most_common_level": skill.get("most_common_level"),
        }
        for skill in report["top_skills"]
    ]
    rows.extend(
        {
            "type": "goal",
            "category": goal["category"],
            "status": goal["status"],
            "count": goal["count"],
            "avg_priority": goal["avg_priority"],
        }
        for goal in report["goals_breakdown"]
    )
    rows.extend(
        {
            "type": "group",
            "status": group["status"],
            "count": group["group_count"],
            "avg_size": group["avg_group_size"],
            "avg_quality": group["avg_quality_score"],
        }
        for group in report["groups_overview"]
    )
    return rows
