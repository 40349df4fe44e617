"""
Staff analytics over student records.

Every aggregate covers the active student profiles in scope: all of them,
or only those enrolled in one class when ``class_id`` is given. Period
buckets are computed in Python so the queries stay portable between
PostgreSQL and SQLite.
"""

import uuid
from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Select, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import Role
from app.models.activity_log import ActivityLog, UploadedFile
from app.models.classroom import ClassEnrollment
from app.models.goal import Goal
from app.models.skill import Skill, StudentSkill
from app.models.student import StudentProfile
from app.models.survey import SurveyQuestion, SurveyResponse, SurveyTemplate
from app.models.user import User
from app.utils.constants import GOAL_PRIORITIES, PROFICIENCY_LEVELS

RECENT_ACTIVITY_DAYS = 30
RECENT_ACTIVITY_LIMIT = 20
TOP_SKILLS_LIMIT = 15
TRENDING_SKILLS_LIMIT = 10
DASHBOARD_SURVEYS_LIMIT = 10
GOAL_TREND_MONTHS = 6
TREND_DAYS = 90

HIGH_COMPLETION = 80
LOW_COMPLETION = 50

# beginner=1 ... expert=4
PROFICIENCY_SCORE = {level: rank for rank, level in enumerate(PROFICIENCY_LEVELS, start=1)}
proficiency_value = case(PROFICIENCY_SCORE, value=StudentSkill.proficiency_level, else_=1)


def student_scope(class_id: Optional[uuid.UUID] = None) -> Select:
    """Ids of the active student profiles an aggregate covers."""
    query = (
        select(StudentProfile.id)
        .join(User, User.id == StudentProfile.user_id)
        .where(User.role == Role.STUDENT.value, User.is_active.is_(True))
    )
    if class_id is not None:
        query = query.join(
            ClassEnrollment, ClassEnrollment.student_profile_id == StudentProfile.id
        ).where(ClassEnrollment.class_id == class_id)
    return query


def count_where(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


def _number(value: Any, digits: int = 2) -> float:
    return round(float(value or 0), digits)


def _percent(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


def week_start(moment: datetime) -> str:
    day = moment.date() if isinstance(moment, datetime) else moment
    return (day - timedelta(days=day.weekday())).isoformat()


def month_start(moment: datetime) -> str:
    return moment.strftime("%Y-%m")


def _series(buckets: Dict[str, List[float]], name: str, reduce=len) -> List[Dict[str, Any]]:
    return [{"period": period, name: reduce(values)} for period, values in sorted(buckets.items())]


def _average(values: List[float]) -> float:
    return _number(sum(values) / len(values)) if values else 0.0


def visible_templates(owner_id: Optional[uuid.UUID]) -> Select:
    """Active survey templates; teachers see the ones they created."""
    query = select(SurveyTemplate).where(SurveyTemplate.is_active.is_(True))
    if owner_id is not None:
        query = query.where(SurveyTemplate.created_by == owner_id)
    return query


# ==================== Shared aggregates ====================

async def count_students(session: AsyncSession, class_id: Optional[uuid.UUID] = None) -> int:
    scope = student_scope(class_id)
    return (await session.execute(select(func.count()).select_from(scope.subquery()))).scalar_one()


async def completion_summary(session: AsyncSession, class_id: Optional[uuid.UUID] = None) -> Dict[str, Any]:
    pct = StudentProfile.profile_completion_percentage
    row = (
        await session.execute(
            select(
                func.avg(pct),
                count_where(pct >= HIGH_COMPLETION),
                count_where(pct < LOW_COMPLETION),
            ).where(StudentProfile.id.in_(student_scope(class_id)))
        )
    ).one()
    return {
        "avg_profile_completion": round(float(row[0] or 0)),
        "high_completion_profiles": int(row[1]),
        "low_completion_profiles": int(row[2]),
    }


async def top_skills(
    session: AsyncSession, class_id: Optional[uuid.UUID] = None, limit: int = TOP_SKILLS_LIMIT
) -> List[Dict[str, Any]]:
    """Most held skills with their average proficiency (1 beginner to 4 expert)."""
    student_count = func.count(StudentSkill.id)
    rows = await session.execute(
        select(Skill.name, Skill.category, student_count, func.avg(proficiency_value))
        .join(StudentSkill, StudentSkill.skill_id == Skill.id)
        .where(StudentSkill.student_profile_id.in_(student_scope(class_id)))
        .group_by(Skill.id, Skill.name, Skill.category)
        .order_by(student_count.desc(), func.avg(proficiency_value).desc(), Skill.name)
        .limit(limit)
    )
    return [
        {"name": name, "category": category, "student_count": count, "avg_proficiency": _number(avg)}
        for name, category, count, avg in rows.all()
    ]


async def goals_by_category(session: AsyncSession, class_id: Optional[uuid.UUID] = None) -> List[Dict[str, Any]]:
    total = func.count(Goal.id)
    rows = await session.execute(
        select(
            Goal.category,
            total,
            count_where(Goal.status == "completed"),
            count_where(Goal.status == "active"),
            count_where(Goal.status == "paused"),
        )
        .where(Goal.student_profile_id.in_(student_scope(class_id)))
        .group_by(Goal.category)
        .order_by(total.desc(), Goal.category)
    )
    return [
        {"category": category, "total": count, "completed": int(done), "active": int(active), "paused": int(paused)}
        for category, count, done, active, paused in rows.all()
    ]


async def survey_response_counts(
    session: AsyncSession,
    owner_id: Optional[uuid.UUID],
    class_id: Optional[uuid.UUID] = None,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Response counts per visible template, newest template first."""
    templates = visible_templates(owner_id).order_by(SurveyTemplate.created_at.desc())
    if limit:
        templates = templates.limit(limit)
    templates = (await session.execute(templates)).scalars().all()
    if not templates:
        return []
    ids = [t.id for t in templates]

    counts = await session.execute(
        select(
            SurveyResponse.template_id,
            func.count(SurveyResponse.id),
            count_where(SurveyResponse.completion_status == "completed"),
        )
        .where(
            SurveyResponse.template_id.in_(ids),
            SurveyResponse.student_profile_id.in_(student_scope(class_id)),
        )
        .group_by(SurveyResponse.template_id)
    )
    by_template = {template_id: (total, int(done)) for template_id, total, done in counts.all()}

    questions = await session.execute(
        select(SurveyQuestion.template_id, func.count(SurveyQuestion.id))
        .where(SurveyQuestion.template_id.in_(ids))
        .group_by(SurveyQuestion.template_id)
    )
    question_counts = dict(questions.all())

    results = []
    for template in templates:
        total, done = by_template.get(template.id, (0, 0))
        results.append({
            "template_id": str(template.id),
            "title": template.title,
            "template_type": template.template_type,
            "question_count": question_counts.get(template.id, 0),
            "total_responses": total,
            "completed_responses": done,
            "completion_rate": _percent(done, total),
        })
    return results


# ==================== Views ====================

async def dashboard_analytics(
    session: AsyncSession, owner_id: Optional[uuid.UUID], class_id: Optional[uuid.UUID] = None
) -> Dict[str, Any]:
    """Overview counts, recent student activity, top skills, goal and survey progress."""
    scope = student_scope(class_id)

    goals = (
        await session.execute(
            select(
                func.count(Goal.id),
                count_where(Goal.status == "completed"),
                count_where(Goal.status == "active"),
            ).where(Goal.student_profile_id.in_(scope))
        )
    ).one()
    total_skills = (
        await session.execute(select(func.count(StudentSkill.id)).where(StudentSkill.student_profile_id.in_(scope)))
    ).scalar_one()
    survey_responses = (
        await session.execute(
            select(func.count(SurveyResponse.id)).where(SurveyResponse.student_profile_id.in_(scope))
        )
    ).scalar_one()
    survey_templates = (
        await session.execute(select(func.count()).select_from(visible_templates(owner_id).subquery()))
    ).scalar_one()
    student_users = select(StudentProfile.user_id).where(StudentProfile.id.in_(scope))
    files = (
        await session.execute(
            select(func.count(UploadedFile.id), func.coalesce(func.sum(UploadedFile.file_size), 0)).where(
                UploadedFile.user_id.in_(student_users)
            )
        )
    ).one()

    overview = {
        "total_students": await count_students(session, class_id),
        "total_goals": goals[0],
        "completed_goals": int(goals[1]),
        "active_goals": int(goals[2]),
        "total_skills": total_skills,
        "survey_responses": survey_responses,
        "survey_templates": survey_templates,
        "files_uploaded": files[0],
        "files_total_size": int(files[1]),
    }
    overview.update(await completion_summary(session, class_id))

    since = datetime.utcnow() - timedelta(days=RECENT_ACTIVITY_DAYS)
    activity = await session.execute(
        select(ActivityLog, User)
        .join(User, User.id == ActivityLog.user_id)
        .where(ActivityLog.user_id.in_(student_users), ActivityLog.created_at >= since)
        .order_by(ActivityLog.created_at.desc())
        .limit(RECENT_ACTIVITY_LIMIT)
    )
    recent_activity = [
        {
            "action": entry.action,
            "resource_type": entry.resource_type,
            "created_at": entry.created_at.isoformat(),
            "first_name": user.first_name,
            "last_name": user.last_name,
        }
        for entry, user in activity.all()
    ]

    return {
        "overview": overview,
        "recent_activity": recent_activity,
        "top_skills": await top_skills(session, class_id),
        "goal_progress": await goals_by_category(session, class_id),
        "survey_completion": await survey_response_counts(session, owner_id, class_id, limit=DASHBOARD_SURVEYS_LIMIT),
    }


async def skills_analytics(session: AsyncSession, class_id: Optional[uuid.UUID] = None) -> Dict[str, Any]:
    scope = student_scope(class_id)

    students = func.count(func.distinct(StudentSkill.student_profile_id))
    distribution = await session.execute(
        select(Skill.category, students, func.count(StudentSkill.id), func.avg(proficiency_value))
        .join(StudentSkill, StudentSkill.skill_id == Skill.id)
        .where(StudentSkill.student_profile_id.in_(scope))
        .group_by(Skill.category)
        .order_by(students.desc(), Skill.category)
    )
    skill_distribution = [
        {"category": category, "student_count": count, "total_skills": total, "avg_proficiency": _number(avg)}
        for category, count, total, avg in distribution.all()
    ]

    levels = await session.execute(
        select(Skill.category, StudentSkill.proficiency_level, func.count(StudentSkill.id))
        .join(StudentSkill, StudentSkill.skill_id == Skill.id)
        .where(StudentSkill.student_profile_id.in_(scope))
        .group_by(Skill.category, StudentSkill.proficiency_level)
    )
    proficiency_levels: Dict[str, Dict[str, int]] = defaultdict(dict)
    for category, level, count in levels.all():
        proficiency_levels[category][level] = count

    since = datetime.utcnow() - timedelta(days=RECENT_ACTIVITY_DAYS)
    additions = func.count(StudentSkill.id)
    trending = await session.execute(
        select(Skill.name, Skill.category, additions)
        .join(StudentSkill, StudentSkill.skill_id == Skill.id)
        .where(StudentSkill.student_profile_id.in_(scope), StudentSkill.created_at >= since)
        .group_by(Skill.id, Skill.name, Skill.category)
        .order_by(additions.desc(), Skill.name)
        .limit(TRENDING_SKILLS_LIMIT)
    )

    return {
        "skill_distribution": skill_distribution,
        "proficiency_levels": dict(proficiency_levels),
        "top_skills": await top_skills(session, class_id),
        "trending_skills": [
            {"name": name, "category": category, "recent_additions": count}
            for name, category, count in trending.all()
        ],
    }


async def goals_analytics(session: AsyncSession, class_id: Optional[uuid.UUID] = None) -> Dict[str, Any]:
    scope = student_scope(class_id)

    total, completed = (
        await session.execute(
            select(func.count(Goal.id), count_where(Goal.status == "completed")).where(
                Goal.student_profile_id.in_(scope)
            )
        )
    ).one()

    priorities = await session.execute(
        select(Goal.priority, func.count(Goal.id), count_where(Goal.status == "completed"))
        .where(Goal.student_profile_id.in_(scope))
        .group_by(Goal.priority)
    )
    rank = {priority: -i for i, priority in enumerate(GOAL_PRIORITIES)}
    goals_by_priority = sorted(
        (
            {"priority": priority, "total": count, "completed": int(done)}
            for priority, count, done in priorities.all()
        ),
        key=lambda row: rank.get(row["priority"], 0),
    )

    since = datetime.utcnow() - timedelta(days=GOAL_TREND_MONTHS * 31)
    finished = await session.execute(
        select(Goal.completed_at).where(
            Goal.student_profile_id.in_(scope),
            Goal.status == "completed",
            Goal.completed_at >= since,
        )
    )
    months: Dict[str, List[float]] = defaultdict(list)
    for (completed_at,) in finished.all():
        months[month_start(completed_at)].append(1)

    return {
        "total_goals": total,
        "completed_goals": int(completed),
        "goal_completion_rate": _percent(int(completed), total),
        "goals_by_category": await goals_by_category(session, class_id),
        "goals_by_priority": goals_by_priority,
        "completion_trends": _series(months, "completed_goals"),
    }


async def survey_analytics(
    session: AsyncSession, owner_id: Optional[uuid.UUID], class_id: Optional[uuid.UUID] = None
) -> Dict[str, Any]:
    students = await count_students(session, class_id)
    response_rates = await survey_response_counts(session, owner_id, class_id)
    for row in response_rates:
        row["response_rate"] = _percent(row["completed_responses"], students)
    return {"total_students": students, "response_rates": response_rates}


async def trends_analytics(session: AsyncSession, class_id: Optional[uuid.UUID] = None) -> Dict[str, Any]:
    """Weekly series over the last 90 days."""
    scope = student_scope(class_id)
    since = datetime.utcnow() - timedelta(days=TREND_DAYS)

    def weekly(rows: Iterable) -> Dict[str, List[float]]:
        buckets: Dict[str, List[float]] = defaultdict(list)
        for moment, value in rows:
            buckets[week_start(moment)].append(value)
        return buckets

    def counted(result) -> Iterable:
        return ((moment, 1) for moment in result.scalars())

    profiles = await session.execute(
        select(StudentProfile.updated_at, StudentProfile.profile_completion_percentage).where(
            StudentProfile.id.in_(scope), StudentProfile.updated_at >= since
        )
    )
    skills = await session.execute(
        select(StudentSkill.created_at).where(
            StudentSkill.student_profile_id.in_(scope), StudentSkill.created_at >= since
        )
    )
    goals = await session.execute(
        select(Goal.completed_at).where(
            Goal.student_profile_id.in_(scope), Goal.status == "completed", Goal.completed_at >= since
        )
    )
    surveys = await session.execute(
        select(SurveyResponse.created_at).where(
            SurveyResponse.student_profile_id.in_(scope), SurveyResponse.created_at >= since
        )
    )

    return {
        "profile_completion_trend": _series(weekly(profiles.all()), "avg_completion", _average),
        "skill_acquisition_trend": _series(weekly(counted(skills)), "skills_added"),
        "goal_completion_trend": _series(weekly(counted(goals)), "goals_completed"),
        "survey_participation_trend": _series(weekly(counted(surveys)), "responses"),
    }


# ==================== Export summaries ====================

async def export_summary(session: AsyncSession, class_id: Optional[uuid.UUID] = None) -> Dict[str, Any]:
    """Student overview, skill and goal breakdowns for the analytics export."""
    scope = student_scope(class_id)
    now = datetime.utcnow()

    activity = (
        await session.execute(
            select(
                count_where(User.last_login >= now - timedelta(days=7)),
                count_where(User.last_login >= now - timedelta(days=30)),
            )
            .select_from(User)
            .join(StudentProfile, StudentProfile.user_id == User.id)
            .where(StudentProfile.id.in_(scope))
        )
    ).one()
    student_overview = {
        "total_students": await count_students(session, class_id),
        "active_weekly": int(activity[0]),
        "active_monthly": int(activity[1]),
    }
    student_overview.update(await completion_summary(session, class_id))

    skills = await top_skills(session, class_id, limit=20)
    levels = await session.execute(
        select(Skill.name, StudentSkill.proficiency_level)
        .join(StudentSkill, StudentSkill.skill_id == Skill.id)
        .where(StudentSkill.student_profile_id.in_(scope))
    )
    by_skill: Dict[str, Counter] = defaultdict(Counter)
    for name, level in levels.all():
        by_skill[name][level] += 1
    for row in skills:
        row["most_common_level"] = by_skill[row["name"]].most_common(1)[0][0] if by_skill[row["name"]] else None

    priority_value = case(
        {priority: rank for rank, priority in enumerate(GOAL_PRIORITIES, start=1)}, value=Goal.priority, else_=0
    )
    goals = await session.execute(
        select(Goal.category, Goal.status, func.count(Goal.id), func.avg(priority_value))
        .where(Goal.student_profile_id.in_(scope))
        .group_by(Goal.category, Goal.status)
        .order_by(Goal.category, Goal.status)
    )

    return {
        "student_overview": student_overview,
        "top_skills": skills,
        "goals_breakdown": [
            {"category": category, "status": status, "count": count, "avg_priority": _number(avg)}
            for category, status, count, avg in goals.all()
        ],
    }
