"""
Group quality scoring.

Scores a roster of students on how well it mixes skills, year levels and
profile completeness. Forming the groups is left to the caller; this module
only evaluates rosters it is given.
"""

import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from app.utils.constants import GROUP_DEFAULT_SIZE, GROUP_QUALITY_WEIGHTS

# Unique skills needed for a full skill diversity score
SKILL_DIVERSITY_TARGET = 10


@dataclass
class MemberSnapshot:
    """What the scorer needs to know about one group member."""

    student_profile_id: Any
    year_level: Optional[str] = None
    major: Optional[str] = None
    profile_completion_percentage: int = 0
    skills: List[Dict[str, str]] = field(default_factory=list)  # [{"name", "category"}]
    interests: List[str] = field(default_factory=list)


@dataclass
class GroupScore:
    quality_score: int
    breakdown: Dict[str, float]


def _round(value: float) -> int:
    return math.floor(value + 0.5)


def _average_completion(members: Sequence[MemberSnapshot]) -> float:
    return sum(m.profile_completion_percentage or 0 for m in members) / len(members)


def score_group(members: Sequence[MemberSnapshot]) -> GroupScore:
    """Weighted quality score (0-100) of one roster, with its factor breakdown."""
    if not members:
        return GroupScore(quality_score=0, breakdown={})

    unique_skills = {skill["name"] for m in members for skill in m.skills}
    skill_diversity = min(len(unique_skills) / SKILL_DIVERSITY_TARGET, 1) * 100

    year_levels = {m.year_level for m in members if m.year_level}
    experience_balance = len(year_levels) / min(len(members), GROUP_DEFAULT_SIZE) * 100

    profile_completeness = _average_completion(members)

    group_size = max(0, 100 - abs(len(members) - GROUP_DEFAULT_SIZE) * 20)

    factors = {
        "skill_diversity": skill_diversity,
        "experience_balance": experience_balance,
        "profile_completeness": profile_completeness,
        "group_size": float(group_size),
    }
    score = sum(factors[name] * weight for name, weight in GROUP_QUALITY_WEIGHTS.items())
    return GroupScore(
        quality_score=_round(score),
        breakdown={name: round(value, 2) for name, value in factors.items()},
    )


def calculate_group_quality_score(members: Sequence[MemberSnapshot]) -> int:
    return score_group(members).quality_score


def calculate_interest_overlap_score(members: Sequence[MemberSnapshot]) -> int:
    """Share (0-100) of the group's distinct interests held by more than one member."""
    counts = Counter(interest for m in members for interest in m.interests)
    if not counts:
        return 0
    shared = sum(1 for count in counts.values() if count > 1)
    return _round(shared / len(counts) * 100)


def analyze_group_composition(members: Sequence[MemberSnapshot]) -> Dict[str, Any]:
    skill_categories: Counter = Counter()
    year_levels: Counter = Counter()
    majors: Counter = Counter()
    total_interests = 0

    for member in members:
        for skill in member.skills:
            skill_categories[skill.get("category") or "other"] += 1
        total_interests += len(member.interests)
        if member.year_level:
            year_levels[member.year_level] += 1
        if member.major:
            majors[member.major] += 1

    return {
        "skill_categories": dict(skill_categories),
        "year_level_distribution": dict(year_levels),
        "majors": dict(majors),
        "average_profile_completion": _round(_average_completion(members)) if members else 0,
        "total_skills": sum(skill_categories.values()),
        "total_interests": total_interests,
    }


def analyze_group_quality(groups: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Summarize a batch of scored groups.

    Each group is a dict with ``members``, ``quality_score`` and optionally
    the ``analysis`` produced by ``analyze_group_composition``.
    """
    if not groups:
        return {}

    distribution = {"high": 0, "medium": 0, "low": 0}
    skill_distribution: Counter = Counter()
    total_quality = 0
    total_members = 0

    for group in groups:
        score = group.get("quality_score") or 0
        total_quality += score
        total_members += len(group.get("members", []))

        if score >= 80:
            distribution["high"] += 1
        elif score >= 60:
            distribution["medium"] += 1
        else:
            distribution["low"] += 1

        analysis = group.get("analysis") or {}
        skill_distribution.update(analysis.get("skill_categories", {}))

    return {
        "total_groups": len(groups),
        "average_quality_score": _round(total_quality / len(groups)),
        "average_group_size": _round(total_members / len(groups)),
        "skill_distribution": dict(skill_distribution),
        "quality_distribution": distribution,
    }
