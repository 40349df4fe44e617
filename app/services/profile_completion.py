"""Profile completion scoring."""

import math
from typing import Any, Mapping

# Fields that make up the textual 80% of the score
REQUIRED_PROFILE_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "year_level",
    "major",
    "short_term_goals",
    "long_term_goals",
    "bio",
)

SKILLS_BONUS = 10
INTERESTS_BONUS = 10


def _is_filled(value: Any) -> bool:
    if value is None:
        return False
    return bool(str(value).strip())


def calculate_profile_completion(record: Mapping[str, Any]) -> int:
    """
    Completion percentage (0-100) of a profile-like record.

    Each filled required field is worth 80/8 points, a non-empty technical
    or soft skills list adds 10 and a non-empty interests list adds 10.
    """
    completed = sum(1 for name in REQUIRED_PROFILE_FIELDS if _is_filled(record.get(name)))
    base = completed / len(REQUIRED_PROFILE_FIELDS) * 80

    has_skills = bool(record.get("technical_skills")) or bool(record.get("soft_skills"))
    skills_bonus = SKILLS_BONUS if has_skills else 0
    interests_bonus = INTERESTS_BONUS if record.get("interests") else 0

    # Round half up
    return min(100, math.floor(base + skills_bonus + interests_bonus + 0.5))
