"""Validators and sanitizers for submitted payloads.

Primitive checks (``validate_date``, ``validate_text``, ...) return a bool.
Composite checks return a ``ValidationResult`` listing every violated rule,
so one response can report all problems with a payload at once.
"""

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional

from pydantic import AnyUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from app.utils.constants import (
    ACTIVITY_CATEGORIES,
    ACTIVITY_MAX_HOURS,
    ALLOWED_UPLOAD_TYPES,
    GOAL_CATEGORIES,
    GOAL_PRIORITIES,
    GOAL_STATUSES,
    GROUP_MAX_SIZE,
    GROUP_MIN_SIZE,
    GROUP_STATUSES,
    INTEREST_LEVELS,
    PROFICIENCY_LEVELS,
    SKILL_CATEGORIES,
    SURVEY_CHOICE_TYPES,
    SURVEY_COMPLETION_STATUSES,
    SURVEY_QUESTION_TYPES,
    SURVEY_TEMPLATE_TYPES,
    YEAR_LEVELS,
)

DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_PATTERN = re.compile(r"\+?[\d\s-]{10,}")

DEFAULT_MAX_FILE_SIZE = 5 * 1024 * 1024

_url_adapter = TypeAdapter(AnyUrl)


@dataclass
class ValidationResult:
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def check(self, ok: bool, message: str) -> None:
        if not ok:
            self.errors.append(message)


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


# ==================== Primitive validators ====================

def parse_date(value: Any) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` string into a date, None if it is not one."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.fullmatch(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def validate_date(value: Any) -> bool:
    """Empty is valid; otherwise must be a real calendar date in YYYY-MM-DD form."""
    if _is_blank(value):
        return True
    return parse_date(value) is not None


def validate_date_range(start: Any, end: Any) -> bool:
    """Valid when either end is missing, otherwise start must not be after end."""
    if _is_blank(start) or _is_blank(end):
        return True
    start_date, end_date = parse_date(start), parse_date(end)
    if start_date is None or end_date is None:
        # Malformed dates are reported by validate_date
        return True
    return start_date <= end_date


def validate_url(value: Any) -> bool:
    """Empty is valid; otherwise must be an absolute URL with scheme and host."""
    if _is_blank(value):
        return True
    if not isinstance(value, str):
        return False
    try:
        url = _url_adapter.validate_python(value)
    except PydanticValidationError:
        return False
    return bool(url.scheme and url.host)


def validate_text(value: Any, min_length: int, max_length: int) -> bool:
    """Length in characters within [min_length, max_length]; empty only if min is 0."""
    if _is_blank(value):
        return min_length == 0
    if not isinstance(value, str):
        return False
    return min_length <= len(value) <= max_length


def validate_number(value: Any, min_value: int, max_value: int) -> bool:
    """Absent is valid; otherwise must be an integer within [min_value, max_value]."""
    if _is_blank(value):
        return True
    if isinstance(value, bool):
        return False
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return False
    return min_value <= number <= max_value


def validate_email(email: str) -> bool:
    """Validate email format."""
    return bool(email) and bool(EMAIL_PATTERN.fullmatch(email))


def validate_phone(phone: str) -> bool:
    """Validate phone number."""
    # Simple validation for 10+ digits
    return bool(PHONE_PATTERN.fullmatch(phone))


def validate_name(name: Any) -> bool:
    return isinstance(name, str) and 2 <= len(name.strip()) <= 50


def validate_password_strength(password: str) -> tuple[bool, List[str]]:
    """Validate password strength."""
    errors = []

    if len(password) < 8:
        errors.append("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        errors.append("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        errors.append("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        errors.append("Password must contain at least one digit")

    return len(errors) == 0, errors


# ==================== Entity validators ====================

def validate_student_profile(data: Mapping[str, Any]) -> ValidationResult:
    result = ValidationResult()

    if not _is_blank(data.get("student_id_num")):
        result.check(validate_text(data["student_id_num"], 3, 20), "Student ID must be 3-20 characters")
    if not _is_blank(data.get("year_level")):
        result.check(data["year_level"] in YEAR_LEVELS, "Invalid year level")
    if not _is_blank(data.get("major")):
        result.check(validate_text(data["major"], 2, 100), "Major must be 2-100 characters")
    result.check(
        validate_date(data.get("date_of_birth")),
        "Invalid date of birth format (YYYY-MM-DD)",
    )
    result.check(validate_text(data.get("bio"), 0, 1000), "Bio must be 0-1000 characters")
    result.check(
        validate_text(data.get("short_term_goals"), 0, 500),
        "Short term goals must be 0-500 characters",
    )
    result.check(
        validate_text(data.get("long_term_goals"), 0, 500),
        "Long term goals must be 0-500 characters",
    )
    result.check(
        validate_text(data.get("career_aspirations"), 0, 500),
        "Career aspirations must be 0-500 characters",
    )
    result.check(validate_url(data.get("linkedin_url")), "Invalid LinkedIn URL")
    result.check(validate_url(data.get("portfolio_url")), "Invalid portfolio URL")
    result.check(validate_url(data.get("github_url")), "Invalid GitHub URL")
    return result


def validate_goal(data: Mapping[str, Any]) -> ValidationResult:
    result = ValidationResult()

    result.check(validate_text(data.get("title"), 3, 255), "Title must be 3-255 characters")
    result.check(
        validate_text(data.get("description"), 10, 1000),
        "Description must be 10-1000 characters",
    )
    result.check(data.get("category") in GOAL_CATEGORIES, "Invalid category")
    result.check(
        validate_date(data.get("target_date")),
        "Invalid target date format (YYYY-MM-DD)",
    )
    if not _is_blank(data.get("priority")):
        result.check(data["priority"] in GOAL_PRIORITIES, "Invalid priority")
    if not _is_blank(data.get("status")):
        result.check(data["status"] in GOAL_STATUSES, "Invalid status")
    return result


def validate_activity(data: Mapping[str, Any]) -> ValidationResult:
    result = ValidationResult()

    result.check(validate_text(data.get("title"), 3, 255), "Title must be 3-255 characters")
    result.check(data.get("category") in ACTIVITY_CATEGORIES, "Invalid category")
    result.check(
        validate_text(data.get("description"), 0, 1000),
        "Description must be 0-1000 characters",
    )

    start_date, end_date = data.get("start_date"), data.get("end_date")
    result.check(validate_date(start_date), "Invalid start date format (YYYY-MM-DD)")
    result.check(validate_date(end_date), "Invalid end date format (YYYY-MM-DD)")
    result.check(validate_date_range(start_date, end_date), "Start date cannot be after end date")

    result.check(
        validate_number(data.get("hours"), 0, ACTIVITY_MAX_HOURS),
        f"Hours must be between 0 and {ACTIVITY_MAX_HOURS}",
    )
    result.check(
        validate_text(data.get("organization"), 0, 255),
        "Organization must be 0-255 characters",
    )
    result.check(validate_text(data.get("position"), 0, 255), "Position must be 0-255 characters")
    result.check(
        validate_text(data.get("achievements"), 0, 1000),
        "Achievements must be 0-1000 characters",
    )
    return result


def validate_file_upload(
    data: Mapping[str, Any],
    max_size: int = DEFAULT_MAX_FILE_SIZE,
) -> ValidationResult:
    """Check an upload's declared MIME type, size and file name."""
    result = ValidationResult()

    result.check(
        data.get("file_type") in ALLOWED_UPLOAD_TYPES,
        "File type not allowed. Allowed: PDF, DOC, DOCX, JPG, PNG",
    )
    result.check(
        (data.get("file_size") or 0) <= max_size,
        f"File too large. Maximum size: {max_size // (1024 * 1024)}MB",
    )
    result.check(
        validate_text(data.get("file_name"), 1, 255),
        "File name must be 1-255 characters",
    )
    return result


def validate_skill_entry(data: Mapping[str, Any]) -> ValidationResult:
    result = ValidationResult()

    result.check(validate_text(data.get("name"), 1, 100), "Skill name must be 1-100 characters")
    if not _is_blank(data.get("category")):
        result.check(data["category"] in SKILL_CATEGORIES, "Invalid skill category")
    if not _is_blank(data.get("proficiency")):
        result.check(data["proficiency"] in PROFICIENCY_LEVELS, "Invalid proficiency level")
    result.check(
        validate_number(data.get("years_experience"), 0, 50),
        "Years of experience must be between 0 and 50",
    )
    return result


def validate_interest_entry(data: Mapping[str, Any]) -> ValidationResult:
    result = ValidationResult()

    result.check(validate_text(data.get("name"), 1, 100), "Interest name must be 1-100 characters")
    if not _is_blank(data.get("interest_level")):
        result.check(data["interest_level"] in INTEREST_LEVELS, "Invalid interest level")
    return result


def validate_group(data: Mapping[str, Any], partial: bool = False) -> ValidationResult:
    """Group payload; with ``partial`` only the fields present are checked."""
    result = ValidationResult()

    if not partial or "name" in data:
        result.check(validate_text(data.get("name"), 1, 255), "Group name must be 1-255 characters")
    result.check(
        validate_text(data.get("description"), 0, 1000),
        "Description must be 0-1000 characters",
    )
    result.check(
        validate_number(data.get("max_size"), GROUP_MIN_SIZE, GROUP_MAX_SIZE),
        f"Max size must be between {GROUP_MIN_SIZE} and {GROUP_MAX_SIZE}",
    )
    if not _is_blank(data.get("status")):
        result.check(data["status"] in GROUP_STATUSES, "Invalid status")

    members = data.get("member_ids")
    if members is not None:
        result.check(len(set(members)) == len(members), "Duplicate members")
        limit = data.get("max_size")
        if validate_number(limit, GROUP_MIN_SIZE, GROUP_MAX_SIZE) and not _is_blank(limit):
            result.check(
                len(members) <= int(limit),
                f"Group cannot have more than {int(limit)} members",
            )
    return result


def validate_survey_template(data: Mapping[str, Any], partial: bool = False) -> ValidationResult:
    result = ValidationResult()

    if not partial or "title" in data:
        result.check(validate_text(data.get("title"), 3, 255), "Title must be 3-255 characters")
    result.check(
        validate_text(data.get("description"), 0, 1000),
        "Description must be 0-1000 characters",
    )
    if not _is_blank(data.get("template_type")):
        result.check(data["template_type"] in SURVEY_TEMPLATE_TYPES, "Invalid template type")

    questions = data.get("questions")
    if partial and questions is None:
        return result
    if not questions:
        result.errors.append("At least one question is required")
        return result

    for number, question in enumerate(questions, start=1):
        result.check(
            validate_text(question.get("question_text"), 1, 1000),
            f"Question {number}: question text is required",
        )
        question_type = question.get("question_type")
        result.check(
            question_type in SURVEY_QUESTION_TYPES,
            f"Question {number}: invalid question type",
        )
        if question_type in SURVEY_CHOICE_TYPES:
            options = [o for o in (question.get("options") or []) if isinstance(o, str) and o.strip()]
            result.check(
                len(options) >= 2,
                f"Question {number}: choice questions need at least 2 options",
            )
    return result


def _answer_matches_type(question: Any, answer: Any) -> bool:
    question_type = question.question_type
    options = question.options or []

    if question_type == "multiple_choice":
        return answer in options
    if question_type == "multiple_select":
        return isinstance(answer, list) and all(item in options for item in answer)
    if question_type in ("rating_scale", "likert_scale"):
        return validate_number(answer, 1, 5) and not isinstance(answer, str)
    if question_type == "yes_no":
        return isinstance(answer, bool) or answer in ("yes", "no")
    if question_type == "number":
        return isinstance(answer, (int, float)) and not isinstance(answer, bool)
    if question_type == "date":
        return validate_date(answer)
    return isinstance(answer, str)


def validate_survey_answers(
    questions: Iterable[Any],
    answers: Mapping[str, Any],
    completion_status: str,
) -> ValidationResult:
    """
    Check answers (keyed by question id) against the template's questions.

    Required questions only need an answer once the response is completed.
    """
    result = ValidationResult()
    result.check(completion_status in SURVEY_COMPLETION_STATUSES, "Invalid completion status")

    by_id = {str(q.id): (number, q) for number, q in enumerate(questions, start=1)}
    for question_id, answer in answers.items():
        if question_id not in by_id:
            result.errors.append(f"Unknown question: {question_id}")
            continue
        number, question = by_id[question_id]
        if _is_blank(answer) or answer == []:
            continue
        result.check(
            _answer_matches_type(question, answer),
            f"Question {number}: invalid answer",
        )

    if completion_status == "completed":
        for question_id, (number, question) in by_id.items():
            answer = answers.get(question_id)
            if question.is_required and (_is_blank(answer) or answer == []):
                result.errors.append(f"Question {number} is required")
    return result


# ==================== Sanitizers ====================

def sanitize_text(value: Any) -> Any:
    """Trim and collapse internal whitespace runs; empty and non-text pass through."""
    if not value or not isinstance(value, str):
        return value
    return " ".join(value.split())


def sanitize_url(value: Any) -> Optional[str]:
    """Canonical form of a URL, None when it cannot be parsed."""
    if not value:
        return value
    try:
        return str(_url_adapter.validate_python(value))
    except PydanticValidationError:
        return None


PROFILE_TEXT_FIELDS = (
    "student_id_num",
    "year_level",
    "major",
    "bio",
    "short_term_goals",
    "long_term_goals",
    "career_aspirations",
    "phone",
)
PROFILE_URL_FIELDS = ("linkedin_url", "portfolio_url", "github_url")


def sanitize_profile(data: Mapping[str, Any]) -> dict:
    """
    Sanitize the recognized profile fields present in ``data``.

    Fields absent from the input stay absent. A URL that cannot be parsed
    is dropped rather than stored as an empty value.
    """
    sanitized = {}
    for name in PROFILE_TEXT_FIELDS:
        if name in data:
            sanitized[name] = sanitize_text(data[name])
    if "date_of_birth" in data:
        sanitized["date_of_birth"] = data["date_of_birth"]
    for name in PROFILE_URL_FIELDS:
        if name in data:
            url = sanitize_url(data[name])
            if url is None and data[name]:
                continue
            sanitized[name] = url
    return sanitized
