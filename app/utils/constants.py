"""Common constants."""

# Profile
YEAR_LEVELS = ["Freshman", "Sophomore", "Junior", "Senior", "Graduate"]

# Goals
GOAL_CATEGORIES = ["academic", "career", "personal", "skill", "project"]
GOAL_PRIORITIES = ["low", "medium", "high", "urgent"]
GOAL_STATUSES = ["active", "completed", "paused", "cancelled"]

# Allowed goal status changes; setting the current status again is a no-op
GOAL_STATUS_TRANSITIONS = {
    "active": ["completed", "paused", "cancelled"],
    "paused": ["active"],
    "completed": [],
    "cancelled": [],
}

# Activities
ACTIVITY_CATEGORIES = ["academic", "sports", "volunteer", "work", "creative", "leadership", "other"]
ACTIVITY_MAX_HOURS = 10000

# Skills and interests
SKILL_CATEGORIES = ["technical", "soft"]
PROFICIENCY_LEVELS = ["beginner", "intermediate", "advanced", "expert"]
INTEREST_LEVELS = ["low", "medium", "high"]

# Groups
GROUP_STATUSES = ["active", "inactive", "completed"]
GROUP_MIN_SIZE = 2
GROUP_MAX_SIZE = 6
GROUP_DEFAULT_SIZE = 4
GROUP_QUALITY_WEIGHTS = {
    "skill_diversity": 0.3,
    "experience_balance": 0.3,
    "profile_completeness": 0.2,
    "group_size": 0.2,
}

# Surveys
SURVEY_TEMPLATE_TYPES = [
    "general",
    "beginning_term",
    "mid_term",
    "end_term",
    "skills_assessment",
    "team_preferences",
]
SURVEY_QUESTION_TYPES = [
    "multiple_choice",
    "multiple_select",
    "text_short",
    "text_long",
    "rating_scale",
    "likert_scale",
    "yes_no",
    "date",
    "number",
]
SURVEY_CHOICE_TYPES = ["multiple_choice", "multiple_select"]
SURVEY_COMPLETION_STATUSES = ["in_progress", "completed"]

# File uploads
ALLOWED_UPLOAD_TYPES = [
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "image/jpeg",
    "image/png",
    "image/jpg",
]
FILE_CATEGORIES = ["document", "resume", "profile_photo"]

# Activity log actions
ACTION_USER_REGISTER = "user_register"
ACTION_USER_LOGIN = "user_login"
ACTION_USER_LOGOUT = "user_logout"
ACTION_PASSWORD_RESET_REQUEST = "password_reset_request"
ACTION_PASSWORD_RESET = "password_reset"
ACTION_PROFILE_UPDATE = "profile_update"
ACTION_FILE_UPLOAD = "file_upload"
ACTION_FILE_DELETE = "file_delete"
