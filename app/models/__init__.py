"""Database models."""

# Import all models in dependency order so that every table is registered
# on Base.metadata before create_all or Alembic autogenerate runs

# Base models (no foreign keys)
from app.models.user import RevokedToken, User
from app.models.skill import Interest, Skill

# Models with foreign keys to users
from app.models.activity_log import ActivityLog, UploadedFile
from app.models.student import StudentProfile
from app.models.classroom import Class, ClassEnrollment

# Models with foreign keys to student profiles
from app.models.skill import StudentInterest, StudentSkill
from app.models.goal import Activity, Goal
from app.models.group import Group, GroupMember
from app.models.survey import SurveyQuestion, SurveyResponse, SurveyTemplate

# Export all models
__all__ = [
    "User",
    "RevokedToken",
    "Skill",
    "Interest",
    "ActivityLog",
    "UploadedFile",
    "StudentProfile",
    "Class",
    "ClassEnrollment",
    "StudentSkill",
    "StudentInterest",
    "Goal",
    "Activity",
    "Group",
    "GroupMember",
    "SurveyTemplate",
    "SurveyQuestion",
    "SurveyResponse",
]
