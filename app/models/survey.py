"""Survey template, question and response models."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)

from app.db.base import Base, JSONType


class SurveyTemplate(Base):
    __tablename__ = "survey_templates"

    title = Column(String(255), nullable=False)
    description = Column(Text)
    template_type = Column(String(50), nullable=False, default="general")
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    # Soft delete flag
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<SurveyTemplate {self.title}>"


class SurveyQuestion(Base):
    __tablename__ = "survey_questions"

    template_id = Column(
        Uuid(as_uuid=True), ForeignKey("survey_templates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False, default=0)
    question_text = Column(Text, nullable=False)
    question_type = Column(String(30), nullable=False)
    is_required = Column(Boolean, default=False, nullable=False)
    options = Column(JSONType)  # choice labels for multiple_choice / multiple_select


class SurveyResponse(Base):
    __tablename__ = "survey_responses"
    __table_args__ = (
        UniqueConstraint("template_id", "student_profile_id", name="uq_survey_responses_template_student"),
    )

    template_id = Column(
        Uuid(as_uuid=True), ForeignKey("survey_templates.id", ondelete="CASCADE"), nullable=False
    )
    student_profile_id = Column(
        Uuid(as_uuid=True), ForeignKey("student_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # {question_id: answer}
    responses = Column(JSONType, nullable=False, default=dict)
    completion_status = Column(String(20), nullable=False, default="completed")
    completed_at = Column(DateTime)
