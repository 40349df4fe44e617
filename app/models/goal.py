"""Goal and extracurricular activity models."""

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text, Uuid

from app.db.base import Base


class Goal(Base):
    """A student goal. Status follows the transitions in app.utils.constants."""

    __tablename__ = "goals"

    student_profile_id = Column(
        Uuid(as_uuid=True), ForeignKey("student_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(20), nullable=False)
    priority = Column(String(20), nullable=False, default="medium")
    status = Column(String(20), nullable=False, default="active", index=True)
    target_date = Column(Date)
    progress_notes = Column(Text)
    completed_at = Column(DateTime)

    def __repr__(self):
        return f"<Goal {self.title} ({self.status})>"


class Activity(Base):
    """Extracurricular record."""

    __tablename__ = "activities"

    student_profile_id = Column(
        Uuid(as_uuid=True), ForeignKey("student_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String(255), nullable=False)
    category = Column(String(20), nullable=False)
    description = Column(Text)
    start_date = Column(Date)
    end_date = Column(Date)
    is_current = Column(Boolean, default=False, nullable=False)
    hours = Column(Integer, default=0, nullable=False)
    organization = Column(String(255))
    position = Column(String(255))
    achievements = Column(Text)

    def __repr__(self):
        return f"<Activity {self.title}>"
