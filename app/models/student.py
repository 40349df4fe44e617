"""Student profile model."""

from sqlalchemy import Column, Date, ForeignKey, Integer, String, Text, Uuid

from app.db.base import Base


class StudentProfile(Base):
    """Academic profile, one per student user."""

    __tablename__ = "student_profiles"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), unique=True, nullable=False)
    student_id_num = Column(String(20))
    year_level = Column(String(20))  # Freshman, Sophomore, Junior, Senior, Graduate
    major = Column(String(100))
    date_of_birth = Column(Date)
    bio = Column(Text)

    short_term_goals = Column(Text)
    long_term_goals = Column(Text)
    career_aspirations = Column(Text)

    linkedin_url = Column(String(500))
    portfolio_url = Column(String(500))
    github_url = Column(String(500))

    # Derived, recomputed on every profile, skill or interest write
    profile_completion_percentage = Column(Integer, default=0, nullable=False)
    profile_photo_id = Column(Uuid(as_uuid=True), ForeignKey("uploaded_files.id", ondelete="SET NULL"))

    def __repr__(self):
        return f"<StudentProfile {self.id} user={self.user_id}>"
