"""Skill and interest catalogs and their per-student join rows."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, UniqueConstraint, Uuid

from app.db.base import Base


class Skill(Base):
    """Shared skill catalog entry, unique by (name, category)."""

    __tablename__ = "skills"
    __table_args__ = (UniqueConstraint("name", "category", name="uq_skills_name_category"),)

    name = Column(String(100), nullable=False)
    category = Column(String(50), nullable=False)  # technical, soft

    def __repr__(self):
        return f"<Skill {self.name} ({self.category})>"


class StudentSkill(Base):
    __tablename__ = "student_skills"
    __table_args__ = (
        UniqueConstraint("student_profile_id", "skill_id", name="uq_student_skills_student_skill"),
    )

    student_profile_id = Column(
        Uuid(as_uuid=True), ForeignKey("student_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    skill_id = Column(Uuid(as_uuid=True), ForeignKey("skills.id", ondelete="CASCADE"), nullable=False)
    proficiency_level = Column(String(20), nullable=False, default="beginner")
    years_experience = Column(Integer, default=0, nullable=False)
    verified = Column(Boolean, default=False, nullable=False)


class Interest(Base):
    """Shared interest catalog entry, unique by name."""

    __tablename__ = "interests"

    name = Column(String(100), unique=True, nullable=False)
    category = Column(String(50))

    def __repr__(self):
        return f"<Interest {self.name}>"


class StudentInterest(Base):
    __tablename__ = "student_interests"
    __table_args__ = (
        UniqueConstraint(
            "student_profile_id", "interest_id", name="uq_student_interests_student_interest"
        ),
    )

    student_profile_id = Column(
        Uuid(as_uuid=True), ForeignKey("student_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    interest_id = Column(Uuid(as_uuid=True), ForeignKey("interests.id", ondelete="CASCADE"), nullable=False)
    interest_level = Column(String(20), nullable=False, default="medium")
