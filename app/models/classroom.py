"""Class and enrollment models."""

from sqlalchemy import Boolean, Column, ForeignKey, String, Text, UniqueConstraint, Uuid

from app.db.base import Base


class Class(Base):
    """A teacher's class; students join it with the class code at registration."""

    __tablename__ = "classes"

    name = Column(String(255), nullable=False)
    description = Column(Text)
    class_code = Column(String(20), unique=True, index=True, nullable=False)
    teacher_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<Class {self.name} [{self.class_code}]>"


class ClassEnrollment(Base):
    __tablename__ = "class_enrollments"
    __table_args__ = (
        UniqueConstraint("class_id", "student_profile_id", name="uq_class_enrollments_class_student"),
    )

    class_id = Column(Uuid(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    student_profile_id = Column(
        Uuid(as_uuid=True), ForeignKey("student_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
