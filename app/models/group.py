"""Student group models."""

from sqlalchemy import Column, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid

from app.db.base import Base, JSONType


class Group(Base):
    __tablename__ = "groups"

    name = Column(String(255), nullable=False)
    description = Column(Text)
    project = Column(String(255))
    max_size = Column(Integer, nullable=False, default=4)
    status = Column(String(20), nullable=False, default="active")
    # How the group was produced: {"algorithm": ..., "formation_date": ..., "quality_score": ...}
    formation_criteria = Column(JSONType, default=dict)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"))

    def __repr__(self):
        return f"<Group {self.name}>"


class GroupMember(Base):
    __tablename__ = "group_members"
    __table_args__ = (
        UniqueConstraint("group_id", "student_profile_id", name="uq_group_members_group_student"),
    )

    group_id = Column(Uuid(as_uuid=True), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False, index=True)
    student_profile_id = Column(
        Uuid(as_uuid=True), ForeignKey("student_profiles.id", ondelete="CASCADE"), nullable=False
    )
    role = Column(String(50), default="member")
