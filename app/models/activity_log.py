"""Audit trail and uploaded file models."""

from sqlalchemy import Column, ForeignKey, Integer, String, Uuid

from app.db.base import Base, JSONType


class ActivityLog(Base):
    """One row per significant action (register, login, profile update, ...)."""

    __tablename__ = "activity_logs"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), index=True)
    action = Column(String(50), nullable=False, index=True)
    resource_type = Column(String(50))
    resource_id = Column(String(64))
    details = Column(JSONType, default=dict)
    ip_address = Column(String(45))

    def __repr__(self):
        return f"<ActivityLog {self.action} by {self.user_id}>"


class UploadedFile(Base):
    __tablename__ = "uploaded_files"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    filename = Column(String(300), nullable=False)  # stored name, unique on disk
    original_filename = Column(String(255), nullable=False)
    file_type = Column(String(100), nullable=False)
    file_size = Column(Integer, nullable=False)
    category = Column(String(20), nullable=False, default="document")
    upload_ip = Column(String(45))
