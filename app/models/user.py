"""User model."""

from sqlalchemy import Boolean, Column, DateTime, String

from app.db.base import Base


class User(Base):
    """User model for authentication. Users are deactivated, never deleted."""

    __tablename__ = "users"

    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="student")
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    phone = Column(String(20))
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime)

    # Password reset (only the SHA256 of the token is stored)
    reset_token_hash = Column(String(64), index=True)
    reset_token_expires = Column(DateTime)

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"


class RevokedToken(Base):
    """Access token ids invalidated by logout."""

    __tablename__ = "revoked_tokens"

    jti = Column(String(64), unique=True, index=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
