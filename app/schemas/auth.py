"""Authentication schemas."""

from __future__ import annotations  # Enable forward references

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.schemas.common import APIResponse


class RegisterRequest(BaseModel):
    """
    Register request schema.

    Fields are checked by the registration validator rather than by pydantic
    so that every problem is reported in one response.
    """

    email: str = ""
    password: str = ""
    first_name: str = ""
    last_name: str = ""
    role: str = "student"
    class_code: Optional[str] = Field(None, description="Required for students")


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str


class UserResponse(BaseModel):
    """User response schema."""

    id: UUID
    email: str
    first_name: str
    last_name: str
    role: str
    phone: Optional[str] = None
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ProfileSummary(BaseModel):
    id: UUID
    student_id_num: Optional[str] = None
    year_level: Optional[str] = None
    major: Optional[str] = None
    profile_completion_percentage: int = 0

    class Config:
        from_attributes = True


class AuthResponse(APIResponse):
    """Register and login response: the user plus a bearer token."""

    user: UserResponse
    token: str
    token_type: str = "bearer"


class MeResponse(APIResponse):
    authenticated: bool
    user: Optional[UserResponse] = None
    profile: Optional[ProfileSummary] = None


class ForgotPasswordResponse(APIResponse):
    # Only populated in development
    debug_reset_token: Optional[str] = None


# Rebuild models to resolve forward references
AuthResponse.model_rebuild()
MeResponse.model_rebuild()
