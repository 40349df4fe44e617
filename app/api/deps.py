"""
API Dependencies
Authentication, authorization and shared resources for API endpoints.

Identity comes from one place only: an ``Authorization: Bearer <jwt>``
header. Role and ownership checks are layered on top of ``require_auth``.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.cache import CacheManager
from app.core.exceptions import AuthenticationError, AuthorizationError, NotFoundError
from app.core.security import STAFF_ROLES, Role, decode_token
from app.db.session import get_db
from app.models.classroom import Class
from app.models.student import StudentProfile
from app.models.user import RevokedToken, User

# auto_error=False so a missing header is reported by our own 401
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    """Authenticated caller attached to the request."""

    id: uuid.UUID
    role: str
    email: str
    user: User
    token_payload: dict

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT


def get_cache(request: Request) -> CacheManager:
    return request.app.state.cache


async def _resolve_caller(token: str, db: AsyncSession) -> CurrentUser:
    payload = decode_token(token)

    revoked = await db.execute(select(RevokedToken.id).where(RevokedToken.jti == payload.get("jti")))
    if revoked.scalar_one_or_none() is not None:
        raise AuthenticationError("Token has been revoked")

    try:
        user_id = uuid.UUID(payload["sub"])
    except ValueError:
        raise AuthenticationError("Invalid or expired token")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    return CurrentUser(id=user.id, role=user.role, email=user.email, user=user, token_payload=payload)


async def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Reject the request with 401 unless it carries a valid, unrevoked token."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")
    return await _resolve_caller(credentials.credentials, db)


async def optional_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[CurrentUser]:
    """The caller if a valid token is present, None otherwise. Never fails."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        return await _resolve_caller(credentials.credentials, db)
    except AuthenticationError:
        return None


def require_role(*allowed_roles: Role):
    """Dependency factory: the caller's role must be one of ``allowed_roles``."""
    allowed = {Role(role).value for role in allowed_roles}

    async def role_checker(caller: CurrentUser = Depends(require_auth)) -> CurrentUser:
        if caller.role not in allowed:
            raise AuthorizationError("Insufficient permissions")
        return caller

    return role_checker


require_staff = require_role(Role.TEACHER, Role.ADMIN)
require_student = require_role(Role.STUDENT)


async def get_own_profile(db: AsyncSession, caller: CurrentUser) -> Optional[StudentProfile]:
    result = await db.execute(select(StudentProfile).where(StudentProfile.user_id == caller.id))
    return result.scalar_one_or_none()


async def ensure_student_access(
    db: AsyncSession,
    caller: CurrentUser,
    student_profile_id: uuid.UUID,
) -> None:
    """
    Ownership rule: staff pass; a student passes only for their own profile.

    The caller's profile id is looked up, never taken from the request.
    """
    if caller.is_staff:
        return
    if not caller.is_student:
        raise AuthorizationError("Invalid user role")

    profile = await get_own_profile(db, caller)
    if profile is None:
        raise NotFoundError("Student profile not found")
    if profile.id != student_profile_id:
        raise AuthorizationError("Access denied: you can only access your own data")


async def require_student_ownership(
    student_id: uuid.UUID,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Path-parameter form of ``ensure_student_access`` for ``/students/{student_id}``."""
    await ensure_student_access(db, caller, student_id)
    return caller


async def require_class_access(
    class_id: uuid.UUID,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Admins pass; teachers only for a class they own; everyone else is refused."""
    if caller.role == Role.ADMIN:
        return caller
    if caller.role != Role.TEACHER:
        raise AuthorizationError("Access denied")

    result = await db.execute(
        select(Class.id).where(Class.id == class_id, Class.teacher_id == caller.id)
    )
    if result.scalar_one_or_none() is None:
        raise AuthorizationError("Access denied: not your class")
    return caller


async def ensure_class_scope(
    db: AsyncSession,
    caller: CurrentUser,
    class_id: Optional[uuid.UUID],
) -> Optional[uuid.UUID]:
    """
    Check an optional class filter on staff reports.

    No filter means every student. With a filter the class must exist, and
    a teacher must own it.
    """
    if class_id is None:
        return None
    class_ = (await db.execute(select(Class).where(Class.id == class_id))).scalar_one_or_none()
    if class_ is None:
        raise NotFoundError("Class not found")
    if caller.role != Role.ADMIN and class_.teacher_id != caller.id:
        raise AuthorizationError("Access denied: not your class")
    return class_id


def pagination_payload(page: int, limit: int, total: int) -> dict:
    total_pages = (total + limit - 1) // limit if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }
