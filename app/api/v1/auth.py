"""Authentication endpoints."""

from datetime import datetime, timedelta
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, optional_auth, require_auth
from app.config import settings
from app.core.exceptions import AuthenticationError, ConflictError, ValidationError
from app.core.rate_limit import auth_limiter, password_reset_limiter
from app.core.security import (
    SELF_REGISTER_ROLES,
    Role,
    create_user_token,
    generate_reset_token,
    get_password_hash,
    hash_token,
    token_expiry,
    verify_password,
)
from app.db.session import atomic, get_db
from app.models.classroom import Class, ClassEnrollment
from app.models.student import StudentProfile
from app.models.user import RevokedToken, User
from app.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    MeResponse,
    ProfileSummary,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
)
from app.schemas.common import APIResponse
from app.services.activity_log import log_activity
from app.utils import constants
from app.utils.validators import validate_email, validate_name, validate_password_strength

logger = structlog.get_logger(__name__)

router = APIRouter()

DUPLICATE_EMAIL_MESSAGE = "An account with this email already exists"
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
FORGOT_PASSWORD_MESSAGE = (
    "If an account exists with this email, you will receive password reset instructions"
)


def _registration_errors(request: RegisterRequest) -> List[dict]:
    errors = []
    if not validate_email(request.email.strip()):
        errors.append({"field": "email", "message": "Valid email is required"})

    ok, password_errors = validate_password_strength(request.password)
    if not ok:
        errors.extend({"field": "password", "message": m} for m in password_errors)

    if not validate_name(request.first_name):
        errors.append({"field": "first_name", "message": "First name must be 2-50 characters"})
    if not validate_name(request.last_name):
        errors.append({"field": "last_name", "message": "Last name must be 2-50 characters"})

    if request.role not in [r.value for r in SELF_REGISTER_ROLES]:
        errors.append({"field": "role", "message": "Role must be teacher or student"})
    elif request.role == Role.STUDENT and not (request.class_code or "").strip():
        errors.append({"field": "class_code", "message": "Class code is required for students"})
    return errors


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth_limiter)],
)
async def register(
    request: RegisterRequest,
    http_request: Request,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new teacher or student account.

    Students must supply the code of an active class; the user, their
    profile and the class enrollment are created together.
    """
    errors = _registration_errors(request)
    if errors:
        raise ValidationError(errors)

    email = request.email.strip().lower()

    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

    class_ = None
    if request.role == Role.STUDENT:
        result = await db.execute(
            select(Class).where(
                Class.class_code == request.class_code.strip().upper(),
                Class.is_active.is_(True),
            )
        )
        class_ = result.scalar_one_or_none()
        if class_ is None:
            raise ValidationError(
                [{"field": "class_code", "message": "Invalid or inactive class code"}]
            )

    async with atomic(db, conflict_message=DUPLICATE_EMAIL_MESSAGE):
        user = User(
            email=email,
            password_hash=get_password_hash(request.password),
            role=request.role,
            first_name=request.first_name.strip(),
            last_name=request.last_name.strip(),
        )
        db.add(user)
        await db.flush()

        if class_ is not None:
            profile = StudentProfile(user_id=user.id, profile_completion_percentage=0)
            db.add(profile)
            await db.flush()
            db.add(ClassEnrollment(class_id=class_.id, student_profile_id=profile.id))

        log_activity(
            db,
            user.id,
            constants.ACTION_USER_REGISTER,
            resource_type="user",
            resource_id=user.id,
            details={"role": user.role, "class_id": str(class_.id) if class_ else None},
            request=http_request,
        )

    logger.info("user_registered", user_id=str(user.id), role=user.role)
    return AuthResponse(
        message="Account created successfully",
        user=UserResponse.model_validate(user),
        token=create_user_token(user),
    )


@router.post("/login", response_model=AuthResponse, dependencies=[Depends(auth_limiter)])
async def login(
    request: LoginRequest,
    http_request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Login with email and password."""
    result = await db.execute(select(User).where(User.email == request.email.strip().lower()))
    user = result.scalar_one_or_none()

    # Same answer for unknown email, inactive account and wrong password
    if user is None or not user.is_active or not verify_password(request.password, user.password_hash):
        logger.info("login_failed")
        raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

    async with atomic(db):
        user.last_login = datetime.utcnow()
        log_activity(db, user.id, constants.ACTION_USER_LOGIN, resource_type="user",
                     resource_id=user.id, request=http_request)

    return AuthResponse(
        message="Login successful",
        user=UserResponse.model_validate(user),
        token=create_user_token(user),
    )


@router.post("/logout", response_model=APIResponse)
async def logout(
    http_request: Request,
    caller: CurrentUser = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    """Revoke the bearer token used for this request."""
    payload = caller.token_payload
    async with atomic(db):
        db.add(RevokedToken(jti=payload["jti"], expires_at=token_expiry(payload)))
        log_activity(db, caller.id, constants.ACTION_USER_LOGOUT, resource_type="user",
                     resource_id=caller.id, request=http_request)
    return APIResponse(message="Logged out successfully")


@router.get("/me", response_model=MeResponse, response_model_exclude_none=True)
async def me(
    caller: Optional[CurrentUser] = Depends(optional_auth),
    db: AsyncSession = Depends(get_db),
):
    """Current user, or ``authenticated: false`` for anonymous callers."""
    if caller is None:
        return MeResponse(success=False, authenticated=False, message="Not authenticated")

    profile = None
    if caller.is_student:
        result = await db.execute(select(StudentProfile).where(StudentProfile.user_id == caller.id))
        row = result.scalar_one_or_none()
        if row is not None:
            profile = ProfileSummary.model_validate(row)

    return MeResponse(
        authenticated=True,
        user=UserResponse.model_validate(caller.user),
        profile=profile,
    )


@router.post(
    "/forgot-password",
    response_model=ForgotPasswordResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(password_reset_limiter)],
)
async def forgot_password(
    request: ForgotPasswordRequest,
    http_request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Issue a one-hour reset token. The answer never reveals whether the email exists."""
    response = ForgotPasswordResponse(message=FORGOT_PASSWORD_MESSAGE)

    result = await db.execute(
        select(User).where(User.email == request.email.strip().lower(), User.is_active.is_(True))
    )
    user = result.scalar_one_or_none()
    if user is None:
        return response

    token = generate_reset_token()
    async with atomic(db):
        user.reset_token_hash = hash_token(token)
        user.reset_token_expires = datetime.utcnow() + timedelta(
            minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES
        )
        log_activity(db, user.id, constants.ACTION_PASSWORD_RESET_REQUEST, resource_type="user",
                     resource_id=user.id, request=http_request)

    # Email delivery is handled outside this service
    logger.info("password_reset_requested", user_id=str(user.id))
    if settings.is_development:
        response.debug_reset_token = token
    return response


@router.post(
    "/reset-password",
    response_model=APIResponse,
    dependencies=[Depends(password_reset_limiter)],
)
async def reset_password(
    request: ResetPasswordRequest,
    http_request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Set a new password using a reset token."""
    ok, password_errors = validate_password_strength(request.password)
    if not ok:
        raise ValidationError([{"field": "password", "message": m} for m in password_errors])

    result = await db.execute(
        select(User).where(
            User.reset_token_hash == hash_token(request.token),
            User.reset_token_expires > datetime.utcnow(),
        )
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise ValidationError(message="Invalid or expired reset token")

    async with atomic(db):
        user.password_hash = get_password_hash(request.password)
        user.reset_token_hash = None
        user.reset_token_expires = None
        log_activity(db, user.id, constants.ACTION_PASSWORD_RESET, resource_type="user",
                     resource_id=user.id, request=http_request)

    return APIResponse(message="Password reset successfully")
