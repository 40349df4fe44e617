"""Security utilities: JWT, password hashing, roles."""

import hashlib
import secrets
import string
import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.config import settings
from app.core.exceptions import AuthenticationError

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


class Role(str, Enum):
    """User roles."""

    ADMIN = "admin"
    TEACHER = "teacher"
    STUDENT = "student"


# Roles a visitor may pick for themselves at registration
SELF_REGISTER_ROLES = (Role.TEACHER, Role.STUDENT)

# Roles that may see and act on any student's records
STAFF_ROLES = (Role.ADMIN, Role.TEACHER)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(plain_password, password_hash)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token.

    Every token gets a unique ``jti`` so that logout can revoke it.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
    to_encode.update({"exp": expire, "type": "access", "jti": uuid.uuid4().hex})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_user_token(user) -> str:
    """Issue an access token carrying the caller identity claims."""
    return create_access_token({
        "sub": str(user.id),
        "role": user.role,
        "email": user.email,
    })


def decode_token(token: str) -> dict:
    """Decode and verify JWT token."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        raise AuthenticationError("Invalid or expired token")

    if payload.get("type") != "access" or not payload.get("sub"):
        raise AuthenticationError("Invalid or expired token")
    return payload


def token_expiry(payload: dict) -> datetime:
    """Expiry of a decoded token as a naive UTC datetime."""
    return datetime.utcfromtimestamp(payload["exp"])


def generate_reset_token() -> str:
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    """SHA256 of a one-time token, the only form that is stored."""
    return hashlib.sha256(token.encode()).hexdigest()


def generate_class_code(length: int = 8) -> str:
    alphabet = string.ascii_uppercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))
