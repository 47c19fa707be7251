"""Request/response schemas for auth endpoints."""

import re
from datetime import datetime
from typing import Any

from pydantic import EmailStr, Field, field_validator

from smart_city.core.roles import Role
from smart_city.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN
from smart_city.schemas.common import CamelModel

PASSWORD_SPECIAL_CHARS = "@$!%*?&"
PHONE_PATTERN = r"^\+?[\d\s\-\(\)]+$"


def validate_password_strength(value: str) -> str:
    """Require one lowercase, one uppercase, one digit and one of @$!%*?&."""
    if not re.search(r"[a-z]", value):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"[A-Z]", value):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"\d", value):
        raise ValueError("Password must contain at least one number")
    if not any(ch in PASSWORD_SPECIAL_CHARS for ch in value):
        raise ValueError(
            f"Password must contain at least one special character ({PASSWORD_SPECIAL_CHARS})"
        )
    return value


def _normalize_email(value: str) -> str:
    return value.strip().lower()


class RegisterRequest(CamelModel):
    """New account details. role defaults to CITIZEN when omitted."""

    email: EmailStr = Field(..., description="Unique email address")
    password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)
    first_name: str = Field(..., min_length=2, max_length=50)
    last_name: str = Field(..., min_length=2, max_length=50)
    phone: str | None = Field(default=None, max_length=32, pattern=PHONE_PATTERN)
    address: str | None = Field(default=None, max_length=200)
    city: str | None = Field(default=None, max_length=100)
    postal_code: str | None = Field(default=None, max_length=20)
    role: Role | None = None

    normalize_email = field_validator("email")(_normalize_email)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password_strength(v)


class LoginRequest(CamelModel):
    """Credentials for login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)

    normalize_email = field_validator("email")(_normalize_email)


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1, max_length=1024)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    new_password: str = Field(..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)

    @field_validator("new_password")
    @classmethod
    def check_new_password(cls, v: str) -> str:
        return validate_password_strength(v)


class UserOut(CamelModel):
    """User profile as returned by the API (never includes the password hash)."""

    id: int
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    role: Role
    is_active: bool
    avatar: str | None = None
    preferences: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime


class AuthData(CamelModel):
    """Result of register and login."""

    user: UserOut
    token: str
    refresh_token: str


class TokenPair(CamelModel):
    """Result of refresh-token."""

    token: str
    refresh_token: str


class ProfileData(CamelModel):
    user: UserOut


class CurrentUser(CamelModel):
    """Authenticated user resolved from the access token and re-read from the database."""

    id: int
    email: str
    first_name: str
    last_name: str
    role: Role
    is_active: bool


class TokenClaims(CamelModel):
    """Identity claims decoded from an access token."""

    user_id: int
    email: str
    role: Role
    iat: int | None = None
    exp: int | None = None


class VerifyTokenData(CamelModel):
    user: TokenClaims
