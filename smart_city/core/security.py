"""Password hashing and JWT creation/verification for authentication."""

import secrets
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import bcrypt
import jwt

if TYPE_CHECKING:
    from smart_city.core.config import Settings

# Min/max lengths for password validation; bcrypt only reads the first 72 bytes.
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"


def hash_password(plain_password: str, rounds: int = 12) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def _encode(
    user_id: int,
    email: str,
    role: str,
    token_type: str,
    lifetime: timedelta,
    settings: "Settings",
) -> str:
    now = datetime.now(UTC)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "userId": user_id,
        "email": email,
        "role": role,
        "type": token_type,
        # Unique per token so two tokens minted in the same second never collide.
        "jti": secrets.token_hex(16),
        "iat": now,
        "exp": now + lifetime,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
    }
    return jwt.encode(
        payload,
        settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def create_access_token(user_id: int, email: str, role: str, settings: "Settings") -> str:
    """Create a short-lived JWT access token carrying userId, email and role."""
    return _encode(
        user_id,
        email,
        role,
        TOKEN_TYPE_ACCESS,
        timedelta(minutes=settings.JWT_ACCESS_EXPIRE_MINUTES),
        settings,
    )


def create_refresh_token(user_id: int, email: str, role: str, settings: "Settings") -> str:
    """Create a JWT refresh token; it is only honoured while a session row holds it."""
    return _encode(
        user_id,
        email,
        role,
        TOKEN_TYPE_REFRESH,
        timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS),
        settings,
    )


def refresh_token_expiry(settings: "Settings") -> datetime:
    """Absolute expiry stored on a session row for a newly issued refresh token."""
    return datetime.now(UTC) + timedelta(days=settings.JWT_REFRESH_EXPIRE_DAYS)


def decode_token(token: str, settings: "Settings", expected_type: str) -> dict[str, Any]:
    """
    Decode and validate a JWT (signature, exp, iss, aud) and check its type claim.

    Raises jwt.ExpiredSignatureError for expired tokens and another
    jwt.PyJWTError subclass for anything else that is wrong with the token.
    """
    payload = jwt.decode(
        token,
        settings.JWT_SECRET.get_secret_value(),
        algorithms=[settings.JWT_ALGORITHM],
        issuer=settings.JWT_ISSUER,
        audience=settings.JWT_AUDIENCE,
        options={"require": ["exp", "iat", "sub", "iss", "aud"]},
    )
    if payload.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"Expected a {expected_type} token")
    if not isinstance(payload.get("userId"), int):
        raise jwt.InvalidTokenError("Token payload has no user id")
    return payload
