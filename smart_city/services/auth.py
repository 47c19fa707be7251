"""
Token service: password and refresh-token authentication backed by the users
and sessions tables.

Access tokens are stateless JWTs. Refresh tokens are JWTs that are honoured
only while a live session row holds them; each refresh rotates the row in
place, so a refresh token works at most once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from functools import lru_cache
from typing import TYPE_CHECKING, Any

import jwt
from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from smart_city.core.roles import ROLE_CITIZEN
from smart_city.core.security import (
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_REFRESH,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    refresh_token_expiry,
    verify_password,
)
from smart_city.models import User, UserSession
from smart_city.models.user import default_preferences

if TYPE_CHECKING:
    from smart_city.core.config import Settings
    from smart_city.schemas.auth import RegisterRequest

logger = logging.getLogger(__name__)

# Checked against when the email is unknown so both login failure paths cost one bcrypt run.
_DUMMY_PASSWORD = "smart-city-dummy-password"


class AuthServiceError(Exception):
    """Base class for authentication failures raised by this module."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DuplicateEmailError(AuthServiceError):
    """Raised when registering an email that already has an account."""


class InvalidCredentialsError(AuthServiceError):
    """Raised for unknown email, wrong password, or wrong current password."""


class AccountDeactivatedError(AuthServiceError):
    """Raised when a deactivated account presents a correct password."""


class InvalidTokenError(AuthServiceError):
    """Raised when a refresh token is malformed, expired, revoked or already rotated."""


class UserNotFoundError(AuthServiceError):
    """Raised when a user id no longer resolves to a user."""


@dataclass
class AuthResult:
    user: User
    token: str
    refresh_token: str


@dataclass
class TokenPairResult:
    token: str
    refresh_token: str


@lru_cache(maxsize=4)
def _dummy_hash(rounds: int) -> str:
    return hash_password(_DUMMY_PASSWORD, rounds)


def _issue_tokens(user: User, settings: Settings) -> TokenPairResult:
    return TokenPairResult(
        token=create_access_token(user.id, user.email, user.role, settings),
        refresh_token=create_refresh_token(user.id, user.email, user.role, settings),
    )


def _open_session(db: Session, user: User, refresh_token: str, settings: Settings) -> None:
    db.add(
        UserSession(
            user_id=user.id,
            token=refresh_token,
            expires_at=refresh_token_expiry(settings),
        )
    )


def get_user(db: Session, user_id: int) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def register(db: Session, settings: Settings, data: RegisterRequest) -> AuthResult:
    """
    Create an account (role CITIZEN unless given) and log it in.

    Raises DuplicateEmailError if the email is taken.
    """
    if get_user_by_email(db, data.email) is not None:
        raise DuplicateEmailError("User with this email already exists")

    user = User(
        email=data.email,
        password_hash=hash_password(data.password, settings.BCRYPT_ROUNDS),
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        address=data.address,
        city=data.city,
        postal_code=data.postal_code,
        role=data.role or ROLE_CITIZEN,
        is_active=True,
        preferences=default_preferences(),
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError as e:
        # Lost a race with a concurrent registration for the same email.
        db.rollback()
        raise DuplicateEmailError("User with this email already exists") from e

    tokens = _issue_tokens(user, settings)
    _open_session(db, user, tokens.refresh_token, settings)
    db.commit()
    db.refresh(user)

    logger.info("User registered", extra={"user_id": user.id, "role": user.role})
    return AuthResult(user=user, token=tokens.token, refresh_token=tokens.refresh_token)


def login(db: Session, settings: Settings, email: str, password: str) -> AuthResult:
    """
    Authenticate with email and password and open a new session.

    Unknown email and wrong password raise the same InvalidCredentialsError.
    The active flag is only checked once the password has verified, so a
    deactivated account is not revealed to someone without its password.
    """
    user = get_user_by_email(db, email)
    if user is None:
        verify_password(password, _dummy_hash(settings.BCRYPT_ROUNDS))
        logger.info("Login failed", extra={"reason": "invalid_credentials"})
        raise InvalidCredentialsError("Invalid email or password")
    if not verify_password(password, user.password_hash):
        logger.info("Login failed", extra={"reason": "invalid_credentials"})
        raise InvalidCredentialsError("Invalid email or password")
    if not user.is_active:
        logger.warning("Login rejected for deactivated account", extra={"user_id": user.id})
        raise AccountDeactivatedError("Account is deactivated")

    tokens = _issue_tokens(user, settings)
    _open_session(db, user, tokens.refresh_token, settings)
    db.commit()
    return AuthResult(user=user, token=tokens.token, refresh_token=tokens.refresh_token)


def refresh(db: Session, settings: Settings, refresh_token: str) -> TokenPairResult:
    """
    Exchange a refresh token for a new access/refresh pair, rotating its session.

    The session row is updated only if it still holds the presented token, so
    of two concurrent refreshes with the same token exactly one succeeds.
    """
    try:
        payload = decode_token(refresh_token, settings, TOKEN_TYPE_REFRESH)
    except jwt.PyJWTError as e:
        logger.info("Refresh rejected", extra={"reason": type(e).__name__})
        raise InvalidTokenError("Invalid refresh token") from e

    now = datetime.now(UTC)
    session = (
        db.query(UserSession)
        .filter(
            UserSession.token == refresh_token,
            UserSession.user_id == payload["userId"],
            UserSession.expires_at > now,
        )
        .first()
    )
    if session is None:
        logger.info("Refresh rejected", extra={"reason": "no_live_session"})
        raise InvalidTokenError("Invalid refresh token")
    user = get_user(db, session.user_id)
    if user is None or not user.is_active:
        logger.info("Refresh rejected", extra={"reason": "inactive_user"})
        raise InvalidTokenError("Invalid refresh token")

    tokens = _issue_tokens(user, settings)
    result = db.execute(
        update(UserSession)
        .where(UserSession.id == session.id, UserSession.token == refresh_token)
        .values(token=tokens.refresh_token, expires_at=refresh_token_expiry(settings))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        logger.info("Refresh rejected", extra={"reason": "already_rotated"})
        raise InvalidTokenError("Invalid refresh token")
    db.commit()
    return tokens


def logout(db: Session, refresh_token: str) -> int:
    """Delete the session holding refresh_token. Idempotent; returns rows deleted."""
    result = db.execute(
        delete(UserSession)
        .where(UserSession.token == refresh_token)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount or 0


def logout_all(db: Session, user_id: int) -> int:
    """Delete every session of the user. Returns rows deleted."""
    result = db.execute(
        delete(UserSession)
        .where(UserSession.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    deleted = result.rowcount or 0
    logger.info("Logged out all sessions", extra={"user_id": user_id, "sessions_deleted": deleted})
    return deleted


def change_password(
    db: Session,
    settings: Settings,
    user_id: int,
    current_password: str,
    new_password: str,
) -> None:
    """Replace the password after checking the current one, then end every session."""
    user = get_user(db, user_id)
    if user is None:
        raise UserNotFoundError("User not found")
    if not verify_password(current_password, user.password_hash):
        raise InvalidCredentialsError("Current password is incorrect")

    user.password_hash = hash_password(new_password, settings.BCRYPT_ROUNDS)
    db.commit()
    logger.info("Password changed", extra={"user_id": user_id})
    logout_all(db, user_id)


def verify_access_token(settings: Settings, token: str) -> dict[str, Any] | None:
    """Decode an access token; None on any signature, expiry or type error. No DB access."""
    try:
        return decode_token(token, settings, TOKEN_TYPE_ACCESS)
    except jwt.PyJWTError:
        return None
