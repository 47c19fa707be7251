"""Auth dependencies: required/optional Bearer authentication and role gates."""

from collections.abc import Callable, Iterable
from typing import Annotated

import jwt
from fastapi import Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from smart_city.core.config import Settings, get_settings
from smart_city.core.database import get_db
from smart_city.core.errors import ApiError, ErrorCodes
from smart_city.core.roles import ADMIN_ONLY, ANY_AUTHENTICATED, STAFF, is_authorized
from smart_city.core.security import TOKEN_TYPE_ACCESS, decode_token
from smart_city.schemas.auth import CurrentUser
from smart_city.services.auth import get_user

security = HTTPBearer(auto_error=False)

_BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


def _unauthorized(error: str, message: str) -> ApiError:
    return ApiError(
        status.HTTP_401_UNAUTHORIZED,
        error,
        message,
        headers=_BEARER_CHALLENGE,
    )


def _resolve_user(token: str, db: Session, settings: Settings) -> CurrentUser:
    """Verify the access token, then re-read the user so revoked accounts are rejected."""
    try:
        payload = decode_token(token, settings, TOKEN_TYPE_ACCESS)
    except jwt.ExpiredSignatureError:
        raise _unauthorized(ErrorCodes.TOKEN_EXPIRED, "Token expired")
    except jwt.PyJWTError:
        raise _unauthorized(ErrorCodes.INVALID_TOKEN, "Invalid token")

    user = get_user(db, payload["userId"])
    if user is None or not user.is_active:
        raise _unauthorized(ErrorCodes.UNAUTHORIZED, "User not found or inactive")
    return CurrentUser.model_validate(user)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CurrentUser:
    """Dependency: require valid Bearer JWT and an active user. Raises 401 otherwise."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized(ErrorCodes.UNAUTHORIZED, "Access token required")
    return _resolve_user(credentials.credentials, db, settings)


def get_optional_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> CurrentUser | None:
    """Dependency: the current user if a valid token is sent, else None. Never fails."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        return _resolve_user(credentials.credentials, db, settings)
    except ApiError:
        return None


def require_roles(roles: Iterable[str]) -> Callable[..., CurrentUser]:
    """Build a dependency that admits only users whose role is in roles (403 otherwise)."""
    allowed = frozenset(roles)

    def dependency(
        current_user: Annotated[CurrentUser, Depends(get_current_user)],
    ) -> CurrentUser:
        if not is_authorized(current_user.role, allowed):
            raise ApiError(
                status.HTTP_403_FORBIDDEN,
                ErrorCodes.FORBIDDEN,
                "Insufficient permissions",
            )
        return current_user

    return dependency


require_admin = require_roles(ADMIN_ONLY)
require_operator = require_roles(STAFF)
require_citizen = require_roles(ANY_AUTHENTICATED)
