"""Auth endpoints: register, login, refresh, logout, password change, profile, token check."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from smart_city.api.v1.dependencies import get_current_user, security
from smart_city.core.config import Settings, get_settings
from smart_city.core.database import get_db
from smart_city.core.errors import ApiError, ErrorCodes
from smart_city.schemas.auth import (
    AuthData,
    ChangePasswordRequest,
    CurrentUser,
    LoginRequest,
    ProfileData,
    RefreshTokenRequest,
    RegisterRequest,
    TokenClaims,
    TokenPair,
    UserOut,
    VerifyTokenData,
)
from smart_city.schemas.common import ApiResponse
from smart_city.services import auth as auth_service
from smart_city.services.auth import AuthResult, AuthServiceError

logger = logging.getLogger(__name__)
router = APIRouter()


def _auth_data(result: AuthResult) -> AuthData:
    return AuthData(
        user=UserOut.model_validate(result.user),
        token=result.token,
        refresh_token=result.refresh_token,
    )


@router.post(
    "/register",
    response_model=ApiResponse[AuthData],
    status_code=status.HTTP_201_CREATED,
)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ApiResponse[AuthData]:
    """Create an account and return it with an access token and a refresh token."""
    try:
        result = auth_service.register(db, settings, body)
    except AuthServiceError as e:
        raise ApiError(status.HTTP_400_BAD_REQUEST, ErrorCodes.REGISTRATION_ERROR, e.message) from e
    return ApiResponse(message="User registered successfully", data=_auth_data(result))


@router.post("/login", response_model=ApiResponse[AuthData])
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ApiResponse[AuthData]:
    """
    Authenticate with email and password.
    Include the token in the Authorization header as: Bearer <token>
    """
    try:
        result = auth_service.login(db, settings, body.email, body.password)
    except AuthServiceError as e:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, ErrorCodes.LOGIN_ERROR, e.message) from e
    return ApiResponse(message="Login successful", data=_auth_data(result))


@router.post("/refresh-token", response_model=ApiResponse[TokenPair])
def refresh_token(
    body: RefreshTokenRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ApiResponse[TokenPair]:
    """Exchange a refresh token for a new pair; the presented refresh token stops working."""
    try:
        tokens = auth_service.refresh(db, settings, body.refresh_token)
    except AuthServiceError as e:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, ErrorCodes.REFRESH_ERROR, e.message) from e
    return ApiResponse(
        message="Token refreshed successfully",
        data=TokenPair(token=tokens.token, refresh_token=tokens.refresh_token),
    )


@router.post("/logout", response_model=ApiResponse[None])
def logout(
    body: RefreshTokenRequest,
    db: Annotated[Session, Depends(get_db)],
    _user: Annotated[CurrentUser, Depends(get_current_user)],
) -> ApiResponse[None]:
    """End the session that holds the given refresh token."""
    try:
        auth_service.logout(db, body.refresh_token)
    except Exception as e:
        logger.exception("Logout failed")
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCodes.LOGOUT_ERROR, "Logout failed"
        ) from e
    return ApiResponse(message="Logout successful")


@router.post("/logout-all", response_model=ApiResponse[None])
def logout_all(
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> ApiResponse[None]:
    """End every session of the current user (log out on all devices)."""
    try:
        auth_service.logout_all(db, current_user.id)
    except Exception as e:
        logger.exception("Logout-all failed")
        raise ApiError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            ErrorCodes.LOGOUT_ALL_ERROR,
            "Logout all failed",
        ) from e
    return ApiResponse(message="All sessions logged out successfully")


@router.put("/change-password", response_model=ApiResponse[None])
def change_password(
    body: ChangePasswordRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> ApiResponse[None]:
    """Change the password; all sessions are ended and the user must log in again."""
    try:
        auth_service.change_password(
            db, settings, current_user.id, body.current_password, body.new_password
        )
    except AuthServiceError as e:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST, ErrorCodes.PASSWORD_CHANGE_ERROR, e.message
        ) from e
    return ApiResponse(message="Password changed successfully")


@router.get("/profile", response_model=ApiResponse[ProfileData])
def get_profile(
    db: Annotated[Session, Depends(get_db)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> ApiResponse[ProfileData]:
    user = auth_service.get_user(db, current_user.id)
    return ApiResponse(
        message="Profile retrieved successfully",
        data=ProfileData(user=UserOut.model_validate(user)),
    )


@router.post("/verify-token", response_model=ApiResponse[VerifyTokenData])
def verify_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ApiResponse[VerifyTokenData]:
    """Check an access token's signature and expiry without touching the database."""
    if credentials is None or not credentials.credentials:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, ErrorCodes.NO_TOKEN, "No token provided")
    payload = auth_service.verify_access_token(settings, credentials.credentials)
    if payload is None:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, ErrorCodes.INVALID_TOKEN, "Invalid token")
    claims = TokenClaims(
        user_id=payload["userId"],
        email=payload["email"],
        role=payload["role"],
        iat=payload.get("iat"),
        exp=payload.get("exp"),
    )
    return ApiResponse(message="Token is valid", data=VerifyTokenData(user=claims))
