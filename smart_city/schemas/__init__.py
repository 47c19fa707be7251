"""Pydantic request/response schemas."""

from smart_city.schemas.accident import (
    AccidentCreate,
    AccidentFilters,
    AccidentOut,
    AccidentStats,
    AccidentUpdate,
    DateRangeFilter,
)
from smart_city.schemas.auth import (
    AuthData,
    ChangePasswordRequest,
    CurrentUser,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenPair,
    UserOut,
)
from smart_city.schemas.common import ApiResponse, Pagination
from smart_city.schemas.health import HealthResponse

__all__ = [
    "AccidentCreate",
    "AccidentFilters",
    "AccidentOut",
    "AccidentStats",
    "AccidentUpdate",
    "ApiResponse",
    "AuthData",
    "ChangePasswordRequest",
    "CurrentUser",
    "DateRangeFilter",
    "HealthResponse",
    "LoginRequest",
    "Pagination",
    "RefreshTokenRequest",
    "RegisterRequest",
    "TokenPair",
    "UserOut",
]
