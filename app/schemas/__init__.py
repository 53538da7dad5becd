"""Pydantic request/response schemas."""

from app.schemas.accommodation import (
    AccommodationCreate,
    AccommodationFilters,
    AccommodationRead,
    AccommodationUpdate,
)
from app.schemas.auth import (
    AuthResult,
    ChangePasswordRequest,
    Identity,
    LoginRequest,
    RegisterRequest,
)
from app.schemas.health import HealthResponse
from app.schemas.user import BookmarkRequest, UserRead, UserRecord, UserUpdate

__all__ = [
    "AccommodationCreate",
    "AccommodationFilters",
    "AccommodationRead",
    "AccommodationUpdate",
    "AuthResult",
    "BookmarkRequest",
    "ChangePasswordRequest",
    "HealthResponse",
    "Identity",
    "LoginRequest",
    "RegisterRequest",
    "UserRead",
    "UserRecord",
    "UserUpdate",
]
