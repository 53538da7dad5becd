"""Pydantic schemas for users: the validated domain object and user-management bodies."""

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_serializer, field_validator

Role = Literal["user", "admin"]

ROLE_USER = "user"
ROLE_ADMIN = "admin"
VALID_ROLES: frozenset[str] = frozenset({ROLE_USER, ROLE_ADMIN})

USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 50
EMAIL_MAX_LEN = 100
PASSWORD_HASH_MIN_LEN = 60

# Largest value of the INTEGER primary key columns.
ID_MAX = 2**31 - 1

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_EMAIL_RE = re.compile(r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?)+$")


def validate_username(value: str) -> str:
    """Username: 3-50 chars of letters, digits, underscore or hyphen."""
    value = value.strip()
    if not value:
        raise ValueError("Username is required")
    if len(value) < USERNAME_MIN_LEN:
        raise ValueError(f"Username must be at least {USERNAME_MIN_LEN} characters long")
    if len(value) > USERNAME_MAX_LEN:
        raise ValueError(f"Username cannot exceed {USERNAME_MAX_LEN} characters")
    if not _USERNAME_RE.match(value):
        raise ValueError(
            "Username can only contain letters, numbers, underscores, and hyphens"
        )
    return value


def validate_email(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Email is required")
    if len(value) > EMAIL_MAX_LEN:
        raise ValueError(f"Email cannot exceed {EMAIL_MAX_LEN} characters")
    if not _EMAIL_RE.match(value):
        raise ValueError("Email format is invalid")
    return value


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


class UserRead(BaseModel):
    """Public view of a user (never includes the password hash)."""

    model_config = {"from_attributes": True}

    id: int
    username: str
    email: str
    role: Role
    created_at: datetime
    updated_at: datetime

    @field_validator("username")
    @classmethod
    def username_valid(cls, v: str) -> str:
        return validate_username(v)

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return validate_email(v)

    @field_serializer("created_at", "updated_at", when_used="json")
    def serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class UserRecord(UserRead):
    """Stored user including the password hash; for services only."""

    password_hash: str = Field(..., min_length=PASSWORD_HASH_MIN_LEN)

    def public(self) -> UserRead:
        return UserRead(**{name: getattr(self, name) for name in UserRead.model_fields})


class UserUpdate(BaseModel):
    """Partial profile update; None leaves the field unchanged."""

    model_config = {"extra": "ignore"}

    username: str | None = None
    email: str | None = None

    @field_validator("username")
    @classmethod
    def username_valid(cls, v: str | None) -> str | None:
        return None if v is None else validate_username(v)

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str | None) -> str | None:
        return None if v is None else validate_email(v)


class BookmarkRequest(BaseModel):
    """Body of POST /api/users/accommodations."""

    model_config = {"extra": "ignore"}

    accommodation_id: int = Field(..., ge=1, le=ID_MAX, description="Accommodation to save")
