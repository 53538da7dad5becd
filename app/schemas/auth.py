"""Request/response schemas for auth endpoints."""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.schemas.user import Role, UserRead, validate_email, validate_username


class LoginRequest(BaseModel):
    """Credentials for login."""

    model_config = {"extra": "ignore"}

    email: str = Field(..., description="Account email")
    password: str = Field(..., min_length=1, description="Password")

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return validate_email(v)


class RegisterRequest(BaseModel):
    """New account; role defaults to 'user' when omitted or empty."""

    model_config = {"extra": "ignore"}

    username: str = Field(..., description="3-50 chars: letters, digits, _ or -")
    email: str = Field(..., description="Unique email, at most 100 chars")
    password: str = Field(..., min_length=1, max_length=255, description="Password")
    role: Role | None = Field(default=None, description="'user' or 'admin'")

    @field_validator("username")
    @classmethod
    def username_valid(cls, v: str) -> str:
        return validate_username(v)

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return validate_email(v)

    @field_validator("role", mode="before")
    @classmethod
    def empty_role_is_default(cls, v: Any) -> Any:
        return None if v == "" else v


class ChangePasswordRequest(BaseModel):
    """Body of POST /api/auth/change-password."""

    model_config = {"extra": "ignore"}

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, max_length=255)


class Identity(BaseModel):
    """Authenticated caller, published on the request context by the auth middleware."""

    id: int
    username: str
    email: str
    role: Role
    token_payload: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class AuthResult(BaseModel):
    """Token issued by login, register and refresh."""

    token: str
    user: UserRead
    expires_in: int = Field(..., description="Token lifetime in seconds")
