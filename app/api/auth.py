"""Login, registration, token refresh/validation and password change."""

from typing import Any

from app.api.middleware import current_user_id, extract_bearer_token
from app.api.params import parse_body
from app.core.errors import AuthenticationError, InvalidInputError
from app.core.router import Reply, RequestContext, success_reply
from app.schemas.auth import AuthResult, ChangePasswordRequest, LoginRequest, RegisterRequest
from app.services.auth import AuthService


def _auth_reply(message: str, result: AuthResult, status: int = 200) -> Reply:
    return success_reply(message, status, **result.model_dump(mode="json"))


class AuthController:
    def __init__(self, service: AuthService) -> None:
        self._service = service

    def _bearer(self, ctx: RequestContext) -> str:
        token = extract_bearer_token(ctx)
        if token is None:
            raise AuthenticationError("Authorization token is required", code="MISSING_TOKEN")
        return token

    def login(self, ctx: RequestContext) -> Reply:
        if not str(ctx.body.get("email") or "").strip() or not ctx.body.get("password"):
            raise InvalidInputError("Email and password are required")
        credentials = parse_body(LoginRequest, ctx)
        result = self._service.login(credentials.email, credentials.password)
        return _auth_reply("Login successful", result)

    def register(self, ctx: RequestContext) -> Reply:
        data = parse_body(RegisterRequest, ctx)
        result = self._service.register(data.username, data.email, data.password, data.role)
        return _auth_reply("Registration successful", result, 201)

    def refresh(self, ctx: RequestContext) -> Reply:
        result = self._service.refresh_token(self._bearer(ctx))
        if result is None:
            raise AuthenticationError("Invalid or expired token", code="INVALID_TOKEN")
        return _auth_reply("Token refreshed successfully", result)

    def validate(self, ctx: RequestContext) -> dict[str, Any]:
        identity = self._service.validate_token(self._bearer(ctx))
        if identity is None:
            raise AuthenticationError("Invalid or expired token", code="INVALID_TOKEN")
        return {
            "success": True,
            "message": "Token is valid",
            "user": identity.model_dump(include={"id", "email", "username", "role"}),
        }

    def change_password(self, ctx: RequestContext) -> Reply:
        data = parse_body(ChangePasswordRequest, ctx)
        self._service.change_password(current_user_id(ctx), data.current_password, data.new_password)
        return success_reply("Password changed successfully")
