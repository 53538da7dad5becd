"""Bearer authentication and role gates, run as named router middlewares."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from app.core.errors import AuthenticationError, PermissionDeniedError
from app.core.router import Middleware, Reply, RequestContext, error_reply
from app.schemas.auth import Identity
from app.schemas.user import ROLE_ADMIN

if TYPE_CHECKING:
    from app.core.security import TokenManager
    from app.repositories.user import UserRepository
    from app.schemas.user import UserRecord

logger = logging.getLogger(__name__)

_BEARER_RE = re.compile(r"^Bearer\s+(.*)$", re.IGNORECASE)


def extract_bearer_token(ctx: RequestContext) -> str | None:
    """Token from 'Authorization: Bearer <token>', else from the ?token= query parameter."""
    header = ctx.headers.get("authorization", "")
    found = _BEARER_RE.match(header.strip())
    if found and found.group(1).strip():
        return found.group(1).strip()
    token = ctx.query.get("token", "").strip()
    return token or None


def _subject(payload: dict[str, Any] | None) -> int | None:
    if payload is None:
        return None
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None


def _identity(user: UserRecord, payload: dict[str, Any]) -> Identity:
    return Identity(
        id=user.id,
        username=user.username,
        email=user.email,
        role=user.role,
        token_payload=payload,
    )


class AuthenticationMiddleware:
    def __init__(self, tokens: TokenManager, users: UserRepository) -> None:
        self._tokens = tokens
        self._users = users

    def authenticate(self, ctx: RequestContext) -> Identity:
        """Resolve the caller's identity and publish it on ctx; raises AuthenticationError."""
        token = extract_bearer_token(ctx)
        if token is None:
            raise AuthenticationError("Authentication token required", code="MISSING_TOKEN")

        payload = self._tokens.verify(token)
        user_id = _subject(payload)
        if payload is None or user_id is None:
            raise AuthenticationError("Invalid or expired token", code="INVALID_TOKEN")

        user = self._users.find_by_id(user_id)
        if user is None:
            logger.info("Token subject user_id=%s no longer exists", user_id)
            raise AuthenticationError("User not found", code="INVALID_TOKEN")

        ctx.identity = _identity(user, payload)
        return ctx.identity

    def validate_token_only(self, token: str) -> Identity | None:
        """Identity for a token without touching any request; None when unusable."""
        payload = self._tokens.verify(token)
        user_id = _subject(payload)
        if payload is None or user_id is None:
            return None
        user = self._users.find_by_id(user_id)
        return _identity(user, payload) if user is not None else None

    def __call__(self, ctx: RequestContext) -> Reply | None:
        try:
            self.authenticate(ctx)
        except AuthenticationError as e:
            return error_reply(e)
        return None


def require_role(role: str) -> Middleware:
    """Gate for one role; admins pass every gate."""

    def gate(ctx: RequestContext) -> Reply | None:
        if ctx.identity is None:
            return error_reply(AuthenticationError("Authentication required"))
        if ctx.identity.role == ROLE_ADMIN or ctx.identity.role == role:
            return None
        return error_reply(PermissionDeniedError("Insufficient permissions"))

    return gate


def require_admin() -> Middleware:
    return require_role(ROLE_ADMIN)


def require_auth() -> Middleware:
    def gate(ctx: RequestContext) -> Reply | None:
        if ctx.identity is None:
            return error_reply(AuthenticationError("Authentication required"))
        return None

    return gate


def current_user(ctx: RequestContext) -> Identity | None:
    return ctx.identity


def current_user_id(ctx: RequestContext) -> int | None:
    return ctx.identity.id if ctx.identity is not None else None


def current_user_has_role(ctx: RequestContext, role: str) -> bool:
    return ctx.identity is not None and ctx.identity.role == role


def current_user_is_admin(ctx: RequestContext) -> bool:
    return current_user_has_role(ctx, ROLE_ADMIN)
