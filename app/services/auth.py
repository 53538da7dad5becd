"""Registration, login and token lifecycle."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import ValidationError

from app.core.errors import AuthenticationError, InvalidInputError, NotFoundError
from app.schemas.auth import AuthResult, Identity, RegisterRequest
from app.schemas.user import ROLE_ADMIN, ROLE_USER, UserRecord

if TYPE_CHECKING:
    from app.core.security import PasswordHasher, TokenManager
    from app.repositories.user import UserRepository

logger = logging.getLogger(__name__)

TEMPORARY_PASSWORD_LENGTH = 12


class AuthService:
    def __init__(
        self,
        tokens: TokenManager,
        hasher: PasswordHasher,
        users: UserRepository,
    ) -> None:
        self._tokens = tokens
        self._hasher = hasher
        self._users = users

    def _issue(self, user: UserRecord) -> AuthResult:
        token = self._tokens.issue(user.id, user.email, user.role)
        return AuthResult(token=token, user=user.public(), expires_in=self._tokens.ttl_seconds)

    def _check_strength(self, password: str, label: str) -> None:
        strength = self._hasher.validate_strength(password)
        if not strength.valid:
            raise InvalidInputError(f"{label} validation failed: " + ", ".join(strength.errors))

    def login(self, email: str, password: str) -> AuthResult:
        """
        Exchange credentials for a token.

        Unknown email and wrong password produce the same error. A stored hash
        made with an outdated cost is transparently upgraded.
        """
        if not email.strip() or not password.strip():
            raise InvalidInputError("Email and password are required")

        user = self._users.find_by_email(email.strip())
        if user is None or not self._hasher.verify(password, user.password_hash):
            raise AuthenticationError("Invalid credentials", code="INVALID_CREDENTIALS")

        if self._hasher.needs_rehash(user.password_hash):
            logger.info("Rehashing password for user_id=%s with cost %s", user.id, self._hasher.cost)
            user = self._users.update(user.id, password_hash=self._hasher.hash(password)) or user

        return self._issue(user)

    def register(
        self,
        username: str,
        email: str,
        password: str,
        role: str | None = None,
    ) -> AuthResult:
        try:
            request = RegisterRequest(username=username, email=email, password=password, role=role)
        except ValidationError as e:
            raise InvalidInputError.from_pydantic(e) from e

        # Pre-checks give precise messages; the unique constraints are the real guard.
        if self._users.find_by_email(request.email) is not None:
            raise InvalidInputError("User with this email already exists")
        if self._users.find_by_username(request.username) is not None:
            raise InvalidInputError("User with this username already exists")

        self._check_strength(request.password, "Password")

        user = self._users.add(
            username=request.username,
            email=request.email,
            password_hash=self._hasher.hash(request.password),
            role=request.role or ROLE_USER,
        )
        logger.info("Registered user_id=%s role=%s", user.id, user.role)
        return self._issue(user)

    def validate_token(self, token: str) -> Identity | None:
        """Identity for a valid token whose subject still exists, else None."""
        payload = self._tokens.verify(token)
        if payload is None:
            return None
        try:
            user_id = int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            return None
        user = self._users.find_by_id(user_id)
        if user is None:
            return None
        return Identity(
            id=user.id,
            username=user.username,
            email=user.email,
            role=user.role,
            token_payload=payload,
        )

    def refresh_token(self, token: str) -> AuthResult | None:
        """Reissue a token from a still-valid one; claims come from the current user row."""
        identity = self.validate_token(token)
        if identity is None:
            return None
        user = self._users.find_by_id(identity.id)
        if user is None:
            return None
        return self._issue(user)

    def get_user_by_token(self, token: str) -> UserRecord | None:
        user_id = self._tokens.user_id_from_token(token)
        return self._users.find_by_id(user_id) if user_id is not None else None

    def user_has_role(self, token: str, required_role: str) -> bool:
        """Role check from token claims alone; admin satisfies every role."""
        role = self._tokens.role_from_token(token)
        if role is None:
            return False
        return role == ROLE_ADMIN or role == required_role

    def change_password(self, user_id: int, current_password: str, new_password: str) -> None:
        user = self._users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        if not self._hasher.verify(current_password, user.password_hash):
            raise InvalidInputError("Current password is incorrect")
        self._check_strength(new_password, "New password")
        self._users.update(user_id, password_hash=self._hasher.hash(new_password))

    def reset_password(self, user_id: int) -> str:
        """Replace the password with a generated one and return it (admin use)."""
        user = self._users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        temporary = self._hasher.generate_secure_password(TEMPORARY_PASSWORD_LENGTH)
        self._users.update(user_id, password_hash=self._hasher.hash(temporary))
        logger.info("Password reset for user_id=%s", user_id)
        return temporary
