"""Password hashing (bcrypt) and JWT issuance/verification for authentication."""

from __future__ import annotations

import logging
import re
import secrets
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import bcrypt
import jwt

from app.core.errors import StorageError

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12
BCRYPT_MIN_ROUNDS = 4
BCRYPT_MAX_ROUNDS = 31

# bcrypt only looks at the first 72 bytes of input.
BCRYPT_MAX_BYTES = 72

PASSWORD_MIN_LEN = 8

SECURE_PASSWORD_ALPHABET = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789!@#$%^&*()"
)

DEFAULT_TOKEN_TTL_SECONDS = 3600
TOKEN_ISSUER = "accommodation-management-system"

_BCRYPT_HASH_RE = re.compile(r"^\$2[abxy]?\$(\d{2})\$[./A-Za-z0-9]{53}$")


@dataclass
class PasswordStrength:
    """Result of a password strength check; errors lists every violated rule."""

    valid: bool
    errors: list[str] = field(default_factory=list)


class PasswordHasher:
    """One-way password storage with a configurable bcrypt work factor."""

    def __init__(self, cost: int = BCRYPT_ROUNDS) -> None:
        self.set_cost(cost)

    @property
    def cost(self) -> int:
        return self._cost

    def set_cost(self, cost: int) -> None:
        if cost < BCRYPT_MIN_ROUNDS or cost > BCRYPT_MAX_ROUNDS:
            raise ValueError(
                f"Cost must be between {BCRYPT_MIN_ROUNDS} and {BCRYPT_MAX_ROUNDS}"
            )
        self._cost = cost

    def hash(self, plain_password: str) -> str:
        """Hash a plain-text password for storage. Do not store plain passwords."""
        pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        try:
            hashed = bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=self._cost))
        except (ValueError, TypeError) as e:
            raise StorageError(f"Failed to hash password: {e}") from e
        return hashed.decode("utf-8")

    def verify(self, plain_password: str, hashed: str) -> bool:
        """Verify a plain password against a stored hash."""
        pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
        try:
            return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    def needs_rehash(self, hashed: str) -> bool:
        """True when the digest was produced with a different cost (or is not bcrypt)."""
        match = _BCRYPT_HASH_RE.match(hashed or "")
        if match is None:
            return True
        return int(match.group(1)) != self._cost

    @staticmethod
    def validate_strength(plain_password: str) -> PasswordStrength:
        errors = []
        if len(plain_password) < PASSWORD_MIN_LEN:
            errors.append(
                f"Password must be at least {PASSWORD_MIN_LEN} characters long"
            )
        if not re.search(r"[A-Z]", plain_password):
            errors.append("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", plain_password):
            errors.append("Password must contain at least one lowercase letter")
        if not re.search(r"[0-9]", plain_password):
            errors.append("Password must contain at least one number")
        if not re.search(r"[^A-Za-z0-9]", plain_password):
            errors.append("Password must contain at least one special character")
        return PasswordStrength(valid=not errors, errors=errors)

    @staticmethod
    def generate_secure_password(length: int = 12) -> str:
        """Random password for administrative resets."""
        if length < 1:
            raise ValueError("Password length must be positive")
        return "".join(secrets.choice(SECURE_PASSWORD_ALPHABET) for _ in range(length))


class TokenManager:
    """
    Issue and verify signed bearer tokens.

    verify() collapses every failure (bad signature, expiry, malformed token,
    wrong issuer/audience) into None so callers cannot leak which check failed.
    The reason is only logged at debug level.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS,
        issuer: str = TOKEN_ISSUER,
        audience: str = TOKEN_ISSUER,
    ) -> None:
        if not secret:
            raise ValueError("JWT secret must be non-empty")
        self._secret = secret
        self._algorithm = algorithm
        self._issuer = issuer
        self._audience = audience
        self.set_ttl(ttl_seconds)

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenManager:
        return cls(
            secret=settings.JWT_SECRET.get_secret_value(),
            algorithm=settings.JWT_ALGORITHM,
            ttl_seconds=settings.JWT_TTL_SECONDS,
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
        )

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def set_ttl(self, seconds: int) -> None:
        if seconds < 1:
            raise ValueError("Token lifetime must be at least one second")
        self._ttl = seconds

    def issue(self, user_id: int, email: str, role: str) -> str:
        """Create a JWT with iss, aud, iat, exp, sub (user id), email and role."""
        issued_at = int(time.time())
        payload: dict[str, Any] = {
            "iss": self._issuer,
            "aud": self._audience,
            "iat": issued_at,
            "exp": issued_at + self._ttl,
            # RFC 7519 requires sub to be a string.
            "sub": str(user_id),
            "email": email,
            "role": role,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def _decode(self, token: str) -> dict[str, Any]:
        return jwt.decode(
            token,
            self._secret,
            algorithms=[self._algorithm],
            audience=self._audience,
            issuer=self._issuer,
            options={"require": ["exp", "iat", "sub"]},
        )

    def verify(self, token: str) -> dict[str, Any] | None:
        """Return the claims of a valid token, or None."""
        try:
            return self._decode(token)
        except jwt.ExpiredSignatureError:
            logger.debug("Token rejected: expired")
        except jwt.InvalidSignatureError:
            logger.debug("Token rejected: invalid signature")
        except jwt.ImmatureSignatureError:
            logger.debug("Token rejected: not yet valid")
        except jwt.PyJWTError as e:
            logger.debug("Token rejected: %s", e)
        return None

    def is_expired(self, token: str) -> bool:
        """Unverifiable tokens count as expired."""
        return self.verify(token) is None

    def user_id_from_token(self, token: str) -> int | None:
        payload = self.verify(token)
        if payload is None:
            return None
        try:
            return int(payload["sub"])
        except (KeyError, TypeError, ValueError):
            return None

    def role_from_token(self, token: str) -> str | None:
        payload = self.verify(token)
        return payload.get("role") if payload else None
