"""Typed service errors shared by services, middlewares and controllers."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pydantic import ValidationError


class ServiceError(Exception):
    """Base for errors that carry an HTTP status and a machine-readable code."""

    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)


class InvalidInputError(ServiceError):
    """Malformed input or a business-rule violation (duplicates, bad ranges)."""

    status_code = 400
    default_code = "VALIDATION_ERROR"

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> InvalidInputError:
        """Flatten pydantic errors into 'field - reason; field - reason'."""
        details = []
        for err in exc.errors():
            field = ".".join(str(part) for part in err.get("loc", ())) or "body"
            reason = err.get("msg", "invalid value")
            # pydantic prefixes messages from custom validators with "Value error, ".
            if reason.startswith("Value error, "):
                reason = reason[len("Value error, "):]
            details.append(f"{field} - {reason}")
        return cls("Validation failed: " + "; ".join(details))


class NotFoundError(ServiceError):
    """A referenced entity does not exist."""

    status_code = 404
    default_code = "NOT_FOUND"


class AuthenticationError(ServiceError):
    """Missing, invalid or expired credentials."""

    status_code = 401
    default_code = "AUTHENTICATION_REQUIRED"


class PermissionDeniedError(ServiceError):
    """Authenticated, but the role does not allow the operation."""

    status_code = 403
    default_code = "FORBIDDEN"


class StorageError(ServiceError):
    """Infrastructure failure; the message is logged, never sent to clients."""

    status_code = 500
    default_code = "INTERNAL_ERROR"


GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


def error_body(code: str, message: str) -> dict[str, object]:
    return {"success": False, "error": code, "message": message}

