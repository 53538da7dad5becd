"""User management and the saved-accommodations (bookmark) list."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import ValidationError

from app.core.errors import InvalidInputError, NotFoundError
from app.schemas.accommodation import AccommodationRead
from app.schemas.user import VALID_ROLES, UserRead, UserUpdate

if TYPE_CHECKING:
    from app.repositories.accommodation import AccommodationRepository
    from app.repositories.user import UserRepository

USER_NOT_FOUND = "User not found"
ACCOMMODATION_NOT_FOUND = "Accommodation not found"
ALREADY_SAVED = "User already has this accommodation"
NOT_SAVED = "User does not have this accommodation"


class UserService:
    def __init__(
        self,
        users: UserRepository,
        accommodations: AccommodationRepository,
    ) -> None:
        self._users = users
        self._accommodations = accommodations

    def _require_user(self, user_id: int) -> None:
        if not self._users.exists(user_id):
            raise NotFoundError(USER_NOT_FOUND)

    def _require_accommodation(self, accommodation_id: int) -> None:
        if not self._accommodations.exists(accommodation_id):
            raise NotFoundError(ACCOMMODATION_NOT_FOUND)

    def get_user(self, user_id: int) -> UserRead:
        user = self._users.find_by_id(user_id)
        if user is None:
            raise NotFoundError(USER_NOT_FOUND)
        return user.public()

    def list_users(self) -> list[UserRead]:
        return [u.public() for u in self._users.find_all()]

    def update_user(self, user_id: int, data: UserUpdate | dict) -> UserRead:
        if not isinstance(data, UserUpdate):
            try:
                data = UserUpdate.model_validate(data)
            except ValidationError as e:
                raise InvalidInputError.from_pydantic(e) from e
        self._require_user(user_id)
        changes = data.model_dump(exclude_none=True)
        if "username" in changes and self._users.username_exists(
            changes["username"], exclude_user_id=user_id
        ):
            raise InvalidInputError("Username already exists")
        if "email" in changes and self._users.email_exists(
            changes["email"], exclude_user_id=user_id
        ):
            raise InvalidInputError("Email already exists")
        if not changes:
            return self.get_user(user_id)
        updated = self._users.update(user_id, **changes)
        if updated is None:
            raise NotFoundError(USER_NOT_FOUND)
        return updated.public()

    def change_role(self, user_id: int, role: str) -> UserRead:
        if role not in VALID_ROLES:
            raise InvalidInputError('Role must be either "user" or "admin"')
        updated = self._users.update(user_id, role=role)
        if updated is None:
            raise NotFoundError(USER_NOT_FOUND)
        return updated.public()

    def delete_user(self, user_id: int) -> None:
        """Delete a user and, through the store's cascade, their bookmarks."""
        if not self._users.delete(user_id):
            raise NotFoundError(USER_NOT_FOUND)

    def get_user_accommodations(self, user_id: int) -> list[AccommodationRead]:
        self._require_user(user_id)
        return self._users.get_user_accommodations(user_id)

    def user_has_accommodation(self, user_id: int, accommodation_id: int) -> bool:
        self._require_user(user_id)
        self._require_accommodation(accommodation_id)
        return self._users.has_user_accommodation(user_id, accommodation_id)

    def add_accommodation_to_user(self, user_id: int, accommodation_id: int) -> None:
        self._require_user(user_id)
        self._require_accommodation(accommodation_id)
        if self._users.has_user_accommodation(user_id, accommodation_id):
            raise InvalidInputError(ALREADY_SAVED)
        # A concurrent save of the same pair loses on the primary key.
        if not self._users.add_user_accommodation(user_id, accommodation_id):
            raise InvalidInputError(ALREADY_SAVED)

    def remove_accommodation_from_user(self, user_id: int, accommodation_id: int) -> None:
        self._require_user(user_id)
        self._require_accommodation(accommodation_id)
        if not self._users.remove_user_accommodation(user_id, accommodation_id):
            raise NotFoundError(NOT_SAVED)
