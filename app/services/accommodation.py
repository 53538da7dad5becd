"""Accommodation business rules: validation, filtering and partial updates."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import ValidationError

from app.core.errors import InvalidInputError, NotFoundError
from app.schemas.accommodation import (
    SEARCH_TERM_MIN_LEN,
    AccommodationCreate,
    AccommodationFilters,
    AccommodationRead,
    AccommodationUpdate,
    validate_amenity,
)
from app.schemas.user import UserRead

if TYPE_CHECKING:
    from app.repositories.accommodation import AccommodationRepository

ACCOMMODATION_NOT_FOUND = "Accommodation not found"


class AccommodationService:
    def __init__(self, accommodations: AccommodationRepository) -> None:
        self._accommodations = accommodations

    def create(self, data: AccommodationCreate | dict) -> AccommodationRead:
        if not isinstance(data, AccommodationCreate):
            try:
                data = AccommodationCreate.model_validate(data)
            except ValidationError as e:
                raise InvalidInputError.from_pydantic(e) from e
        return self._accommodations.add(data)

    def get(self, accommodation_id: int) -> AccommodationRead:
        accommodation = self._accommodations.find_by_id(accommodation_id)
        if accommodation is None:
            raise NotFoundError(ACCOMMODATION_NOT_FOUND)
        return accommodation

    def find(self, accommodation_id: int) -> AccommodationRead | None:
        return self._accommodations.find_by_id(accommodation_id)

    def list_all(self) -> list[AccommodationRead]:
        return self._accommodations.find_all()

    def paginate(self, limit: int = 10, offset: int = 0) -> list[AccommodationRead]:
        if limit <= 0:
            raise InvalidInputError("Limit must be greater than 0")
        if offset < 0:
            raise InvalidInputError("Offset cannot be negative")
        return self._accommodations.find_with_pagination(limit, offset)

    def search(self, term: str) -> list[AccommodationRead]:
        term = term.strip()
        if not term:
            raise InvalidInputError("Search term cannot be empty")
        if len(term) < SEARCH_TERM_MIN_LEN:
            raise InvalidInputError(
                f"Search term must be at least {SEARCH_TERM_MIN_LEN} characters long"
            )
        return self._accommodations.search(term)

    def by_location(self, location: str) -> list[AccommodationRead]:
        location = location.strip()
        if not location:
            raise InvalidInputError("Location cannot be empty")
        return self._accommodations.find_by_location(location)

    def by_price_range(self, min_price: float, max_price: float) -> list[AccommodationRead]:
        if min_price < 0:
            raise InvalidInputError("Minimum price cannot be negative")
        if max_price < 0:
            raise InvalidInputError("Maximum price cannot be negative")
        if min_price > max_price:
            raise InvalidInputError("Minimum price cannot be greater than maximum price")
        return self._accommodations.find_by_price_range(min_price, max_price)

    def by_amenity(self, amenity: str) -> list[AccommodationRead]:
        amenity = amenity.strip()
        if not amenity:
            raise InvalidInputError("Amenity cannot be empty")
        return self._accommodations.find_by_amenity(amenity)

    def list_filtered(self, filters: AccommodationFilters) -> list[AccommodationRead]:
        """
        Apply exactly one filter, by precedence: search, location, price range
        (both bounds required), amenity, pagination, otherwise everything.
        """
        if filters.search:
            return self.search(filters.search)
        if filters.location:
            return self.by_location(filters.location)
        if filters.min_price is not None and filters.max_price is not None:
            return self.by_price_range(filters.min_price, filters.max_price)
        if filters.amenity:
            return self.by_amenity(filters.amenity)
        if filters.limit is not None:
            return self.paginate(filters.limit, filters.offset or 0)
        return self.list_all()

    def update(self, accommodation_id: int, data: AccommodationUpdate | dict) -> AccommodationRead:
        if not isinstance(data, AccommodationUpdate):
            try:
                data = AccommodationUpdate.model_validate(data)
            except ValidationError as e:
                raise InvalidInputError.from_pydantic(e) from e
        changes = data.changes()
        if not changes:
            return self.get(accommodation_id)
        updated = self._accommodations.update(accommodation_id, changes)
        if updated is None:
            raise NotFoundError(ACCOMMODATION_NOT_FOUND)
        return updated

    def delete(self, accommodation_id: int) -> None:
        if not self._accommodations.delete(accommodation_id):
            raise NotFoundError(ACCOMMODATION_NOT_FOUND)

    def add_amenity(self, accommodation_id: int, amenity: str) -> AccommodationRead:
        accommodation = self.get(accommodation_id)
        amenity = self._clean_amenity(amenity)
        if accommodation.has_amenity(amenity):
            return accommodation
        return self._set_amenities(accommodation_id, [*accommodation.amenities, amenity])

    def remove_amenity(self, accommodation_id: int, amenity: str) -> AccommodationRead:
        accommodation = self.get(accommodation_id)
        amenity = self._clean_amenity(amenity)
        if not accommodation.has_amenity(amenity):
            return accommodation
        return self._set_amenities(
            accommodation_id, [a for a in accommodation.amenities if a != amenity]
        )

    def count(self) -> int:
        return self._accommodations.count()

    def exists(self, accommodation_id: int) -> bool:
        return self._accommodations.exists(accommodation_id)

    def list_users(self, accommodation_id: int) -> list[UserRead]:
        if not self._accommodations.exists(accommodation_id):
            raise NotFoundError(ACCOMMODATION_NOT_FOUND)
        return self._accommodations.get_accommodation_users(accommodation_id)

    @staticmethod
    def _clean_amenity(amenity: str) -> str:
        try:
            return validate_amenity(amenity)
        except ValueError as e:
            raise InvalidInputError(str(e)) from e

    def _set_amenities(self, accommodation_id: int, amenities: list[str]) -> AccommodationRead:
        updated = self._accommodations.update(accommodation_id, {"amenities": amenities})
        if updated is None:
            raise NotFoundError(ACCOMMODATION_NOT_FOUND)
        return updated
