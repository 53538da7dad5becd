"""Accommodation persistence: queries, create/update/delete and bookmark lookups."""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, or_

from app.core.database import Database, storage_errors
from app.models import Accommodation, User, UserAccommodation
from app.schemas.accommodation import AccommodationCreate, AccommodationRead
from app.schemas.user import UserRead

UPDATABLE_FIELDS = frozenset(
    {"title", "description", "price", "location", "image_url", "amenities"}
)


def _to_entity(row: Accommodation) -> AccommodationRead:
    return AccommodationRead.model_validate(row)


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class AccommodationRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    def find_by_id(self, accommodation_id: int) -> AccommodationRead | None:
        with storage_errors("find accommodation"), self._db.session() as db:
            row = db.get(Accommodation, accommodation_id)
            return _to_entity(row) if row is not None else None

    def find_all(self) -> list[AccommodationRead]:
        with storage_errors("list accommodations"), self._db.session() as db:
            rows = (
                db.query(Accommodation)
                .order_by(Accommodation.created_at.desc(), Accommodation.id.desc())
                .all()
            )
            return [_to_entity(r) for r in rows]

    def find_with_pagination(self, limit: int, offset: int = 0) -> list[AccommodationRead]:
        with storage_errors("paginate accommodations"), self._db.session() as db:
            rows = (
                db.query(Accommodation)
                .order_by(Accommodation.created_at.desc(), Accommodation.id.desc())
                .limit(limit)
                .offset(offset)
                .all()
            )
            return [_to_entity(r) for r in rows]

    def find_by_location(self, location: str) -> list[AccommodationRead]:
        """Case-insensitive substring match on location."""
        with storage_errors("find accommodations by location"), self._db.session() as db:
            rows = (
                db.query(Accommodation)
                .filter(Accommodation.location.ilike(_like(location), escape="\\"))
                .order_by(Accommodation.created_at.desc(), Accommodation.id.desc())
                .all()
            )
            return [_to_entity(r) for r in rows]

    def find_by_price_range(self, min_price: float, max_price: float) -> list[AccommodationRead]:
        with storage_errors("find accommodations by price"), self._db.session() as db:
            rows = (
                db.query(Accommodation)
                .filter(Accommodation.price.between(min_price, max_price))
                .order_by(Accommodation.price.asc(), Accommodation.id.asc())
                .all()
            )
            return [_to_entity(r) for r in rows]

    def find_by_amenity(self, amenity: str) -> list[AccommodationRead]:
        """Exact amenity membership, evaluated after loading since JSON containment is dialect-specific."""
        return [a for a in self.find_all() if a.has_amenity(amenity)]

    def search(self, term: str) -> list[AccommodationRead]:
        """Substring match on title or description."""
        pattern = _like(term)
        with storage_errors("search accommodations"), self._db.session() as db:
            rows = (
                db.query(Accommodation)
                .filter(
                    or_(
                        Accommodation.title.ilike(pattern, escape="\\"),
                        Accommodation.description.ilike(pattern, escape="\\"),
                    )
                )
                .order_by(Accommodation.created_at.desc(), Accommodation.id.desc())
                .all()
            )
            return [_to_entity(r) for r in rows]

    def count(self) -> int:
        with storage_errors("count accommodations"), self._db.session() as db:
            return db.query(func.count(Accommodation.id)).scalar() or 0

    def exists(self, accommodation_id: int) -> bool:
        with storage_errors("check accommodation"), self._db.session() as db:
            return db.get(Accommodation, accommodation_id) is not None

    def add(self, data: AccommodationCreate) -> AccommodationRead:
        with storage_errors("create accommodation"), self._db.transaction() as db:
            row = Accommodation(**data.model_dump())
            db.add(row)
            db.flush()
            db.refresh(row)
            return _to_entity(row)

    def update(self, accommodation_id: int, changes: dict[str, Any]) -> AccommodationRead | None:
        """Apply the given fields; returns None when the row does not exist."""
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")
        with storage_errors("update accommodation"), self._db.transaction() as db:
            row = db.get(Accommodation, accommodation_id)
            if row is None:
                return None
            for name, value in changes.items():
                setattr(row, name, list(value) if name == "amenities" else value)
            db.flush()
            db.refresh(row)
            return _to_entity(row)

    def delete(self, accommodation_id: int) -> bool:
        with storage_errors("delete accommodation"), self._db.transaction() as db:
            deleted = (
                db.query(Accommodation)
                .filter(Accommodation.id == accommodation_id)
                .delete(synchronize_session=False)
            )
            return deleted > 0

    def get_accommodation_users(self, accommodation_id: int) -> list[UserRead]:
        """Users who saved the accommodation, most recent first."""
        with storage_errors("list accommodation users"), self._db.session() as db:
            rows = (
                db.query(User)
                .join(UserAccommodation, UserAccommodation.user_id == User.id)
                .filter(UserAccommodation.accommodation_id == accommodation_id)
                .order_by(UserAccommodation.selected_at.desc())
                .all()
            )
            return [UserRead.model_validate(r) for r in rows]
