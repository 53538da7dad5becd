"""User persistence, including the user_accommodations bookmark association."""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from app.core.database import Database, storage_errors
from app.core.errors import InvalidInputError, NotFoundError
from app.models import Accommodation, User, UserAccommodation
from app.schemas.accommodation import AccommodationRead
from app.schemas.user import UserRecord

DUPLICATE_USER_MESSAGE = "User with this username or email already exists"
BOOKMARK_TARGET_MISSING = "User or accommodation not found"


def _to_entity(row: User) -> UserRecord:
    return UserRecord.model_validate(row)


class UserRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    def find_by_id(self, user_id: int) -> UserRecord | None:
        with storage_errors("find user"), self._db.session() as db:
            row = db.get(User, user_id)
            return _to_entity(row) if row is not None else None

    def find_by_username(self, username: str) -> UserRecord | None:
        with storage_errors("find user by username"), self._db.session() as db:
            row = db.query(User).filter(User.username == username).first()
            return _to_entity(row) if row is not None else None

    def find_by_email(self, email: str) -> UserRecord | None:
        with storage_errors("find user by email"), self._db.session() as db:
            row = db.query(User).filter(User.email == email).first()
            return _to_entity(row) if row is not None else None

    def find_by_username_or_email(self, username_or_email: str) -> UserRecord | None:
        with storage_errors("find user"), self._db.session() as db:
            row = (
                db.query(User)
                .filter(
                    (User.username == username_or_email) | (User.email == username_or_email)
                )
                .first()
            )
            return _to_entity(row) if row is not None else None

    def find_all(self) -> list[UserRecord]:
        with storage_errors("list users"), self._db.session() as db:
            rows = db.query(User).order_by(User.id).all()
            return [_to_entity(r) for r in rows]

    def exists(self, user_id: int) -> bool:
        with storage_errors("check user"), self._db.session() as db:
            return db.get(User, user_id) is not None

    def username_exists(self, username: str, exclude_user_id: int | None = None) -> bool:
        with storage_errors("check username"), self._db.session() as db:
            query = db.query(func.count(User.id)).filter(User.username == username)
            if exclude_user_id is not None:
                query = query.filter(User.id != exclude_user_id)
            return (query.scalar() or 0) > 0

    def email_exists(self, email: str, exclude_user_id: int | None = None) -> bool:
        with storage_errors("check email"), self._db.session() as db:
            query = db.query(func.count(User.id)).filter(User.email == email)
            if exclude_user_id is not None:
                query = query.filter(User.id != exclude_user_id)
            return (query.scalar() or 0) > 0

    def add(self, username: str, email: str, password_hash: str, role: str) -> UserRecord:
        """
        Insert a user. The unique constraints on username and email are the
        authority; a violation surfaces as InvalidInputError.
        """
        with storage_errors("create user"), self._db.session() as db:
            row = User(username=username, email=email, password_hash=password_hash, role=role)
            db.add(row)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise InvalidInputError(DUPLICATE_USER_MESSAGE) from e
            db.refresh(row)
            return _to_entity(row)

    def update(self, user_id: int, **changes: str) -> UserRecord | None:
        """Set username/email/password_hash/role; None when the user does not exist."""
        with storage_errors("update user"), self._db.session() as db:
            row = db.get(User, user_id)
            if row is None:
                return None
            for name, value in changes.items():
                setattr(row, name, value)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise InvalidInputError(DUPLICATE_USER_MESSAGE) from e
            db.refresh(row)
            return _to_entity(row)

    def delete(self, user_id: int) -> bool:
        """Delete a user; bookmarks go with it via ON DELETE CASCADE."""
        with storage_errors("delete user"), self._db.transaction() as db:
            deleted = db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
            return deleted > 0

    def get_user_accommodations(self, user_id: int) -> list[AccommodationRead]:
        """Saved accommodations, most recently saved first."""
        with storage_errors("get user accommodations"), self._db.session() as db:
            rows = (
                db.query(Accommodation)
                .join(UserAccommodation, UserAccommodation.accommodation_id == Accommodation.id)
                .filter(UserAccommodation.user_id == user_id)
                .order_by(UserAccommodation.selected_at.desc(), Accommodation.id.desc())
                .all()
            )
            return [AccommodationRead.model_validate(r) for r in rows]

    def add_user_accommodation(self, user_id: int, accommodation_id: int) -> bool:
        """
        Returns False when the pair already exists (primary key violation).
        A missing user or accommodation (foreign key violation) is a NotFoundError.
        """
        with storage_errors("add user accommodation"), self._db.session() as db:
            db.add(UserAccommodation(user_id=user_id, accommodation_id=accommodation_id))
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                if db.get(UserAccommodation, (user_id, accommodation_id)) is not None:
                    return False
                raise NotFoundError(BOOKMARK_TARGET_MISSING) from e
            return True

    def remove_user_accommodation(self, user_id: int, accommodation_id: int) -> bool:
        with storage_errors("remove user accommodation"), self._db.transaction() as db:
            deleted = (
                db.query(UserAccommodation)
                .filter(
                    UserAccommodation.user_id == user_id,
                    UserAccommodation.accommodation_id == accommodation_id,
                )
                .delete(synchronize_session=False)
            )
            return deleted > 0

    def has_user_accommodation(self, user_id: int, accommodation_id: int) -> bool:
        with storage_errors("check user accommodation"), self._db.session() as db:
            found = (
                db.query(UserAccommodation)
                .filter(
                    UserAccommodation.user_id == user_id,
                    UserAccommodation.accommodation_id == accommodation_id,
                )
                .first()
            )
            return found is not None
