"""Entity repositories mapping ORM rows to validated domain objects."""

from app.repositories.accommodation import AccommodationRepository
from app.repositories.user import UserRepository

__all__ = ["AccommodationRepository", "UserRepository"]
