"""SQLAlchemy ORM models."""

from app.models.accommodation import Accommodation, UserAccommodation
from app.models.base import Base
from app.models.user import User

__all__ = ["Accommodation", "Base", "User", "UserAccommodation"]
