"""ORM models for accommodation listings and user bookmarks."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String, Text

from app.models.base import Base, TimestampMixin, utcnow


class Accommodation(TimestampMixin, Base):
    """A listing; amenities are stored as a JSON array of strings."""

    __tablename__ = "accommodations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Numeric(10, 2, asdecimal=False), nullable=False, index=True)
    location = Column(String(100), nullable=False, index=True)
    image_url = Column(String(500), nullable=True)
    amenities = Column(JSON, nullable=False, default=list)


class UserAccommodation(Base):
    """Bookmark association; the (user_id, accommodation_id) pair is the primary key."""

    __tablename__ = "user_accommodations"

    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    accommodation_id = Column(
        Integer, ForeignKey("accommodations.id", ondelete="CASCADE"), primary_key=True
    )
    selected_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
