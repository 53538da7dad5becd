"""Pydantic schemas for accommodations: domain object, create/update bodies and list filters."""

import math
import re
from datetime import datetime

from pydantic import BaseModel, Field, field_serializer, field_validator

from app.schemas.user import ID_MAX, format_timestamp

TITLE_MIN_LEN = 3
TITLE_MAX_LEN = 200
DESCRIPTION_MIN_LEN = 10
DESCRIPTION_MAX_LEN = 2000
LOCATION_MIN_LEN = 2
LOCATION_MAX_LEN = 100
IMAGE_URL_MAX_LEN = 500
AMENITY_MAX_LEN = 100
PRICE_MIN = 0.0
PRICE_MAX = 999999.99

SEARCH_TERM_MIN_LEN = 2

_URL_RE = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)


def _validate_length(value: str, name: str, min_len: int, max_len: int) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{name} cannot be empty")
    if len(value) < min_len:
        raise ValueError(f"{name} must be at least {min_len} characters long")
    if len(value) > max_len:
        raise ValueError(f"{name} cannot exceed {max_len} characters")
    return value


def validate_title(value: str) -> str:
    return _validate_length(value, "Title", TITLE_MIN_LEN, TITLE_MAX_LEN)


def validate_description(value: str) -> str:
    return _validate_length(value, "Description", DESCRIPTION_MIN_LEN, DESCRIPTION_MAX_LEN)


def validate_location(value: str) -> str:
    return _validate_length(value, "Location", LOCATION_MIN_LEN, LOCATION_MAX_LEN)


def validate_price(value: float) -> float:
    if not math.isfinite(value):
        raise ValueError("Price must be a finite number")
    if value < PRICE_MIN:
        raise ValueError("Price cannot be negative")
    if value > PRICE_MAX:
        raise ValueError("Price cannot exceed 999,999.99")
    return value


def validate_image_url(value: str | None) -> str | None:
    """Empty strings mean 'no image'."""
    if value is None or not value.strip():
        return None
    value = value.strip()
    if len(value) > IMAGE_URL_MAX_LEN:
        raise ValueError(f"Image URL cannot exceed {IMAGE_URL_MAX_LEN} characters")
    if not _URL_RE.match(value):
        raise ValueError("Invalid image URL format")
    return value


def validate_amenity(value: str) -> str:
    if not isinstance(value, str):
        raise ValueError("All amenities must be strings")
    return _validate_length(value, "Amenity", 1, AMENITY_MAX_LEN)


def validate_amenities(values: list[str]) -> list[str]:
    cleaned = [validate_amenity(v) for v in values]
    if len(cleaned) != len(set(cleaned)):
        raise ValueError("Amenities cannot contain duplicates")
    return cleaned


class AccommodationCreate(BaseModel):
    """Body of POST /api/admin/accommodations."""

    model_config = {"extra": "ignore", "allow_inf_nan": False}

    title: str
    description: str
    price: float
    location: str
    image_url: str | None = None
    amenities: list[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def title_valid(cls, v: str) -> str:
        return validate_title(v)

    @field_validator("description")
    @classmethod
    def description_valid(cls, v: str) -> str:
        return validate_description(v)

    @field_validator("price")
    @classmethod
    def price_valid(cls, v: float) -> float:
        return validate_price(v)

    @field_validator("location")
    @classmethod
    def location_valid(cls, v: str) -> str:
        return validate_location(v)

    @field_validator("image_url")
    @classmethod
    def image_url_valid(cls, v: str | None) -> str | None:
        return validate_image_url(v)

    @field_validator("amenities", mode="before")
    @classmethod
    def amenities_valid(cls, v: object) -> list[str]:
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("Amenities must be a list of strings")
        return validate_amenities(v)


class AccommodationUpdate(BaseModel):
    """Partial update; a None field is left unchanged."""

    model_config = {"extra": "ignore", "allow_inf_nan": False}

    title: str | None = None
    description: str | None = None
    price: float | None = None
    location: str | None = None
    image_url: str | None = None
    amenities: list[str] | None = None

    @field_validator("title")
    @classmethod
    def title_valid(cls, v: str | None) -> str | None:
        return None if v is None else validate_title(v)

    @field_validator("description")
    @classmethod
    def description_valid(cls, v: str | None) -> str | None:
        return None if v is None else validate_description(v)

    @field_validator("price")
    @classmethod
    def price_valid(cls, v: float | None) -> float | None:
        return None if v is None else validate_price(v)

    @field_validator("location")
    @classmethod
    def location_valid(cls, v: str | None) -> str | None:
        return None if v is None else validate_location(v)

    @field_validator("image_url")
    @classmethod
    def image_url_valid(cls, v: str | None) -> str | None:
        # Unlike create, an empty string here is kept so callers can clear the image.
        if v is not None and not v.strip():
            return ""
        return validate_image_url(v)

    @field_validator("amenities", mode="before")
    @classmethod
    def amenities_valid(cls, v: object) -> list[str] | None:
        if v is None:
            return None
        if not isinstance(v, list):
            raise ValueError("Amenities must be a list of strings")
        return validate_amenities(v)

    def changes(self) -> dict[str, object]:
        """Fields to apply; image_url '' becomes an explicit None."""
        data = {k: v for k, v in self.model_dump().items() if v is not None}
        if data.get("image_url") == "":
            data["image_url"] = None
        return data


class AccommodationRead(BaseModel):
    """Validated accommodation as returned by repositories and the API."""

    model_config = {"from_attributes": True}

    id: int
    title: str
    description: str
    price: float
    location: str
    image_url: str | None = None
    amenities: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @field_validator("price")
    @classmethod
    def price_valid(cls, v: float) -> float:
        return validate_price(v)

    @field_validator("amenities", mode="before")
    @classmethod
    def amenities_default(cls, v: object) -> object:
        return [] if v is None else v

    @field_serializer("created_at", "updated_at", when_used="json")
    def serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)

    def has_amenity(self, amenity: str) -> bool:
        return amenity in self.amenities

    def formatted_price(self, currency: str = "$") -> str:
        return f"{currency}{self.price:,.2f}"


class AccommodationFilters(BaseModel):
    """Query parameters of GET /api/accommodations."""

    model_config = {"extra": "ignore", "allow_inf_nan": False}

    limit: int | None = Field(default=None, le=ID_MAX)
    offset: int | None = Field(default=None, le=ID_MAX)
    location: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    search: str | None = None
    amenity: str | None = None

    @field_validator("location", "search", "amenity", mode="before")
    @classmethod
    def blank_is_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v
