"""Shared fixtures: settings and an in-memory SQLite database with the schema created."""

from app.core.config import Settings
from app.core.database import Database
from app.models import Base

TEST_JWT_SECRET = "test-secret-key-with-enough-length-for-hs256"
ADMIN_PASSWORD = "Adm1n!pass"


def make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "APP_ENV": "dev",
        "DATABASE_URL": "sqlite://",
        "JWT_SECRET": TEST_JWT_SECRET,
        "BCRYPT_COST": 4,
        "CORS_ALLOWED_ORIGINS": ["http://localhost:3000"],
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_database() -> Database:
    database = Database("sqlite://", max_attempts=1)
    Base.metadata.create_all(database.engine)
    return database
