"""Application configuration loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

# Allowed URL schemes for DATABASE_URL (module-level so validators can use it).
VALID_DATABASE_URL_PREFIXES = (
    "postgresql://",
    "postgresql+psycopg2://",
    "postgres://",
    "postgres+psycopg2://",
    "sqlite://",
    "sqlite+pysqlite://",
)

# Development-only signing secret; must be overridden with JWT_SECRET in any deployment.
DEFAULT_JWT_SECRET = "default-secret-key-change-in-production"

DEVELOPMENT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:8000",
]


class Settings(BaseSettings):
    """Validated application settings from env and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    APP_ENV: Literal["dev", "prod"] = "dev"
    DEBUG: bool = False

    # Either a full DATABASE_URL, or the DB_* parts below (PostgreSQL).
    DATABASE_URL: str | None = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "accommodation_management"
    DB_USERNAME: str = "postgres"
    DB_PASSWORD: SecretStr = SecretStr("")
    DB_CHARSET: str = "utf8"
    DB_CONNECT_TIMEOUT: int = 30
    DB_MAX_CONNECT_ATTEMPTS: int = 3

    # JWT authentication
    JWT_SECRET: SecretStr = SecretStr(DEFAULT_JWT_SECRET)
    JWT_ALGORITHM: str = "HS256"
    JWT_TTL_SECONDS: int = 3600
    JWT_ISSUER: str = "accommodation-management-system"
    JWT_AUDIENCE: str = "accommodation-management-system"

    # Password hashing work factor
    BCRYPT_COST: int = 12

    CORS_ALLOWED_ORIGINS: list[str] = DEVELOPMENT_CORS_ORIGINS

    # Front-controller prefixes stripped before routing, tried in order.
    ROUTER_STRIP_PREFIXES: list[str] = ["/backend/index.php", "/backend"]

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        if not any(v.startswith(prefix) for prefix in VALID_DATABASE_URL_PREFIXES):
            raise ValueError(
                "DATABASE_URL must be a PostgreSQL or SQLite URL "
                "(e.g. postgresql+psycopg2:// or sqlite://)"
            )
        return v.strip()

    @field_validator("DB_PORT")
    @classmethod
    def validate_db_port(cls, v: int) -> int:
        if v < 1 or v > 65535:
            raise ValueError("DB_PORT must be between 1 and 65535")
        return v

    @field_validator("DB_CONNECT_TIMEOUT")
    @classmethod
    def validate_db_connect_timeout(cls, v: int) -> int:
        if v < 1 or v > 300:
            raise ValueError("DB_CONNECT_TIMEOUT must be between 1 and 300 seconds")
        return v

    @field_validator("DB_MAX_CONNECT_ATTEMPTS")
    @classmethod
    def validate_db_max_connect_attempts(cls, v: int) -> int:
        if v < 1 or v > 10:
            raise ValueError("DB_MAX_CONNECT_ATTEMPTS must be between 1 and 10")
        return v

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value() or not v.get_secret_value().strip():
            raise ValueError("JWT_SECRET must be set and non-empty")
        return v

    @field_validator("JWT_ALGORITHM")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("JWT_ALGORITHM must be set and non-empty")
        return v.strip()

    @field_validator("JWT_TTL_SECONDS")
    @classmethod
    def validate_jwt_ttl_seconds(cls, v: int) -> int:
        if v < 1 or v > 604800:
            raise ValueError(
                "JWT_TTL_SECONDS must be between 1 and 604800 (1 second to 7 days)"
            )
        return v

    @field_validator("BCRYPT_COST")
    @classmethod
    def validate_bcrypt_cost(cls, v: int) -> int:
        if v < 4 or v > 31:
            raise ValueError("BCRYPT_COST must be between 4 and 31")
        return v

    @property
    def database_url(self) -> str:
        """DATABASE_URL if set, otherwise a PostgreSQL URL assembled from DB_* settings."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        url = URL.create(
            "postgresql+psycopg2",
            username=self.DB_USERNAME,
            password=self.DB_PASSWORD.get_secret_value() or None,
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
            query={"client_encoding": self.DB_CHARSET},
        )
        return url.render_as_string(hide_password=False)

    @property
    def uses_default_jwt_secret(self) -> bool:
        return self.JWT_SECRET.get_secret_value() == DEFAULT_JWT_SECRET


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance (safe to call from dependencies)."""
    return Settings()
