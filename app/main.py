"""FastAPI application entrypoint. No business logic; only wiring."""

from dotenv import load_dotenv

load_dotenv()

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response

from app.api.routes import build_router
from app.core.config import Settings, get_settings
from app.core.database import Database
from app.core.router import HTTP_METHODS

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


def check_jwt_secret(settings: Settings) -> None:
    """Refuse to run production with the built-in signing secret; warn in development."""
    if not settings.uses_default_jwt_secret:
        return
    if settings.APP_ENV == "prod":
        raise RuntimeError("JWT_SECRET must be set to a non-default value when APP_ENV=prod")
    logger.warning("JWT_SECRET is the insecure development default; set JWT_SECRET before deploying")


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    settings = settings or get_settings()
    check_jwt_secret(settings)
    if settings.DEBUG:
        logging.getLogger().setLevel(logging.DEBUG)

    database = database or Database(
        settings.database_url,
        connect_timeout=settings.DB_CONNECT_TIMEOUT,
        max_attempts=settings.DB_MAX_CONNECT_ATTEMPTS,
        echo=settings.DEBUG,
    )
    router = build_router(settings, database)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting (env=%s, %s routes)", settings.APP_ENV, len(router.routes()))
        yield
        database.dispose()

    app = FastAPI(
        title="Accommodation Management API",
        version="0.1.0",
        docs_url="/docs" if settings.APP_ENV == "dev" else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.router = router
    app.state.database = database

    @app.get("/")
    def root() -> dict[str, str]:
        """Root route; minimal payload for discovery."""
        return {"message": "Accommodation Management API"}

    @app.api_route("/{full_path:path}", methods=list(HTTP_METHODS), include_in_schema=False)
    async def dispatch(request: Request, full_path: str) -> Response:
        """Every other path goes through the application router."""
        return await router.handle(request)

    return app


app = create_app()
