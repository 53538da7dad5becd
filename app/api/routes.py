"""Route table: builds services and controllers once and binds them to the router."""

from app.api.accommodations import AccommodationController
from app.api.auth import AuthController
from app.api.health import HealthController
from app.api.middleware import AuthenticationMiddleware, require_admin, require_auth
from app.api.users import UserController
from app.core.config import Settings
from app.core.cors import CorsMiddleware
from app.core.database import Database
from app.core.router import Router
from app.core.security import PasswordHasher, TokenManager
from app.repositories import AccommodationRepository, UserRepository
from app.services.accommodation import AccommodationService
from app.services.auth import AuthService
from app.services.user import UserService

ADMIN_ONLY = ("auth", "admin")
SIGNED_IN = ("auth", "user")


def build_cors(settings: Settings) -> CorsMiddleware:
    if settings.APP_ENV == "prod":
        return CorsMiddleware.for_production(settings.CORS_ALLOWED_ORIGINS)
    return CorsMiddleware.for_development(settings.CORS_ALLOWED_ORIGINS)


def build_router(settings: Settings, database: Database) -> Router:
    tokens = TokenManager.from_settings(settings)
    hasher = PasswordHasher(settings.BCRYPT_COST)
    users = UserRepository(database)
    accommodations = AccommodationRepository(database)

    accommodation_api = AccommodationController(AccommodationService(accommodations))
    auth_api = AuthController(AuthService(tokens, hasher, users))
    user_api = UserController(UserService(users, accommodations))

    router = Router(settings.ROUTER_STRIP_PREFIXES)
    health_api = HealthController(database, router, settings.APP_ENV)

    router.add_global_middleware(build_cors(settings))
    router.add_named_middleware("auth", AuthenticationMiddleware(tokens, users))
    router.add_named_middleware("admin", require_admin())
    router.add_named_middleware("user", require_auth())

    router.get("/api/health", health_api.get)

    router.get("/api/accommodations", accommodation_api.list)
    router.get("/api/accommodations/{id}", accommodation_api.get)
    router.post("/api/admin/accommodations", accommodation_api.create, ADMIN_ONLY)
    router.put("/api/admin/accommodations/{id}", accommodation_api.update, ADMIN_ONLY)
    router.delete("/api/admin/accommodations/{id}", accommodation_api.delete, ADMIN_ONLY)
    router.get("/api/admin/users", user_api.list_users, ADMIN_ONLY)

    router.get("/api/users/accommodations", user_api.list_accommodations, SIGNED_IN)
    router.post("/api/users/accommodations", user_api.add_accommodation, SIGNED_IN)
    router.delete(
        "/api/users/accommodations/{accommodation_id}",
        user_api.remove_accommodation,
        SIGNED_IN,
    )

    router.post("/api/auth/login", auth_api.login)
    router.post("/api/auth/register", auth_api.register)
    router.post("/api/auth/refresh", auth_api.refresh)
    router.post("/api/auth/validate", auth_api.validate)
    router.post("/api/auth/change-password", auth_api.change_password, SIGNED_IN)

    return router
