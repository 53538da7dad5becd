"""CORS global middleware: sets Access-Control-* headers and answers preflight requests."""

from __future__ import annotations

from collections.abc import Iterable

from app.core.router import Reply, RequestContext

DEFAULT_METHODS = ("GET", "POST", "PUT", "DELETE", "OPTIONS")
DEFAULT_HEADERS = ("Content-Type", "Authorization", "X-Requested-With")


class CorsMiddleware:
    def __init__(
        self,
        allowed_origins: Iterable[str] = ("*",),
        allowed_methods: Iterable[str] = DEFAULT_METHODS,
        allowed_headers: Iterable[str] = DEFAULT_HEADERS,
        allow_credentials: bool = True,
        max_age: int = 86400,
    ) -> None:
        self.allowed_origins = list(allowed_origins)
        self.allowed_methods = [m.upper() for m in allowed_methods]
        self.allowed_headers = list(allowed_headers)
        self.allow_credentials = allow_credentials
        self.max_age = max_age

    @classmethod
    def for_development(cls, origins: Iterable[str]) -> CorsMiddleware:
        return cls(
            allowed_origins=origins,
            allowed_methods=("GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"),
            allowed_headers=(
                "Content-Type",
                "Authorization",
                "X-Requested-With",
                "Accept",
                "Origin",
                "Cache-Control",
                "X-File-Name",
            ),
            allow_credentials=True,
            max_age=3600,
        )

    @classmethod
    def for_production(cls, origins: Iterable[str]) -> CorsMiddleware:
        return cls(allowed_origins=origins, allow_credentials=True, max_age=86400)

    @classmethod
    def strict(cls, origins: Iterable[str]) -> CorsMiddleware:
        return cls(
            allowed_origins=origins,
            allowed_methods=("GET", "POST"),
            allowed_headers=("Content-Type", "Authorization"),
            allow_credentials=False,
            max_age=3600,
        )

    def is_origin_allowed(self, origin: str) -> bool:
        if not origin:
            return False
        return "*" in self.allowed_origins or origin in self.allowed_origins

    def __call__(self, ctx: RequestContext) -> Reply | None:
        origin = ctx.headers.get("origin", "")
        headers = ctx.response_headers

        if self.is_origin_allowed(origin):
            headers["Access-Control-Allow-Origin"] = origin
        elif "*" in self.allowed_origins:
            headers["Access-Control-Allow-Origin"] = "*"

        headers["Access-Control-Allow-Methods"] = ", ".join(self.allowed_methods)
        headers["Access-Control-Allow-Headers"] = ", ".join(self.allowed_headers)
        if self.allow_credentials:
            headers["Access-Control-Allow-Credentials"] = "true"
        headers["Access-Control-Max-Age"] = str(self.max_age)
        headers["Access-Control-Expose-Headers"] = "Content-Length, X-JSON"
        headers["Vary"] = "Origin"

        if ctx.method == "OPTIONS":
            return Reply(204)
        return None
