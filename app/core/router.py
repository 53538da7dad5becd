"""
Method + path routing with a global and named middleware pipeline.

Routes are matched exact-string first, then by pattern in registration order
(first match wins). Middlewares and handlers are plain synchronous callables
taking the per-request RequestContext; a middleware returning a Reply ends
the pipeline. The whole pipeline runs in Starlette's thread pool so blocking
database and bcrypt work never stalls the event loop.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, NamedTuple

from starlette.concurrency import run_in_threadpool
from starlette.datastructures import Headers, QueryParams
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.core.errors import GENERIC_ERROR_MESSAGE, ServiceError, error_body

if TYPE_CHECKING:
    from app.schemas.auth import Identity

logger = logging.getLogger(__name__)

DEFAULT_STRIP_PREFIXES = ("/backend/index.php", "/backend")

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")

_PLACEHOLDER_RE = re.compile(r"\{([^}/]+)\}")


class Reply(NamedTuple):
    """An explicit (status, body) result from a middleware or handler."""

    status: int
    data: Any = None


@dataclass
class RequestContext:
    """
    Everything a middleware or handler sees about one request.

    identity is filled in by the authentication middleware and lives only as
    long as this object; response_headers are merged into the final response.
    """

    method: str
    path: str
    headers: Headers = field(default_factory=Headers)
    query: QueryParams = field(default_factory=QueryParams)
    body: dict[str, Any] = field(default_factory=dict)
    path_params: dict[str, str] = field(default_factory=dict)
    identity: Identity | None = None
    response_headers: dict[str, str] = field(default_factory=dict)


Middleware = Callable[[RequestContext], Reply | None]
Handler = Callable[[RequestContext], Any]


@dataclass(frozen=True)
class Route:
    method: str
    pattern: str
    handler: Handler
    middleware: tuple[str, ...]
    regex: re.Pattern[str]
    param_names: tuple[str, ...]

    def match(self, path: str) -> dict[str, str] | None:
        found = self.regex.match(path)
        if found is None:
            return None
        return dict(zip(self.param_names, found.groups()))


def compile_pattern(pattern: str) -> tuple[re.Pattern[str], tuple[str, ...]]:
    """Turn '/a/{id}/b' into an anchored regex where each placeholder is one path segment."""
    parts = []
    names = []
    pos = 0
    for placeholder in _PLACEHOLDER_RE.finditer(pattern):
        parts.append(re.escape(pattern[pos:placeholder.start()]))
        parts.append("([^/]+)")
        names.append(placeholder.group(1))
        pos = placeholder.end()
    parts.append(re.escape(pattern[pos:]))
    return re.compile("^" + "".join(parts) + "$"), tuple(names)


def error_reply(exc: ServiceError) -> Reply:
    """Render any ServiceError in the one error shape used by every endpoint."""
    message = GENERIC_ERROR_MESSAGE if exc.status_code >= 500 else exc.message
    return Reply(exc.status_code, error_body(exc.code, message))


def success_reply(message: str, status: int = 200, **data: Any) -> Reply:
    return Reply(status, {"success": True, "message": message, **data})


def _preflight(_ctx: RequestContext) -> Reply:
    return Reply(204)


class Router:
    def __init__(self, strip_prefixes: Iterable[str] = DEFAULT_STRIP_PREFIXES) -> None:
        self._routes: dict[str, dict[str, Route]] = {}
        self._global_middleware: list[Middleware] = []
        self._named_middleware: dict[str, Middleware] = {}
        self._strip_prefixes = tuple(strip_prefixes)

    def register(
        self,
        method: str,
        pattern: str,
        handler: Handler,
        middleware: Iterable[str] = (),
    ) -> None:
        """Add a route; re-registering a method+pattern replaces it in place."""
        method = method.upper()
        regex, names = compile_pattern(pattern)
        self._routes.setdefault(method, {})[pattern] = Route(
            method=method,
            pattern=pattern,
            handler=handler,
            middleware=tuple(middleware),
            regex=regex,
            param_names=names,
        )

    def get(self, pattern: str, handler: Handler, middleware: Iterable[str] = ()) -> None:
        self.register("GET", pattern, handler, middleware)

    def post(self, pattern: str, handler: Handler, middleware: Iterable[str] = ()) -> None:
        self.register("POST", pattern, handler, middleware)

    def put(self, pattern: str, handler: Handler, middleware: Iterable[str] = ()) -> None:
        self.register("PUT", pattern, handler, middleware)

    def patch(self, pattern: str, handler: Handler, middleware: Iterable[str] = ()) -> None:
        self.register("PATCH", pattern, handler, middleware)

    def delete(self, pattern: str, handler: Handler, middleware: Iterable[str] = ()) -> None:
        self.register("DELETE", pattern, handler, middleware)

    def add_global_middleware(self, middleware: Middleware) -> None:
        self._global_middleware.append(middleware)

    def add_named_middleware(self, name: str, middleware: Middleware) -> None:
        self._named_middleware[name] = middleware

    def routes(self, method: str | None = None) -> list[str]:
        """Registered patterns for one method (in registration order), or for all methods."""
        if method is not None:
            return list(self._routes.get(method.upper(), {}))
        return [f"{m} {p}" for m, table in self._routes.items() for p in table]

    def normalize_path(self, raw_path: str) -> str:
        """Drop the query string, known front-controller prefixes and a trailing slash."""
        path = raw_path.split("?", 1)[0] or "/"
        for prefix in self._strip_prefixes:
            if path == prefix or path.startswith(prefix + "/"):
                path = path[len(prefix):] or "/"
        if path != "/" and path.endswith("/"):
            path = path.rstrip("/") or "/"
        return path

    def _find(self, method: str, path: str) -> tuple[Route, dict[str, str]] | None:
        table = self._routes.get(method)
        if not table:
            return None
        route = table.get(path)
        if route is not None:
            return route, route.match(path) or {}
        for route in table.values():
            params = route.match(path)
            if params is not None:
                return route, params
        return None

    def match(self, method: str, path: str) -> tuple[Route, dict[str, str]] | None:
        """
        Route and path parameters for a request, or None.

        OPTIONS falls back to any method with a route for the path, so CORS
        preflight reaches the global middlewares.
        """
        method = method.upper()
        found = self._find(method, path)
        if found is not None or method != "OPTIONS":
            return found
        for other in self._routes:
            if self._find(other, path) is not None:
                preflight = Route("OPTIONS", path, _preflight, (), *compile_pattern(path))
                return preflight, {}
        return None

    def dispatch(self, ctx: RequestContext, route: Route) -> Reply:
        """Run global middlewares, the route's named middlewares, then the handler."""
        try:
            for middleware in self._global_middleware:
                reply = middleware(ctx)
                if reply is not None:
                    return reply

            for name in route.middleware:
                middleware = self._named_middleware.get(name)
                if middleware is None:
                    logger.error(
                        "Route %s %s references unknown middleware %r",
                        route.method,
                        route.pattern,
                        name,
                    )
                    return Reply(500, error_body("INTERNAL_ERROR", GENERIC_ERROR_MESSAGE))
                reply = middleware(ctx)
                if reply is not None:
                    return reply

            result = route.handler(ctx)
        except ServiceError as e:
            if e.status_code >= 500:
                logger.error("%s %s failed: %s", ctx.method, ctx.path, e.message, exc_info=e)
            return error_reply(e)
        except Exception:
            logger.exception("Unhandled error on %s %s", ctx.method, ctx.path)
            return Reply(500, error_body("INTERNAL_ERROR", GENERIC_ERROR_MESSAGE))

        if isinstance(result, Reply):
            return result
        return Reply(200, result)

    def not_found(self, method: str, path: str) -> Reply:
        return Reply(
            404,
            {
                **error_body("ROUTE_NOT_FOUND", "Route not found"),
                "method": method,
                "path": path,
                "available_routes": self.routes(method),
            },
        )

    async def handle(self, request: Request) -> Response:
        method = request.method.upper()
        path = self.normalize_path(request.url.path)

        found = self.match(method, path)
        if found is None:
            return self._render(self.not_found(method, path), {})
        route, params = found

        ctx = RequestContext(
            method=method,
            path=path,
            headers=request.headers,
            query=request.query_params,
            body=await _read_json_body(request),
            path_params=params,
        )
        reply = await run_in_threadpool(self.dispatch, ctx, route)
        try:
            return self._render(reply, ctx.response_headers)
        except (TypeError, ValueError):
            logger.exception("Failed to render response for %s %s", method, path)
            return self._render(
                Reply(500, error_body("INTERNAL_ERROR", GENERIC_ERROR_MESSAGE)),
                ctx.response_headers,
            )

    @staticmethod
    def _render(reply: Reply, headers: dict[str, str]) -> Response:
        if reply.status == 204:
            return Response(status_code=204, headers=headers)
        return JSONResponse(reply.data, status_code=reply.status, headers=headers)


async def _read_json_body(request: Request) -> dict[str, Any]:
    """Request body as a JSON object; anything else (empty, malformed, non-object) is {}."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
