"""Tests for path normalization, route matching and the middleware pipeline."""

import unittest

from fastapi import FastAPI, Request, Response
from fastapi.testclient import TestClient

from app.core.cors import CorsMiddleware
from app.core.errors import NotFoundError
from app.core.router import Reply, RequestContext, Router


def _echo_params(ctx: RequestContext) -> dict:
    return {"params": ctx.path_params}


def _client(router: Router) -> TestClient:
    app = FastAPI()

    @app.api_route("/{full_path:path}", methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"])
    async def dispatch(request: Request, full_path: str) -> Response:
        return await router.handle(request)

    return TestClient(app)


class TestNormalizePath(unittest.TestCase):
    """Prefix, query string and trailing slash stripping."""

    def setUp(self) -> None:
        self.router = Router()

    def test_strips_front_controller_prefixes(self) -> None:
        self.assertEqual(self.router.normalize_path("/backend/index.php/api/x"), "/api/x")
        self.assertEqual(self.router.normalize_path("/backend/api/x"), "/api/x")
        self.assertEqual(self.router.normalize_path("/backend"), "/")

    def test_strips_query_and_trailing_slash(self) -> None:
        self.assertEqual(self.router.normalize_path("/api/x/?a=1"), "/api/x")
        self.assertEqual(self.router.normalize_path("/"), "/")

    def test_similar_prefix_is_kept(self) -> None:
        self.assertEqual(self.router.normalize_path("/backendish/api"), "/backendish/api")


class TestMatch(unittest.TestCase):
    """Exact-then-pattern matching and the OPTIONS fallback."""

    def setUp(self) -> None:
        self.router = Router()
        self.router.get("/api/accommodations", _echo_params)
        self.router.get("/api/accommodations/{id}", _echo_params)
        self.router.get("/api/accommodations/featured", _echo_params)

    def test_list_route_is_exact(self) -> None:
        route, params = self.router.match("GET", "/api/accommodations")
        self.assertEqual(route.pattern, "/api/accommodations")
        self.assertEqual(params, {})

    def test_placeholder_captures_one_segment(self) -> None:
        route, params = self.router.match("GET", "/api/accommodations/42")
        self.assertEqual(route.pattern, "/api/accommodations/{id}")
        self.assertEqual(params, {"id": "42"})
        self.assertIsNone(self.router.match("GET", "/api/accommodations/42/extra"))

    def test_exact_match_beats_earlier_pattern(self) -> None:
        route, _ = self.router.match("GET", "/api/accommodations/featured")
        self.assertEqual(route.pattern, "/api/accommodations/featured")

    def test_method_must_match(self) -> None:
        self.assertIsNone(self.router.match("DELETE", "/api/accommodations/42"))

    def test_options_falls_back_to_preflight(self) -> None:
        route, _ = self.router.match("OPTIONS", "/api/accommodations/42")
        self.assertEqual(route.method, "OPTIONS")
        self.assertEqual(route.handler(RequestContext("OPTIONS", "/")).status, 204)
        self.assertIsNone(self.router.match("OPTIONS", "/api/unknown"))

    def test_routes_listing(self) -> None:
        self.assertEqual(len(self.router.routes("GET")), 3)
        self.assertIn("GET /api/accommodations/{id}", self.router.routes())


class TestDispatch(unittest.TestCase):
    """Pipeline order, short-circuits and error rendering."""

    def setUp(self) -> None:
        self.router = Router()
        self.calls: list[str] = []

    def _route(self, pattern: str):
        route, _ = self.router.match("GET", pattern)
        return route

    def test_global_then_named_then_handler(self) -> None:
        self.router.add_global_middleware(lambda ctx: self.calls.append("global"))
        self.router.add_named_middleware("named", lambda ctx: self.calls.append("named"))
        self.router.get("/x", lambda ctx: self.calls.append("handler") or {"ok": True}, ["named"])

        reply = self.router.dispatch(RequestContext("GET", "/x"), self._route("/x"))

        self.assertEqual(reply, Reply(200, {"ok": True}))
        self.assertEqual(self.calls, ["global", "named", "handler"])

    def test_middleware_reply_short_circuits(self) -> None:
        self.router.add_named_middleware("deny", lambda ctx: Reply(403, {"denied": True}))
        self.router.get("/x", lambda ctx: self.calls.append("handler"), ["deny"])

        reply = self.router.dispatch(RequestContext("GET", "/x"), self._route("/x"))

        self.assertEqual(reply.status, 403)
        self.assertEqual(self.calls, [])

    def test_unknown_middleware_is_server_error(self) -> None:
        self.router.get("/x", lambda ctx: self.calls.append("handler"), ["missing"])

        with self.assertLogs("app.core.router", level="ERROR"):
            reply = self.router.dispatch(RequestContext("GET", "/x"), self._route("/x"))

        self.assertEqual(reply.status, 500)
        self.assertEqual(self.calls, [])

    def test_service_error_rendered(self) -> None:
        def handler(ctx: RequestContext) -> dict:
            raise NotFoundError("Accommodation not found")

        self.router.get("/x", handler)
        reply = self.router.dispatch(RequestContext("GET", "/x"), self._route("/x"))
        self.assertEqual(
            reply,
            Reply(404, {"success": False, "error": "NOT_FOUND", "message": "Accommodation not found"}),
        )

    def test_unexpected_exception_is_generic_500(self) -> None:
        def handler(ctx: RequestContext) -> dict:
            raise RuntimeError("secret internals")

        self.router.get("/x", handler)
        with self.assertLogs("app.core.router", level="ERROR"):
            reply = self.router.dispatch(RequestContext("GET", "/x"), self._route("/x"))
        self.assertEqual(reply.status, 500)
        self.assertEqual(reply.data["error"], "INTERNAL_ERROR")
        self.assertNotIn("secret", reply.data["message"])


class TestHandle(unittest.TestCase):
    """Full request path through the ASGI surface."""

    def setUp(self) -> None:
        self.router = Router()
        self.router.add_global_middleware(CorsMiddleware.for_development(["http://localhost:3000"]))
        self.router.get("/api/accommodations", lambda ctx: {"list": True})
        self.router.get("/api/accommodations/{id}", _echo_params)
        self.router.post("/api/echo", lambda ctx: Reply(201, ctx.body))
        self.client = _client(self.router)

    def test_path_param_through_prefix(self) -> None:
        response = self.client.get("/backend/index.php/api/accommodations/42")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"params": {"id": "42"}})

    def test_unknown_route_lists_available(self) -> None:
        response = self.client.get("/api/nothing")
        self.assertEqual(response.status_code, 404)
        body = response.json()
        self.assertEqual(body["error"], "ROUTE_NOT_FOUND")
        self.assertEqual(body["method"], "GET")
        self.assertEqual(body["path"], "/api/nothing")
        self.assertIn("/api/accommodations/{id}", body["available_routes"])

    def test_json_body_and_cors_headers(self) -> None:
        response = self.client.post(
            "/api/echo", json={"a": 1}, headers={"Origin": "http://localhost:3000"}
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json(), {"a": 1})
        self.assertEqual(
            response.headers["access-control-allow-origin"], "http://localhost:3000"
        )

    def test_non_object_body_is_empty(self) -> None:
        response = self.client.post("/api/echo", content=b"[1, 2]")
        self.assertEqual(response.json(), {})

    def test_unrenderable_reply_is_json_500(self) -> None:
        self.router.get("/api/nan", lambda ctx: {"x": float("nan")})
        with self.assertLogs("app.core.router", level="ERROR"):
            response = self.client.get("/api/nan")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "INTERNAL_ERROR")

    def test_strict_cors_withholds_disallowed_origin(self) -> None:
        router = Router()
        router.add_global_middleware(CorsMiddleware.strict(["https://app.example.com"]))
        router.get("/api/accommodations", lambda ctx: {"list": True})
        client = _client(router)

        denied = client.get("/api/accommodations", headers={"Origin": "https://evil.example.com"})
        self.assertEqual(denied.status_code, 200)
        self.assertNotIn("access-control-allow-origin", denied.headers)
        self.assertNotIn("access-control-allow-credentials", denied.headers)
        self.assertEqual(denied.headers["access-control-allow-methods"], "GET, POST")

        allowed = client.get("/api/accommodations", headers={"Origin": "https://app.example.com"})
        self.assertEqual(
            allowed.headers["access-control-allow-origin"], "https://app.example.com"
        )

    def test_preflight(self) -> None:
        response = self.client.options(
            "/api/accommodations/1", headers={"Origin": "http://localhost:3000"}
        )
        self.assertEqual(response.status_code, 204)
        self.assertIn("GET", response.headers["access-control-allow-methods"])


if __name__ == "__main__":
    unittest.main()
