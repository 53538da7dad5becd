"""Health check endpoint with database connectivity check."""

from typing import Any

from app.core.database import Database
from app.core.router import RequestContext, Router
from app.schemas.health import HealthResponse


class HealthController:
    def __init__(self, database: Database, router: Router, environment: str) -> None:
        self._database = database
        self._router = router
        self._environment = environment

    def get(self, ctx: RequestContext) -> dict[str, Any]:
        """
        Return service health status and database connectivity.
        Used by load balancers and monitoring.
        """
        health = HealthResponse(
            environment=self._environment,
            database="connected" if self._database.check_connected() else "disconnected",
            routes=len(self._router.routes()),
        )
        return {"success": True, **health.model_dump()}
