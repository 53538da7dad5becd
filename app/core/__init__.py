"""Core app configuration, database gateway, routing and security."""

from app.core.config import Settings, get_settings
from app.core.database import Database
from app.core.router import Reply, RequestContext, Router

__all__ = ["Database", "Reply", "RequestContext", "Router", "Settings", "get_settings"]
