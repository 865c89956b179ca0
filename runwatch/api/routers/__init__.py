"""API router package for endpoint composition."""

from .health import api_create_health_router
from .sessions import api_create_sessions_router

__all__ = ["api_create_health_router", "api_create_sessions_router"]
