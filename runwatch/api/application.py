"""FastAPI application factory for the runtime service."""

from fastapi import FastAPI

from runwatch.adapters import ControlPlanePort
from runwatch.config import AppSettings
from runwatch.jobs import SessionOrchestratorPort

from .routers import api_create_health_router, api_create_sessions_router


def create_api_application(
    settings: AppSettings,
    control_plane: ControlPlanePort,
    session_orchestrator: SessionOrchestratorPort,
) -> FastAPI:
    """Create the FastAPI application instance for the service.

    Args:
        settings: Validated application settings used for runtime metadata.
        control_plane: Control-plane client used by health endpoints.
        session_orchestrator: Orchestrator for session trigger execution.

    Returns:
        FastAPI: Framework application instance.
    """
    application = FastAPI(title="runwatch")

    @application.get("/", tags=["foundation"])
    def foundation_index() -> dict[str, str]:
        """Return service identity and target namespace."""

        return {
            "service": "runwatch",
            "status": "ready",
            "environment": settings.environment_name,
            "namespace": settings.target_namespace,
        }

    application.include_router(api_create_health_router(control_plane=control_plane))
    application.include_router(
        api_create_sessions_router(settings=settings, session_orchestrator=session_orchestrator)
    )

    return application
