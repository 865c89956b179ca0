"""Health endpoint router reporting API server reachability for the bound namespace."""

from __future__ import annotations

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from runwatch.adapters import ControlPlanePort


def api_create_health_router(control_plane: ControlPlanePort) -> APIRouter:
    """Create health-check router with control-plane reachability status.

    Args:
        control_plane: Control-plane client used for reachability checks.

    Returns:
        APIRouter: Router exposing `/health` endpoint.

    Raises:
        ValueError: Raised when control_plane is invalid.
    """

    if control_plane is None:
        raise ValueError("control_plane must not be None")

    router = APIRouter(tags=["health"])

    @router.get("/health")
    def api_health_status() -> JSONResponse:
        """Return service health with a nested control-plane section.

        The service itself is always up when this handler runs; the overall
        status degrades only when the API server cannot be reached.

        Returns:
            JSONResponse: `200` with status `ok`, or `503` with status `degraded`.

        Raises:
            RuntimeError: Not raised; control-plane failures are reported in the payload.
        """

        control_plane_section: dict[str, object] = {"target": control_plane.adapter_connection_label()}
        try:
            health = control_plane.adapter_check_health()
        except ConnectionError as error:
            control_plane_section.update(reachable=False, server_version=None, error=str(error))
        else:
            control_plane_section.update(reachable=True, server_version=health.server_version, error=None)

        reachable = bool(control_plane_section["reachable"])
        payload = {
            "status": "ok" if reachable else "degraded",
            "namespace": control_plane.adapter_namespace(),
            "control_plane": control_plane_section,
        }
        status_code = status.HTTP_200_OK if reachable else status.HTTP_503_SERVICE_UNAVAILABLE
        return JSONResponse(content=payload, status_code=status_code)

    return router
