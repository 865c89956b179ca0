"""Session API router composition for triggering correlation sessions."""

from __future__ import annotations

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from runwatch.adapters import ControlPlaneError
from runwatch.config import AppSettings
from runwatch.correlation import CorrelationCancellation, CorrelationError, SessionDeadlineExceededError
from runwatch.jobs import SESSION_MODE_WATCH, SessionOrchestratorPort


def api_create_sessions_router(
    settings: AppSettings,
    session_orchestrator: SessionOrchestratorPort,
) -> APIRouter:
    """Create sessions router with a synchronous trigger endpoint.

    Args:
        settings: Runtime settings used for the default session deadline.
        session_orchestrator: Orchestrator executing correlation sessions.

    Returns:
        APIRouter: Router exposing `/sessions`.

    Raises:
        ValueError: Raised when dependencies are invalid.
    """

    if settings is None:
        raise ValueError("settings must not be None")
    if session_orchestrator is None:
        raise ValueError("session_orchestrator must not be None")

    router = APIRouter(prefix="/sessions", tags=["sessions"])

    @router.post("")
    def api_session_trigger(
        mode: str = Query(default=SESSION_MODE_WATCH),
        timeout_seconds: float | None = Query(default=None, gt=0),
    ) -> JSONResponse:
        """Run one correlation session and return its single output record.

        Returns:
            JSONResponse: Correlated record with stage timeline, or one error payload.
        """

        normalized_mode = mode.strip().lower()
        if normalized_mode not in session_orchestrator.session_supported_modes():
            payload = {
                "status": "error",
                "error_type": "UnsupportedMode",
                "message": f"mode must be one of {', '.join(session_orchestrator.session_supported_modes())}",
            }
            return JSONResponse(content=payload, status_code=status.HTTP_400_BAD_REQUEST)

        effective_timeout_seconds = timeout_seconds or settings.session_timeout_seconds
        cancellation = CorrelationCancellation(timeout_seconds=effective_timeout_seconds)
        try:
            execution_result = session_orchestrator.session_execute(mode=normalized_mode, cancellation=cancellation)
        except SessionDeadlineExceededError as error:
            return _api_session_error_response(error, status.HTTP_504_GATEWAY_TIMEOUT)
        except (ControlPlaneError, CorrelationError) as error:
            return _api_session_error_response(error, status.HTTP_502_BAD_GATEWAY)

        payload = {
            "status": "success",
            "mode": execution_result.mode,
            "result": execution_result.result.result_to_output_payload(),
            "stage_timeline": execution_result.stage_timeline,
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    return router


def _api_session_error_response(error: Exception, status_code: int) -> JSONResponse:
    payload = {
        "status": "error",
        "error_type": type(error).__name__,
        "message": str(error),
        "run_name": getattr(error, "run_name", None),
    }
    return JSONResponse(content=payload, status_code=status_code)
