"""Main module entrypoint for local runtime execution.

This module validates startup configuration and either launches the FastAPI
service or runs one correlation session and prints its record.
"""

import argparse
import json
import logging

import uvicorn

from runwatch.adapters import ControlPlaneError
from runwatch.bootstrap import (
    bootstrap_create_application,
    bootstrap_create_control_plane_adapter,
    bootstrap_create_session_orchestrator,
)
from runwatch.config import AppSettings, config_load_settings
from runwatch.correlation import CorrelationCancellation, CorrelationError
from runwatch.jobs import SESSION_MODE_WAIT, SESSION_MODE_WATCH
from runwatch.observability import observability_configure_logging

logger = logging.getLogger(__name__)


def main() -> None:
    """Run selected runtime command with validated startup configuration.

    Raises:
        SettingsLoadError: Raised when configuration validation fails.
        SystemExit: Raised with a non-zero code when a session fails.
    """

    argument_parser = argparse.ArgumentParser(description="runwatch runtime entrypoint")
    argument_parser.add_argument(
        "command",
        nargs="?",
        default="session-run",
        choices=("api", "session-run"),
        help="Runtime command: `api` starts server, `session-run` submits one run and prints its host record",
        type=str,
    )
    argument_parser.add_argument(
        "--mode",
        dest="mode",
        default=SESSION_MODE_WATCH,
        choices=(SESSION_MODE_WAIT, SESSION_MODE_WATCH),
        help="`watch` emits as soon as the host is known, `wait` polls until the run finishes",
    )
    argument_parser.add_argument(
        "--timeout-seconds",
        dest="timeout_seconds",
        type=float,
        help="Optional overall session deadline; overrides SESSION_TIMEOUT_SECONDS",
    )
    parsed_arguments = argument_parser.parse_args()

    settings = config_load_settings()
    observability_configure_logging(level=settings.log_level)

    if parsed_arguments.command == "session-run":
        main_run_session(
            settings=settings,
            mode=parsed_arguments.mode,
            timeout_seconds=parsed_arguments.timeout_seconds,
        )
        return

    application = bootstrap_create_application()
    uvicorn.run(
        application,
        host=settings.application_host,
        port=settings.application_port,
    )


def main_run_session(settings: AppSettings, mode: str, timeout_seconds: float | None = None) -> None:
    """Execute one correlation session and print its record as JSON.

    Args:
        settings: Validated runtime settings.
        mode: Session mode.
        timeout_seconds: Optional deadline override.

    Raises:
        SystemExit: Raised with code 1 on session failure, 130 on interrupt.
    """

    control_plane = bootstrap_create_control_plane_adapter(settings)
    orchestrator = bootstrap_create_session_orchestrator(settings, control_plane=control_plane)
    cancellation = CorrelationCancellation(timeout_seconds=timeout_seconds or settings.session_timeout_seconds)
    try:
        execution_result = orchestrator.session_execute(mode=mode, cancellation=cancellation)
    except (ControlPlaneError, CorrelationError) as error:
        logger.error("correlation session failed: %s", error, extra={"structured": {"error_type": type(error).__name__}})
        raise SystemExit(1) from error
    except KeyboardInterrupt as error:
        cancellation.cancellation_request()
        logger.warning("correlation session interrupted")
        raise SystemExit(130) from error
    finally:
        control_plane.adapter_close()

    print(json.dumps(execution_result.result.result_to_output_payload()))


if __name__ == "__main__":
    main()
