"""Application bootstrap wiring for startup validation and dependency assembly."""

from fastapi import FastAPI

from runwatch.adapters import KubernetesControlPlaneAdapter
from runwatch.api import create_api_application
from runwatch.config import AppSettings, config_load_settings
from runwatch.jobs import CorrelationSessionConfig, CorrelationSessionOrchestrator
from runwatch.mapping import TaskTemplate


def bootstrap_create_control_plane_adapter(settings: AppSettings) -> KubernetesControlPlaneAdapter:
    """Build the control-plane client bound to the configured namespace.

    Args:
        settings: Validated runtime settings.

    Returns:
        KubernetesControlPlaneAdapter: Configured control-plane client.
    """

    return KubernetesControlPlaneAdapter(
        base_url=settings.control_plane_base_url,
        namespace=settings.target_namespace,
        token=settings.control_plane_token,
        verify_tls=settings.control_plane_verify_tls,
        ca_bundle_path=settings.control_plane_ca_bundle_path,
        request_timeout_seconds=settings.control_plane_request_timeout_seconds,
    )


def bootstrap_create_session_orchestrator(
    settings: AppSettings,
    control_plane: KubernetesControlPlaneAdapter | None = None,
) -> CorrelationSessionOrchestrator:
    """Build session orchestrator for CLI and HTTP trigger surfaces.

    Args:
        settings: Validated runtime settings.
        control_plane: Optional pre-built client to share with other components.

    Returns:
        CorrelationSessionOrchestrator: Fully wired session orchestrator.
    """

    return CorrelationSessionOrchestrator(
        control_plane=control_plane or bootstrap_create_control_plane_adapter(settings),
        config=CorrelationSessionConfig(
            namespace=settings.target_namespace,
            task_template=TaskTemplate(
                task_name=settings.task_name,
                step_image=settings.task_image,
                step_script=settings.task_script,
            ),
            run_generate_name=settings.run_generate_name,
            poll_interval_seconds=settings.session_poll_interval_seconds,
            delete_run_on_exit=settings.session_delete_run_on_exit,
        ),
    )


def bootstrap_create_application() -> FastAPI:
    """Assemble the runtime application after validating startup configuration.

    Returns:
        FastAPI: Fully initialized FastAPI application instance.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    settings = config_load_settings()
    control_plane = bootstrap_create_control_plane_adapter(settings)
    return create_api_application(
        settings=settings,
        control_plane=control_plane,
        session_orchestrator=bootstrap_create_session_orchestrator(settings, control_plane=control_plane),
    )
