"""Job-layer correlation session orchestrator with stage timeline capture."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Final

from runwatch.adapters import (
    ControlPlaneConflictError,
    ControlPlaneError,
    ControlPlaneNotFoundError,
    ControlPlanePort,
    ControlPlaneResponseError,
    EventStreamPort,
)
from runwatch.correlation import (
    CorrelationCancellation,
    HostNotAssignedError,
    ProtocolViolationError,
    correlation_correlate_streams,
    correlation_wait_until_done,
)
from runwatch.domain import RUN_OWNER_LABEL, CorrelatedResult, ResourceKind, domain_build_stage_event
from runwatch.mapping import (
    MappingContractViolationError,
    TaskTemplate,
    mapping_build_task_manifest,
    mapping_build_task_run_manifest,
    mapping_parse_host_event,
)

from .interfaces import SessionExecutionResult, SessionOrchestratorPort

logger = logging.getLogger(__name__)

SESSION_MODE_WAIT: Final[str] = "wait"
SESSION_MODE_WATCH: Final[str] = "watch"


@dataclass(frozen=True)
class CorrelationSessionConfig:
    """Configuration values for correlation session execution.

    Attributes:
        namespace: Target namespace, read once at session start.
        task_template: Task submitted before each run.
        run_generate_name: Name prefix for server-generated run identities.
        poll_interval_seconds: Waiter poll interval for `wait` mode.
        delete_run_on_exit: Whether the run is deleted once the session ends.
    """

    namespace: str
    task_template: TaskTemplate
    run_generate_name: str = "hello-world-run-"
    poll_interval_seconds: float = 1.0
    delete_run_on_exit: bool = False


class CorrelationSessionOrchestrator(SessionOrchestratorPort):
    """Submit one run and resolve its host through the waiter or the correlator."""

    _SUPPORTED_MODES: Final[tuple[str, ...]] = (SESSION_MODE_WAIT, SESSION_MODE_WATCH)

    def __init__(self, control_plane: ControlPlanePort, config: CorrelationSessionConfig):
        """Initialize session orchestrator dependencies.

        Args:
            control_plane: Control-plane client bound to the target namespace.
            config: Session execution configuration.

        Raises:
            ValueError: Raised when dependencies or config values are invalid.
        """

        if control_plane is None:
            raise ValueError("control_plane must not be None")
        if not config.namespace.strip():
            raise ValueError("config.namespace must not be blank")
        if config.namespace.strip() != control_plane.adapter_namespace():
            raise ValueError("config.namespace must match the control plane client namespace")
        if not config.task_template.task_name.strip():
            raise ValueError("config.task_template.task_name must not be blank")
        if not config.run_generate_name.strip():
            raise ValueError("config.run_generate_name must not be blank")
        if config.poll_interval_seconds < 0:
            raise ValueError("config.poll_interval_seconds must be >= 0")

        self._control_plane = control_plane
        self._config = config
        self._namespace = config.namespace.strip()

    def session_supported_modes(self) -> tuple[str, ...]:
        return self._SUPPORTED_MODES

    def session_execute(
        self,
        mode: str,
        cancellation: CorrelationCancellation | None = None,
    ) -> SessionExecutionResult:
        """Submit one run and correlate it with its host.

        Args:
            mode: `wait` to poll until the run finishes, `watch` to emit as soon as the host is known.
            cancellation: Optional cancellation token bounding the whole session.

        Returns:
            SessionExecutionResult: Complete result and stage timeline.

        Raises:
            ValueError: Raised when mode is unsupported.
            ControlPlaneError: Raised for control-plane failures.
            CorrelationError: Raised for correlation failures.
        """

        normalized_mode = mode.strip().lower()
        if normalized_mode not in self._SUPPORTED_MODES:
            raise ValueError(f"unsupported session mode={normalized_mode}")

        token = cancellation or CorrelationCancellation()
        timeline: list[dict[str, object]] = []
        timeline.append(
            domain_build_stage_event(
                stage="session",
                status="started",
                details={"mode": normalized_mode, "namespace": self._namespace},
            )
        )

        token.cancellation_raise_if_stopped()
        run_name = self._session_submit_run(timeline=timeline)
        try:
            timeline.append(domain_build_stage_event(stage=normalized_mode, status="started"))
            if normalized_mode == SESSION_MODE_WAIT:
                result = self._session_correlate_by_waiting(run_name=run_name, cancellation=token)
            else:
                result = self._session_correlate_by_watching(run_name=run_name, cancellation=token, timeline=timeline)
            timeline.append(
                domain_build_stage_event(
                    stage=normalized_mode,
                    status="completed",
                    details={"host_name": result.host_name},
                )
            )
        except Exception as error:
            timeline.append(
                domain_build_stage_event(
                    stage=normalized_mode,
                    status="failed",
                    details={"error_type": type(error).__name__, "error_message": str(error)},
                )
            )
            logger.error(
                "session for run %s failed: %s",
                run_name,
                error,
                extra={"structured": {"run_name": run_name, "mode": normalized_mode, "timeline": timeline}},
            )
            raise
        finally:
            if self._config.delete_run_on_exit:
                self._session_delete_run(run_name=run_name, timeline=timeline)

        timeline.append(domain_build_stage_event(stage="session", status="completed"))
        return SessionExecutionResult(mode=normalized_mode, result=result, stage_timeline=timeline)

    def _session_submit_run(self, timeline: list[dict[str, object]]) -> str:
        """Ensure the task exists and create one run referencing it.

        Args:
            timeline: Mutable session timeline.

        Returns:
            str: Server-assigned run identity.

        Raises:
            ControlPlaneError: Raised when submission fails.
        """

        template = self._config.task_template
        timeline.append(domain_build_stage_event(stage="submit", status="started"))
        try:
            self._control_plane.adapter_get_resource(ResourceKind.TASK, template.task_name)
            logger.info("task %s already exists, skipping creation", template.task_name)
        except ControlPlaneNotFoundError:
            try:
                self._control_plane.adapter_create_resource(mapping_build_task_manifest(template))
            except ControlPlaneConflictError:
                logger.info("task %s was created concurrently", template.task_name)

        created_run = self._control_plane.adapter_create_resource(
            mapping_build_task_run_manifest(
                namespace=self._namespace,
                task_name=template.task_name,
                generate_name=self._config.run_generate_name,
            )
        )
        run_name = str((created_run.get("metadata") or {}).get("name") or "").strip()
        if not run_name:
            raise ControlPlaneResponseError("created run response missing metadata.name")

        timeline.append(domain_build_stage_event(stage="submit", status="completed", details={"run_name": run_name}))
        logger.info("run %s created", run_name, extra={"structured": {"run_name": run_name}})
        return run_name

    def _session_correlate_by_waiting(
        self,
        run_name: str,
        cancellation: CorrelationCancellation,
    ) -> CorrelatedResult:
        """Poll until the run finishes, then read the host from the final snapshot.

        Raises:
            HostNotAssignedError: Raised when the terminal snapshot has no host.
            ProtocolViolationError: Raised when the host manifest is malformed.
        """

        final_state = correlation_wait_until_done(
            client=self._control_plane,
            run_name=run_name,
            poll_interval_seconds=self._config.poll_interval_seconds,
            cancellation=cancellation,
        )
        if not final_state.host_name:
            raise HostNotAssignedError(f"host name not found in status of run {run_name}", run_name=run_name)

        cancellation.cancellation_raise_if_stopped(run_name=run_name)
        host_manifest = self._control_plane.adapter_get_resource(ResourceKind.POD, final_state.host_name)
        try:
            host_event = mapping_parse_host_event(host_manifest)
        except MappingContractViolationError as error:
            raise ProtocolViolationError(
                f"host {final_state.host_name} of run {run_name} has a malformed manifest: {error}",
                run_name=run_name,
            ) from error
        return CorrelatedResult(
            namespace=self._namespace,
            run_name=final_state.run_name,
            host_name=final_state.host_name,
            host_start_time=host_event.created_at,
        )

    def _session_correlate_by_watching(
        self,
        run_name: str,
        cancellation: CorrelationCancellation,
        timeline: list[dict[str, object]],
    ) -> CorrelatedResult:
        """Subscribe to run and host streams and correlate them.

        Both subscriptions are released on every path; the run stream is closed
        here when opening the host stream fails, otherwise by the correlator.
        """

        run_stream = self._control_plane.adapter_watch_resources(
            ResourceKind.TASK_RUN,
            field_selector=f"metadata.name={run_name}",
        )
        host_stream: EventStreamPort | None = None
        try:
            host_stream = self._control_plane.adapter_watch_resources(
                ResourceKind.POD,
                label_selector=f"{RUN_OWNER_LABEL}={run_name}",
            )
        finally:
            if host_stream is None:
                run_stream.stream_close()

        return correlation_correlate_streams(
            run_stream=run_stream,
            host_stream=host_stream,
            namespace=self._namespace,
            run_name=run_name,
            cancellation=cancellation,
            stage_timeline=timeline,
        )

    def _session_delete_run(self, run_name: str, timeline: list[dict[str, object]]) -> None:
        try:
            self._control_plane.adapter_delete_resource(ResourceKind.TASK_RUN, run_name)
        except ControlPlaneError as error:
            # Cleanup never replaces the session outcome.
            logger.warning("failed to delete run %s: %s", run_name, error)
            timeline.append(
                domain_build_stage_event(stage="cleanup", status="failed", details={"error_message": str(error)})
            )
            return
        timeline.append(domain_build_stage_event(stage="cleanup", status="completed", details={"run_name": run_name}))
