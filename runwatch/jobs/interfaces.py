"""Typed interfaces for job-layer session orchestration."""

from dataclasses import dataclass, field
from typing import Protocol

from runwatch.correlation import CorrelationCancellation
from runwatch.domain import CorrelatedResult


@dataclass(frozen=True)
class SessionExecutionResult:
    """Result contract for one correlation session.

    Attributes:
        mode: Session mode that produced the result (`wait` or `watch`).
        result: Complete correlated result.
        stage_timeline: Structured stage timeline entries captured by the session.
    """

    mode: str
    result: CorrelatedResult
    stage_timeline: list[dict[str, object]] = field(default_factory=list)


class SessionOrchestratorPort(Protocol):
    """Port definition for running correlation sessions."""

    def session_supported_modes(self) -> tuple[str, ...]:
        """Return the session modes this orchestrator can execute.

        Returns:
            tuple[str, ...]: Deterministic list of supported mode names.
        """

    def session_execute(
        self,
        mode: str,
        cancellation: CorrelationCancellation | None = None,
    ) -> SessionExecutionResult:
        """Submit one run and correlate it with its host.

        Args:
            mode: Session mode.
            cancellation: Optional cancellation token bounding the session.

        Returns:
            SessionExecutionResult: Complete result and stage timeline.

        Raises:
            ControlPlaneError: Raised for control-plane failures.
            CorrelationError: Raised for correlation failures.
        """
