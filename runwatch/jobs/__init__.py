"""Job layer package for correlation session orchestration."""

from .interfaces import SessionExecutionResult, SessionOrchestratorPort
from .correlation_session import (
	SESSION_MODE_WAIT,
	SESSION_MODE_WATCH,
	CorrelationSessionConfig,
	CorrelationSessionOrchestrator,
)

__all__ = [
	"SessionExecutionResult",
	"SessionOrchestratorPort",
	"SESSION_MODE_WAIT",
	"SESSION_MODE_WATCH",
	"CorrelationSessionConfig",
	"CorrelationSessionOrchestrator",
]
