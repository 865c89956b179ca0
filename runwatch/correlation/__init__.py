"""Correlation layer package for run completion and host assignment."""

from .cancellation import CorrelationCancellation
from .correlator import HOST_STREAM_LABEL, RUN_STREAM_LABEL, correlation_correlate_streams
from .errors import (
	CorrelationError,
	HostNotAssignedError,
	ProtocolViolationError,
	SessionCancelledError,
	SessionDeadlineExceededError,
	SubscriptionClosedError,
)
from .terminal import TERMINAL_RUN_PHASES, correlation_run_is_terminal
from .waiter import DEFAULT_POLL_INTERVAL_SECONDS, correlation_wait_until_done

__all__ = [
	"CorrelationCancellation",
	"CorrelationError",
	"DEFAULT_POLL_INTERVAL_SECONDS",
	"HOST_STREAM_LABEL",
	"HostNotAssignedError",
	"ProtocolViolationError",
	"RUN_STREAM_LABEL",
	"SessionCancelledError",
	"SessionDeadlineExceededError",
	"SubscriptionClosedError",
	"TERMINAL_RUN_PHASES",
	"correlation_correlate_streams",
	"correlation_run_is_terminal",
	"correlation_wait_until_done",
]
