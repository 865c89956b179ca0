"""Typed exceptions for correlation engine failures."""

from __future__ import annotations


class CorrelationError(RuntimeError):
    """Base exception for correlation session failures.

    Attributes:
        run_name: Run identity the failing session was tracking.
    """

    def __init__(self, message: str, run_name: str | None = None):
        super().__init__(message)
        self.run_name = run_name


class SubscriptionClosedError(CorrelationError):
    """A watch stream ended before the result became complete.

    Attributes:
        stream_label: Which subscription ended (`run` or `host`).
    """

    def __init__(self, message: str, run_name: str | None = None, stream_label: str | None = None):
        super().__init__(message, run_name=run_name)
        self.stream_label = stream_label


class ProtocolViolationError(CorrelationError):
    """A stream delivered a payload of the wrong kind for its subscription."""


class HostNotAssignedError(CorrelationError, LookupError):
    """A terminal run snapshot exposes no assigned host."""


class SessionCancelledError(CorrelationError):
    """The caller abandoned the session."""


class SessionDeadlineExceededError(SessionCancelledError, TimeoutError):
    """The session deadline passed before a result was available."""
