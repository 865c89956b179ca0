"""Project-native typed exceptions for control-plane transport failures."""

from __future__ import annotations


class ControlPlaneError(Exception):
    """Base exception for control-plane client failures.

    Attributes:
        status_code: Optional HTTP status code returned by the API server.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ControlPlaneConnectionError(ControlPlaneError, ConnectionError):
    """Transport-level connectivity failure or non-success HTTP status."""


class ControlPlaneTimeoutError(ControlPlaneError, TimeoutError):
    """Transport timeout while waiting for an API server response."""


class ControlPlaneAuthError(ControlPlaneConnectionError):
    """API server rejected the configured credentials (`401`/`403`)."""


class ControlPlaneNotFoundError(ControlPlaneError, LookupError):
    """Requested resource does not exist (`404`)."""


class ControlPlaneConflictError(ControlPlaneError, ValueError):
    """Resource creation conflicted with an existing object (`409`)."""


class ControlPlaneResponseError(ControlPlaneError, ValueError):
    """API server response could not be decoded into the expected shape."""


class ControlPlaneWatchError(ControlPlaneError, RuntimeError):
    """Watch stream delivered an `ERROR` frame instead of an object change."""
