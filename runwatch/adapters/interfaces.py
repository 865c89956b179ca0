"""Typed interfaces for adapter-layer responsibilities."""

from collections.abc import Iterator
from typing import Any
from typing import Protocol

from runwatch.domain import HealthStatus, ResourceKind, StreamEvent


class EventStreamPort(Protocol):
    """Port definition for one live watch subscription."""

    def stream_iter_events(self) -> Iterator[StreamEvent]:
        """Yield mapped change events in delivery order.

        Returns:
            Iterator[StreamEvent]: Events until the subscription ends.

        Raises:
            ControlPlaneError: Raised when the subscription fails mid-stream.
        """

    def stream_close(self) -> None:
        """Release the subscription. Safe to call more than once."""


class ControlPlanePort(Protocol):
    """Port definition for the orchestration control plane client."""

    def adapter_namespace(self) -> str:
        """Return the namespace this client is bound to."""

    def adapter_connection_label(self) -> str:
        """Return the control-plane target label for diagnostics."""

    def adapter_check_health(self) -> HealthStatus:
        """Verify control-plane reachability.

        Returns:
            HealthStatus: Health payload with status and diagnostic detail.

        Raises:
            ConnectionError: Raised when the control plane is unreachable.
        """

    def adapter_get_resource(self, kind: ResourceKind, name: str) -> dict[str, Any]:
        """Fetch one named resource manifest.

        Args:
            kind: Resource kind.
            name: Resource name.

        Returns:
            dict[str, Any]: Resource manifest as returned by the API server.

        Raises:
            ControlPlaneNotFoundError: Raised when the resource does not exist.
            ControlPlaneError: Raised for other transport failures.
        """

    def adapter_create_resource(self, manifest: dict[str, Any]) -> dict[str, Any]:
        """Create one resource and return the stored manifest.

        Args:
            manifest: Resource manifest including `kind`.

        Returns:
            dict[str, Any]: Created manifest with server-assigned fields.

        Raises:
            ControlPlaneError: Raised for transport failures.
        """

    def adapter_delete_resource(self, kind: ResourceKind, name: str) -> None:
        """Delete one named resource.

        Raises:
            ControlPlaneError: Raised for transport failures.
        """

    def adapter_watch_resources(
        self,
        kind: ResourceKind,
        field_selector: str | None = None,
        label_selector: str | None = None,
    ) -> EventStreamPort:
        """Open a watch subscription for resources matching the selectors.

        Args:
            kind: Resource kind to watch.
            field_selector: Optional field selector expression.
            label_selector: Optional label selector expression.

        Returns:
            EventStreamPort: Open subscription; caller must close it.

        Raises:
            ControlPlaneError: Raised when the subscription cannot be opened.
        """
