"""Typed domain models shared across runtime layers.

Run and host snapshots are read-only views produced by the control-plane
mapping layer. `CorrelatedResult` is the only mutable model and is owned by a
single correlation loop at a time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union


@dataclass(frozen=True)
class HealthStatus:
    """Health response contract used by health-check surfaces.

    Attributes:
        status: Overall status text for service health.
        detail: Additional message suitable for operational diagnostics.
        server_version: Control-plane server version, when reported.
    """

    status: str
    detail: str
    server_version: str | None = None


class RunPhase(str, Enum):
    """Lifecycle phase of a submitted run."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RunState:
    """Snapshot of one run as reported by the control plane.

    Attributes:
        namespace: Namespace that owns the run.
        run_name: Server-assigned run identity.
        phase: Lifecycle phase derived from run conditions.
        done: Control-plane completion flag.
        host_name: Assigned host identity, when the control plane exposes it.
    """

    namespace: str
    run_name: str
    phase: RunPhase = RunPhase.UNKNOWN
    done: bool = False
    host_name: str | None = None


@dataclass(frozen=True)
class HostEvent:
    """Snapshot of one host-placement object.

    Attributes:
        host_name: Host identity.
        owner_run_name: Owning run identity from the owner label, when present.
        created_at: Host creation time.
    """

    host_name: str
    owner_run_name: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class RunUpdated:
    """Run stream event carrying a new run snapshot."""

    change_type: str
    run_state: RunState


@dataclass(frozen=True)
class HostUpdated:
    """Host stream event carrying a new host snapshot."""

    change_type: str
    host_event: HostEvent


@dataclass(frozen=True)
class UnrecognizedEvent:
    """Stream event whose object kind has no domain mapping."""

    change_type: str
    object_kind: str


StreamEvent = Union[RunUpdated, HostUpdated, UnrecognizedEvent]


@dataclass
class CorrelatedResult:
    """Accumulator for one correlation session.

    Attributes:
        namespace: Namespace of the correlated run.
        run_name: Run identity.
        host_name: Assigned host identity, empty until known.
        host_start_time: Host creation time, when known.
    """

    namespace: str
    run_name: str
    host_name: str = ""
    host_start_time: datetime | None = None

    def result_is_complete(self) -> bool:
        """Return whether the host assignment is known.

        Returns:
            bool: True when `host_name` is non-empty.
        """

        return bool(self.host_name)

    def result_to_output_payload(self) -> dict[str, str | None]:
        """Render the emitted output record.

        Returns:
            dict[str, str | None]: JSON-compatible output record.
        """

        return {
            "namespace": self.namespace,
            "runName": self.run_name,
            "hostName": self.host_name,
            "hostStartTime": self.host_start_time.isoformat() if self.host_start_time is not None else None,
        }
