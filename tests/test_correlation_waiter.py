"""Regression tests for the poll-until-terminal completion waiter."""

from __future__ import annotations

from typing import Any

import pytest

from runwatch.adapters import ControlPlaneConnectionError, ControlPlaneNotFoundError
from runwatch.correlation import (
    CorrelationCancellation,
    ProtocolViolationError,
    SessionCancelledError,
    SessionDeadlineExceededError,
    correlation_wait_until_done,
)
from runwatch.domain import ResourceKind, RunPhase
from runwatch.mapping import MappingContractViolationError


def _run_manifest(condition_status: str | None, reason: str = "", pod_name: str | None = None) -> dict[str, Any]:
    """Build a TaskRun manifest with an optional `Succeeded` condition.

    Args:
        condition_status: Condition status (`True`, `False`, `Unknown`) or None for no condition.
        reason: Condition reason.
        pod_name: Optional assigned pod name.

    Returns:
        dict[str, Any]: TaskRun manifest.
    """

    status: dict[str, Any] = {}
    if condition_status is not None:
        status["conditions"] = [{"type": "Succeeded", "status": condition_status, "reason": reason}]
    if pod_name is not None:
        status["podName"] = pod_name
    return {
        "kind": "TaskRun",
        "metadata": {"name": "hello-world-run-abc12", "namespace": "default"},
        "status": status,
    }


class _SequenceControlPlane:
    """Control-plane stub returning scripted responses for successive gets."""

    def __init__(self, responses: list[object]):
        """Initialize scripted responses.

        Args:
            responses: Manifests to return or exceptions to raise, in call order.
        """

        self._responses = list(responses)
        self.get_calls: list[tuple[ResourceKind, str]] = []

    def adapter_get_resource(self, kind: ResourceKind, name: str) -> dict[str, Any]:
        """Return or raise the next scripted response."""

        self.get_calls.append((kind, name))
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class _RecordingCancellation(CorrelationCancellation):
    """Cancellation token that records sleeps instead of blocking."""

    def __init__(self):
        super().__init__()
        self.wait_calls: list[float] = []

    def cancellation_wait(self, seconds: float, run_name: str | None = None) -> None:
        self.wait_calls.append(seconds)
        self.cancellation_raise_if_stopped(run_name=run_name)


def test_correlation_waiter_sleeps_then_returns_terminal_snapshot() -> None:
    """Return the succeeded snapshot from poll 2 after one sleep.

    Returns:
        None: Assertions validate poll count, sleep cadence and returned state.

    Raises:
        AssertionError: Raised when polling behavior is incorrect.
    """

    control_plane = _SequenceControlPlane(
        [
            _run_manifest("Unknown", reason="Running"),
            _run_manifest("True", reason="Succeeded", pod_name="hello-world-run-abc12-pod"),
        ]
    )
    cancellation = _RecordingCancellation()

    run_state = correlation_wait_until_done(
        client=control_plane,
        run_name="hello-world-run-abc12",
        poll_interval_seconds=1.0,
        cancellation=cancellation,
    )

    assert run_state.phase == RunPhase.SUCCEEDED
    assert run_state.host_name == "hello-world-run-abc12-pod"
    assert control_plane.get_calls == [
        (ResourceKind.TASK_RUN, "hello-world-run-abc12"),
        (ResourceKind.TASK_RUN, "hello-world-run-abc12"),
    ]
    assert cancellation.wait_calls == [1.0]


def test_correlation_waiter_propagates_first_poll_error_without_retry() -> None:
    """Return the transport error from poll 1 and never attempt poll 2."""

    transport_error = ControlPlaneConnectionError("get TaskRun/hello-world-run-abc12 transport failed")
    control_plane = _SequenceControlPlane([transport_error, _run_manifest("True", reason="Succeeded")])
    cancellation = _RecordingCancellation()

    with pytest.raises(ControlPlaneConnectionError) as raised:
        correlation_wait_until_done(
            client=control_plane,
            run_name="hello-world-run-abc12",
            cancellation=cancellation,
        )

    assert raised.value is transport_error
    assert len(control_plane.get_calls) == 1
    assert cancellation.wait_calls == []


def test_correlation_waiter_propagates_not_found_between_polls() -> None:
    """Treat a run that disappeared between polls as fatal."""

    control_plane = _SequenceControlPlane(
        [
            _run_manifest(None),
            ControlPlaneNotFoundError("get TaskRun/hello-world-run-abc12 not found", 404),
        ]
    )

    with pytest.raises(ControlPlaneNotFoundError):
        correlation_wait_until_done(
            client=control_plane,
            run_name="hello-world-run-abc12",
            cancellation=_RecordingCancellation(),
        )

    assert len(control_plane.get_calls) == 2


def test_correlation_waiter_keeps_polling_while_phase_is_unknown() -> None:
    """Never declare completion for snapshots without a condition."""

    control_plane = _SequenceControlPlane(
        [
            _run_manifest(None),
            _run_manifest("Unknown", reason="Pending"),
            _run_manifest("False", reason="TaskRunCancelled"),
        ]
    )
    cancellation = _RecordingCancellation()

    run_state = correlation_wait_until_done(
        client=control_plane,
        run_name="hello-world-run-abc12",
        poll_interval_seconds=0.5,
        cancellation=cancellation,
    )

    assert run_state.phase == RunPhase.CANCELLED
    assert cancellation.wait_calls == [0.5, 0.5]


def test_correlation_waiter_stops_before_fetch_when_cancelled() -> None:
    """Raise without fetching when the session was already abandoned."""

    control_plane = _SequenceControlPlane([_run_manifest("True", reason="Succeeded")])
    cancellation = CorrelationCancellation()
    cancellation.cancellation_request()

    with pytest.raises(SessionCancelledError):
        correlation_wait_until_done(client=control_plane, run_name="hello-world-run-abc12", cancellation=cancellation)

    assert control_plane.get_calls == []


def test_correlation_waiter_deadline_interrupts_sleep() -> None:
    """End the wait with a deadline error instead of sleeping the full interval."""

    control_plane = _SequenceControlPlane([_run_manifest("Unknown", reason="Running")])
    cancellation = CorrelationCancellation(timeout_seconds=0.05)

    with pytest.raises(SessionDeadlineExceededError):
        correlation_wait_until_done(
            client=control_plane,
            run_name="hello-world-run-abc12",
            poll_interval_seconds=30.0,
            cancellation=cancellation,
        )

    assert len(control_plane.get_calls) == 1


def test_correlation_waiter_malformed_snapshot_is_protocol_violation() -> None:
    """Raise ProtocolViolationError for a run whose status is not an object, without polling again."""

    malformed_manifest = {
        "kind": "TaskRun",
        "metadata": {"name": "hello-world-run-abc12", "namespace": "default"},
        "status": ["Running"],
    }
    control_plane = _SequenceControlPlane([malformed_manifest, _run_manifest("True", reason="Succeeded")])
    cancellation = _RecordingCancellation()

    with pytest.raises(ProtocolViolationError) as raised:
        correlation_wait_until_done(
            client=control_plane,
            run_name="hello-world-run-abc12",
            cancellation=cancellation,
        )

    assert raised.value.run_name == "hello-world-run-abc12"
    assert isinstance(raised.value.__cause__, MappingContractViolationError)
    assert len(control_plane.get_calls) == 1
