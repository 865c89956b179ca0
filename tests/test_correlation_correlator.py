"""Regression tests for the watch-merge-emit-once stream correlator."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from datetime import datetime, timezone

import pytest

from runwatch.adapters import ControlPlaneWatchError
from runwatch.correlation import correlator as correlator_module
from runwatch.correlation import (
    CorrelationCancellation,
    ProtocolViolationError,
    SessionCancelledError,
    SessionDeadlineExceededError,
    SubscriptionClosedError,
    correlation_correlate_streams,
)
from runwatch.domain import HostEvent, HostUpdated, RunPhase, RunState, RunUpdated, UnrecognizedEvent
from runwatch.mapping import MappingContractViolationError

RUN_NAME = "hello-world-run-abc12"
NAMESPACE = "default"
HOST_START_TIME = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


class _ScriptedStream:
    """Event stream stub yielding scripted events, then ending, failing or staying open."""

    def __init__(
        self,
        events: list[object],
        hold_open: bool = True,
        error: Exception | None = None,
        gate: threading.Event | None = None,
        delivered: threading.Event | None = None,
    ):
        """Initialize scripted stream.

        Args:
            events: Events yielded in order.
            hold_open: Block after the events until closed, instead of ending.
            error: Optional exception raised after the events.
            gate: Optional event that must be set before the first yield.
            delivered: Optional event set once every scripted event was taken.
        """

        self._events = list(events)
        self._hold_open = hold_open
        self._error = error
        self._gate = gate
        self._delivered = delivered
        self._closed = threading.Event()
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def stream_iter_events(self) -> Iterator[object]:
        if self._gate is not None:
            self._gate.wait(timeout=5)
        for event in self._events:
            if self._closed.is_set():
                return
            yield event
        if self._delivered is not None:
            self._delivered.set()
        if self._error is not None:
            raise self._error
        if self._hold_open:
            self._closed.wait(timeout=5)

    def stream_close(self) -> None:
        self.close_calls += 1
        self._closed.set()


def _run_event(phase: RunPhase, run_name: str = RUN_NAME) -> RunUpdated:
    return RunUpdated(
        change_type="MODIFIED",
        run_state=RunState(namespace=NAMESPACE, run_name=run_name, phase=phase),
    )


def _host_event(host_name: str, owner_run_name: str | None = RUN_NAME) -> HostUpdated:
    return HostUpdated(
        change_type="ADDED",
        host_event=HostEvent(host_name=host_name, owner_run_name=owner_run_name, created_at=HOST_START_TIME),
    )


def test_correlation_emits_on_host_event_without_terminal_run_phase() -> None:
    """Return the host record as soon as the host event arrives while the run is still running.

    Returns:
        None: Assertions validate the emitted record and stream release.

    Raises:
        AssertionError: Raised when emission or cleanup behavior is incorrect.
    """

    run_stream = _ScriptedStream([_run_event(RunPhase.RUNNING)])
    host_stream = _ScriptedStream([_host_event("pod-a")])

    result = correlation_correlate_streams(
        run_stream=run_stream,
        host_stream=host_stream,
        namespace=NAMESPACE,
        run_name=RUN_NAME,
    )

    assert result.result_to_output_payload() == {
        "namespace": NAMESPACE,
        "runName": RUN_NAME,
        "hostName": "pod-a",
        "hostStartTime": HOST_START_TIME.isoformat(),
    }
    assert run_stream.closed
    assert host_stream.closed


def test_correlation_host_stream_close_before_host_event_is_fatal() -> None:
    """Raise SubscriptionClosedError and release the run stream when the host stream ends early."""

    run_stream = _ScriptedStream([_run_event(RunPhase.PENDING)])
    host_stream = _ScriptedStream([], hold_open=False)

    with pytest.raises(SubscriptionClosedError) as raised:
        correlation_correlate_streams(run_stream, host_stream, NAMESPACE, RUN_NAME)

    assert raised.value.stream_label == "host"
    assert raised.value.run_name == RUN_NAME
    assert run_stream.close_calls >= 1
    assert host_stream.close_calls >= 1


def test_correlation_run_stream_close_before_host_event_is_fatal() -> None:
    """Do not keep waiting on the host stream alone once the run stream ended."""

    run_stream = _ScriptedStream([_run_event(RunPhase.SUCCEEDED)], hold_open=False)
    host_stream = _ScriptedStream([])

    with pytest.raises(SubscriptionClosedError) as raised:
        correlation_correlate_streams(run_stream, host_stream, NAMESPACE, RUN_NAME)

    assert raised.value.stream_label == "run"
    assert host_stream.closed


@pytest.mark.parametrize("host_first", [True, False])
def test_correlation_same_instant_events_yield_identical_result(host_first: bool) -> None:
    """Produce the same complete record whichever of the simultaneous events is serviced first.

    Args:
        host_first: Whether the host event is released before the run event.

    Returns:
        None: Assertions validate order independence.
    """

    first_released = threading.Event()
    if host_first:
        host_stream = _ScriptedStream([_host_event("pod-a")], delivered=first_released)
        run_stream = _ScriptedStream([_run_event(RunPhase.SUCCEEDED)], gate=first_released)
    else:
        run_stream = _ScriptedStream([_run_event(RunPhase.SUCCEEDED)], delivered=first_released)
        host_stream = _ScriptedStream([_host_event("pod-a")], gate=first_released)

    result = correlation_correlate_streams(run_stream, host_stream, NAMESPACE, RUN_NAME)

    assert result.run_name == RUN_NAME
    assert result.host_name == "pod-a"
    assert result.host_start_time == HOST_START_TIME


def test_correlation_first_host_assignment_is_never_replaced() -> None:
    """Keep the first host once complete; later host events are not processed."""

    run_stream = _ScriptedStream([])
    host_stream = _ScriptedStream([_host_event("pod-a"), _host_event("pod-b")])

    result = correlation_correlate_streams(run_stream, host_stream, NAMESPACE, RUN_NAME)

    assert result.host_name == "pod-a"


def test_correlation_ignores_hosts_owned_by_other_runs() -> None:
    """Skip host events whose owner label names a different run."""

    run_stream = _ScriptedStream([])
    host_stream = _ScriptedStream(
        [
            _host_event("pod-other", owner_run_name="hello-world-run-zzz99"),
            _host_event("pod-a"),
        ]
    )

    result = correlation_correlate_streams(run_stream, host_stream, NAMESPACE, RUN_NAME)

    assert result.host_name == "pod-a"


def test_correlation_accepts_host_event_without_owner_label() -> None:
    """Trust the subscription selector when the host carries no owner label."""

    run_stream = _ScriptedStream([])
    host_stream = _ScriptedStream([_host_event("pod-a", owner_run_name=None)])

    result = correlation_correlate_streams(run_stream, host_stream, NAMESPACE, RUN_NAME)

    assert result.host_name == "pod-a"


def test_correlation_wrong_event_kind_on_run_stream_is_protocol_violation() -> None:
    """Raise ProtocolViolationError when the run stream delivers a host event."""

    run_stream = _ScriptedStream([_host_event("pod-a")])
    host_stream = _ScriptedStream([])

    with pytest.raises(ProtocolViolationError, match="expected RunUpdated"):
        correlation_correlate_streams(run_stream, host_stream, NAMESPACE, RUN_NAME)

    assert run_stream.closed
    assert host_stream.closed


def test_correlation_unrecognized_kind_on_host_stream_is_protocol_violation() -> None:
    """Raise ProtocolViolationError when the host stream delivers an unmapped object kind."""

    run_stream = _ScriptedStream([])
    host_stream = _ScriptedStream([UnrecognizedEvent(change_type="ADDED", object_kind="ConfigMap")])

    with pytest.raises(ProtocolViolationError, match="expected HostUpdated"):
        correlation_correlate_streams(run_stream, host_stream, NAMESPACE, RUN_NAME)


def test_correlation_malformed_payload_is_protocol_violation() -> None:
    """Map manifest contract violations raised by a stream to ProtocolViolationError."""

    run_stream = _ScriptedStream([])
    host_stream = _ScriptedStream([], error=MappingContractViolationError("host manifest missing metadata.name"))

    with pytest.raises(ProtocolViolationError) as raised:
        correlation_correlate_streams(run_stream, host_stream, NAMESPACE, RUN_NAME)

    assert isinstance(raised.value.__cause__, MappingContractViolationError)
    assert run_stream.closed


def test_correlation_transport_error_propagates_unchanged() -> None:
    """Surface the stream's transport error itself and release both streams."""

    watch_error = ControlPlaneWatchError("watch Pod failed: too old resource version", status_code=410)
    run_stream = _ScriptedStream([])
    host_stream = _ScriptedStream([], error=watch_error)

    with pytest.raises(ControlPlaneWatchError) as raised:
        correlation_correlate_streams(run_stream, host_stream, NAMESPACE, RUN_NAME)

    assert raised.value is watch_error
    assert run_stream.closed
    assert host_stream.closed


def test_correlation_cancel_request_releases_blocked_session() -> None:
    """Wake a session blocked on both streams and release them on cancel."""

    run_stream = _ScriptedStream([])
    host_stream = _ScriptedStream([])
    cancellation = CorrelationCancellation()
    cancel_timer = threading.Timer(0.05, cancellation.cancellation_request)
    cancel_timer.start()

    try:
        with pytest.raises(SessionCancelledError):
            correlation_correlate_streams(run_stream, host_stream, NAMESPACE, RUN_NAME, cancellation=cancellation)
    finally:
        cancel_timer.cancel()

    assert run_stream.closed
    assert host_stream.closed


def test_correlation_deadline_releases_blocked_session() -> None:
    """End the session with a deadline error when no host arrives in time."""

    run_stream = _ScriptedStream([_run_event(RunPhase.RUNNING)])
    host_stream = _ScriptedStream([])

    with pytest.raises(SessionDeadlineExceededError):
        correlation_correlate_streams(
            run_stream,
            host_stream,
            NAMESPACE,
            RUN_NAME,
            cancellation=CorrelationCancellation(timeout_seconds=0.05),
        )

    assert run_stream.closed
    assert host_stream.closed


def test_correlation_blank_run_name_releases_streams() -> None:
    """Reject a blank run identity without leaking the subscriptions."""

    run_stream = _ScriptedStream([])
    host_stream = _ScriptedStream([])

    with pytest.raises(ValueError, match="run_name"):
        correlation_correlate_streams(run_stream, host_stream, NAMESPACE, "  ")

    assert run_stream.closed
    assert host_stream.closed


class _UnreleasableStream:
    """Event stream stub whose close does not interrupt the blocked reader."""

    def __init__(self):
        self.release = threading.Event()

    def stream_iter_events(self) -> Iterator[object]:
        self.release.wait(timeout=5)
        return iter(())

    def stream_close(self) -> None:
        return


def test_correlation_records_subscription_that_could_not_be_released(monkeypatch: pytest.MonkeyPatch) -> None:
    """Surface a pump thread that outlived its join in the session timeline.

    Args:
        monkeypatch: Pytest patch fixture shortening the join timeout.
    """

    monkeypatch.setattr(correlator_module, "_PUMP_JOIN_TIMEOUT_SECONDS", 0.05)
    stuck_stream = _UnreleasableStream()
    host_stream = _ScriptedStream([_host_event("pod-a")])
    stage_timeline: list[dict[str, object]] = []

    try:
        result = correlation_correlate_streams(
            stuck_stream,
            host_stream,
            NAMESPACE,
            RUN_NAME,
            stage_timeline=stage_timeline,
        )
    finally:
        stuck_stream.release.set()

    assert result.host_name == "pod-a"
    assert [(event["stage"], event["status"], event["details"]) for event in stage_timeline] == [
        ("watch", "subscription_leaked", {"streams": ["run"]})
    ]
