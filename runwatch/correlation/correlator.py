"""Watch-merge-emit-once stream correlator.

Two pump threads drain the run and host subscriptions into one FIFO queue.
The calling thread is the only consumer and the only writer of the
`CorrelatedResult` accumulator.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Final

from runwatch.adapters import EventStreamPort
from runwatch.domain import CorrelatedResult, HostUpdated, RunUpdated, domain_build_stage_event
from runwatch.mapping import MappingContractViolationError

from .cancellation import CorrelationCancellation
from .errors import ProtocolViolationError, SubscriptionClosedError

logger = logging.getLogger(__name__)

RUN_STREAM_LABEL: Final[str] = "run"
HOST_STREAM_LABEL: Final[str] = "host"
_WAKEUP_LABEL: Final[str] = "wakeup"
_PUMP_JOIN_TIMEOUT_SECONDS: Final[float] = 5.0


@dataclass(frozen=True)
class _StreamDelivery:
    """One item handed from a pump thread to the consumer.

    Attributes:
        stream_label: Source subscription label.
        event: Delivered stream event, when this is an event delivery.
        error: Exception raised by the source iterator.
        ended: True when the source iterator finished.
    """

    stream_label: str
    event: object | None = None
    error: Exception | None = None
    ended: bool = False


class _StreamMultiplexer:
    """Merge several blocking event streams into one blocking queue."""

    def __init__(self, streams: dict[str, EventStreamPort]):
        self._streams = streams
        self._deliveries: queue.Queue[_StreamDelivery] = queue.Queue()
        self._threads: list[threading.Thread] = []
        self._stopped = threading.Event()

    def multiplexer_start(self) -> None:
        for stream_label, stream in self._streams.items():
            thread = threading.Thread(
                target=self._multiplexer_pump,
                args=(stream_label, stream),
                name=f"runwatch-{stream_label}-stream",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)

    def multiplexer_next(self, timeout_seconds: float | None) -> _StreamDelivery:
        """Block until any stream has an item.

        Args:
            timeout_seconds: Maximum wait, or None to wait indefinitely.

        Returns:
            _StreamDelivery: Next delivery in arrival order.

        Raises:
            queue.Empty: Raised when the timeout elapsed first.
        """

        return self._deliveries.get(timeout=timeout_seconds)

    def multiplexer_wake(self) -> None:
        self._deliveries.put(_StreamDelivery(stream_label=_WAKEUP_LABEL))

    def multiplexer_close(self) -> list[str]:
        """Release every subscription and join the pump threads.

        Returns:
            list[str]: Labels of streams whose pump thread was still running after the join timeout.
        """

        self._stopped.set()
        for stream_label, stream in self._streams.items():
            try:
                stream.stream_close()
            except Exception:  # pylint: disable=broad-exception-caught
                logger.warning("failed to close %s stream", stream_label, exc_info=True)
        leaked_stream_labels: list[str] = []
        for stream_label, thread in zip(self._streams, self._threads):
            thread.join(timeout=_PUMP_JOIN_TIMEOUT_SECONDS)
            if thread.is_alive():
                logger.warning("pump thread %s did not stop after close", thread.name)
                leaked_stream_labels.append(stream_label)
        return leaked_stream_labels

    def _multiplexer_pump(self, stream_label: str, stream: EventStreamPort) -> None:
        try:
            for event in stream.stream_iter_events():
                if self._stopped.is_set():
                    return
                self._deliveries.put(_StreamDelivery(stream_label=stream_label, event=event))
        except Exception as error:  # pylint: disable=broad-exception-caught
            # Re-raised on the consumer thread.
            self._deliveries.put(_StreamDelivery(stream_label=stream_label, error=error))
            return
        self._deliveries.put(_StreamDelivery(stream_label=stream_label, ended=True))


def correlation_correlate_streams(
    run_stream: EventStreamPort,
    host_stream: EventStreamPort,
    namespace: str,
    run_name: str,
    cancellation: CorrelationCancellation | None = None,
    stage_timeline: list[dict[str, object]] | None = None,
) -> CorrelatedResult:
    """Merge run and host streams and return the result once the host is known.

    Both streams are closed before this function returns, on every path.

    Args:
        run_stream: Subscription scoped to the run identity.
        host_stream: Subscription scoped to hosts owned by the run.
        namespace: Run namespace.
        run_name: Run identity.
        cancellation: Optional cancellation token.
        stage_timeline: Optional session timeline that receives a `subscription_leaked`
            event when a stream could not be released.

    Returns:
        CorrelatedResult: Complete result with `host_name` set.

    Raises:
        SubscriptionClosedError: Raised when either stream ends before completion.
        ProtocolViolationError: Raised when a stream delivers an unexpected payload.
        ControlPlaneError: Raised when a stream fails at the transport level.
        SessionCancelledError: Raised when the caller abandons the session.
    """

    normalized_run_name = run_name.strip()
    if not normalized_run_name:
        run_stream.stream_close()
        host_stream.stream_close()
        raise ValueError("run_name must not be blank")

    token = cancellation or CorrelationCancellation()
    result = CorrelatedResult(namespace=namespace, run_name=normalized_run_name)
    multiplexer = _StreamMultiplexer({RUN_STREAM_LABEL: run_stream, HOST_STREAM_LABEL: host_stream})
    token.cancellation_add_callback(multiplexer.multiplexer_wake)
    try:
        multiplexer.multiplexer_start()
        while True:
            token.cancellation_raise_if_stopped(run_name=normalized_run_name)
            try:
                delivery = multiplexer.multiplexer_next(timeout_seconds=token.cancellation_remaining_seconds())
            except queue.Empty:
                continue
            if delivery.stream_label == _WAKEUP_LABEL:
                continue
            if _correlation_apply_delivery(result=result, delivery=delivery):
                logger.info(
                    "run %s correlated with host %s",
                    result.run_name,
                    result.host_name,
                    extra={"structured": result.result_to_output_payload()},
                )
                return result
    finally:
        token.cancellation_remove_callback(multiplexer.multiplexer_wake)
        leaked_stream_labels = multiplexer.multiplexer_close()
        if leaked_stream_labels and stage_timeline is not None:
            stage_timeline.append(
                domain_build_stage_event(
                    stage="watch",
                    status="subscription_leaked",
                    details={"streams": leaked_stream_labels},
                )
            )


def _correlation_apply_delivery(result: CorrelatedResult, delivery: _StreamDelivery) -> bool:
    """Fold one delivery into the accumulator.

    Args:
        result: Accumulator owned by the consumer loop.
        delivery: Next delivery from either stream.

    Returns:
        bool: True when the accumulator became complete.

    Raises:
        SubscriptionClosedError: Raised for end-of-stream.
        ProtocolViolationError: Raised for unexpected payloads.
        Exception: Source iterator errors are re-raised unchanged.
    """

    run_name = result.run_name
    if delivery.error is not None:
        if isinstance(delivery.error, MappingContractViolationError):
            raise ProtocolViolationError(
                f"{delivery.stream_label} stream delivered a malformed payload: {delivery.error}",
                run_name=run_name,
            ) from delivery.error
        raise delivery.error

    if delivery.ended:
        raise SubscriptionClosedError(
            f"{delivery.stream_label} subscription closed before host assignment for run {run_name}",
            run_name=run_name,
            stream_label=delivery.stream_label,
        )

    event = delivery.event
    if delivery.stream_label == RUN_STREAM_LABEL:
        if not isinstance(event, RunUpdated):
            raise ProtocolViolationError(
                f"run stream delivered {type(event).__name__}, expected RunUpdated",
                run_name=run_name,
            )
        if event.run_state.run_name != run_name:
            logger.debug("ignoring run event for %s", event.run_state.run_name)
            return False
        result.run_name = event.run_state.run_name
        return False

    if not isinstance(event, HostUpdated):
        raise ProtocolViolationError(
            f"host stream delivered {type(event).__name__}, expected HostUpdated",
            run_name=run_name,
        )
    host_event = event.host_event
    if host_event.owner_run_name is not None and host_event.owner_run_name != run_name:
        logger.debug("ignoring host %s owned by run %s", host_event.host_name, host_event.owner_run_name)
        return False
    result.host_name = host_event.host_name
    result.host_start_time = host_event.created_at
    return result.result_is_complete()
