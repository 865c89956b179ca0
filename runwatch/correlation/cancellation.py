"""Cancellation token shared by the waiter sleep and the correlator wait."""

from __future__ import annotations

import threading
import time
from typing import Callable

from .errors import SessionCancelledError, SessionDeadlineExceededError


class CorrelationCancellation:
    """Explicit cancel flag plus optional deadline for one session.

    Every suspension point in the engine either calls `cancellation_wait` or
    registers a wake-up callback, so a cancel request interrupts a blocked
    session without polling.
    """

    def __init__(
        self,
        timeout_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize cancellation token.

        Args:
            timeout_seconds: Optional session budget measured from construction.
            clock: Monotonic clock used for deadline arithmetic.

        Raises:
            ValueError: Raised when timeout is not positive.
        """

        if timeout_seconds is not None and timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")

        self._clock = clock
        self._deadline = None if timeout_seconds is None else clock() + timeout_seconds
        self._cancel_event = threading.Event()
        self._callbacks: list[Callable[[], None]] = []
        self._lock = threading.Lock()

    def cancellation_request(self) -> None:
        """Request cancellation and wake every registered waiter."""

        with self._lock:
            if self._cancel_event.is_set():
                return
            self._cancel_event.set()
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback()

    def cancellation_is_requested(self) -> bool:
        return self._cancel_event.is_set()

    def cancellation_remaining_seconds(self) -> float | None:
        """Return seconds left before the deadline, or None without a deadline."""

        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def cancellation_raise_if_stopped(self, run_name: str | None = None) -> None:
        """Raise when the session was cancelled or its deadline passed.

        Args:
            run_name: Run identity attached to the raised error.

        Raises:
            SessionCancelledError: Raised after an explicit cancel request.
            SessionDeadlineExceededError: Raised once the deadline has passed.
        """

        if self._cancel_event.is_set():
            raise SessionCancelledError("correlation session cancelled", run_name=run_name)
        remaining_seconds = self.cancellation_remaining_seconds()
        if remaining_seconds is not None and remaining_seconds <= 0:
            raise SessionDeadlineExceededError("correlation session deadline exceeded", run_name=run_name)

    def cancellation_wait(self, seconds: float, run_name: str | None = None) -> None:
        """Block for up to `seconds`, returning early only to raise on cancel.

        Args:
            seconds: Requested sleep duration.
            run_name: Run identity attached to a raised error.

        Raises:
            SessionCancelledError: Raised when cancelled during the wait.
            SessionDeadlineExceededError: Raised when the deadline ends the wait.
        """

        wait_seconds = max(0.0, seconds)
        remaining_seconds = self.cancellation_remaining_seconds()
        deadline_bound = remaining_seconds is not None and remaining_seconds <= wait_seconds
        if remaining_seconds is not None:
            wait_seconds = min(wait_seconds, remaining_seconds)
        if wait_seconds > 0:
            self._cancel_event.wait(wait_seconds)
        self.cancellation_raise_if_stopped(run_name=run_name)
        if deadline_bound:
            raise SessionDeadlineExceededError("correlation session deadline exceeded", run_name=run_name)

    def cancellation_add_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback invoked once on cancel, immediately if already cancelled."""

        with self._lock:
            already_cancelled = self._cancel_event.is_set()
            if not already_cancelled:
                self._callbacks.append(callback)
        if already_cancelled:
            callback()

    def cancellation_remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)
