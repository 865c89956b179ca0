"""Poll-until-terminal completion waiter."""

from __future__ import annotations

import logging

from runwatch.adapters import ControlPlanePort
from runwatch.domain import ResourceKind, RunState
from runwatch.mapping import MappingContractViolationError, mapping_parse_run_state

from .cancellation import CorrelationCancellation
from .errors import ProtocolViolationError
from .terminal import correlation_run_is_terminal

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 1.0


def correlation_wait_until_done(
    client: ControlPlanePort,
    run_name: str,
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    cancellation: CorrelationCancellation | None = None,
) -> RunState:
    """Block until the run reaches a terminal state.

    The first fetch happens immediately; later fetches follow a fixed interval.
    There is no attempt cap. A fetch failure ends the wait at once, so the
    caller bounds runaway waits through `cancellation`.

    Args:
        client: Control-plane client bound to the run namespace.
        run_name: Run identity.
        poll_interval_seconds: Sleep between fetches.
        cancellation: Optional cancellation token checked before every fetch.

    Returns:
        RunState: First terminal snapshot observed.

    Raises:
        ControlPlaneNotFoundError: Raised when the run disappeared.
        ControlPlaneError: Raised when a fetch fails.
        ProtocolViolationError: Raised when a fetched snapshot is malformed.
        SessionCancelledError: Raised when the caller abandons the wait.
        ValueError: Raised when inputs are invalid.
    """

    normalized_run_name = run_name.strip()
    if not normalized_run_name:
        raise ValueError("run_name must not be blank")
    if poll_interval_seconds < 0:
        raise ValueError("poll_interval_seconds must be >= 0")

    token = cancellation or CorrelationCancellation()
    poll_attempt = 0
    while True:
        token.cancellation_raise_if_stopped(run_name=normalized_run_name)
        poll_attempt += 1
        manifest = client.adapter_get_resource(ResourceKind.TASK_RUN, normalized_run_name)
        try:
            run_state = mapping_parse_run_state(manifest)
        except MappingContractViolationError as error:
            raise ProtocolViolationError(
                f"run {normalized_run_name} snapshot is malformed: {error}",
                run_name=normalized_run_name,
            ) from error
        if correlation_run_is_terminal(run_state):
            logger.info(
                "run %s finished with phase=%s after %d polls",
                normalized_run_name,
                run_state.phase.value,
                poll_attempt,
                extra={"structured": {"run_name": normalized_run_name, "poll_attempt": poll_attempt}},
            )
            return run_state

        logger.debug("run %s still %s (poll %d)", normalized_run_name, run_state.phase.value, poll_attempt)
        token.cancellation_wait(poll_interval_seconds, run_name=normalized_run_name)
