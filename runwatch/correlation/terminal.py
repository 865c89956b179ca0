"""Terminal-state predicate for run snapshots."""

from __future__ import annotations

from typing import Final

from runwatch.domain import RunPhase, RunState

TERMINAL_RUN_PHASES: Final[frozenset[RunPhase]] = frozenset(
    {RunPhase.SUCCEEDED, RunPhase.FAILED, RunPhase.CANCELLED}
)


def correlation_run_is_terminal(run_state: RunState | None) -> bool:
    """Return whether a run snapshot is finished.

    Unknown, absent or unrecognized phases are treated as still in progress.

    Args:
        run_state: Run snapshot, or None when nothing was observed yet.

    Returns:
        bool: True when the done flag is set or the phase is terminal.
    """

    if run_state is None:
        return False
    if run_state.done is True:
        return True
    return getattr(run_state, "phase", None) in TERMINAL_RUN_PHASES
