"""Shared session timeline event helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def domain_build_stage_event(
    stage: str,
    status: str,
    details: dict[str, Any] | None = None,
) -> dict[str, object]:
    """Build one structured session timeline event payload.

    Args:
        stage: Session stage name (`submit`, `wait`, `watch`, `cleanup`).
        status: Stage status marker.
        details: Optional structured details object.

    Returns:
        dict[str, object]: Structured timeline event.
    """

    event_payload: dict[str, object] = {
        "stage": stage,
        "status": status,
        "at_utc": datetime.now(timezone.utc).isoformat(),
    }
    if details:
        event_payload["details"] = dict(details)
    return event_payload
