"""Manifest mapping between control-plane payloads and domain models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Final

from runwatch.domain import (
    RUN_OWNER_LABEL,
    TEKTON_API_VERSION,
    HostEvent,
    HostUpdated,
    ResourceKind,
    RunPhase,
    RunState,
    RunUpdated,
    StreamEvent,
    UnrecognizedEvent,
)

from .interfaces import MappingContractViolationError, TaskTemplate

_SUCCEEDED_CONDITION_TYPE: Final[str] = "Succeeded"
_CANCELLED_REASONS: Final[frozenset[str]] = frozenset({"TaskRunCancelled", "Cancelled"})
_RUNNING_REASON: Final[str] = "Running"
_OBJECT_CHANGE_TYPES: Final[frozenset[str]] = frozenset({"ADDED", "MODIFIED", "DELETED"})


def mapping_build_task_manifest(template: TaskTemplate) -> dict[str, Any]:
    """Build the single-step Task manifest submitted before each run.

    Args:
        template: Task template values.

    Returns:
        dict[str, Any]: Task manifest.
    """

    return {
        "apiVersion": TEKTON_API_VERSION,
        "kind": ResourceKind.TASK.value,
        "metadata": {"name": template.task_name},
        "spec": {
            "steps": [
                {
                    "name": template.task_name,
                    "image": template.step_image,
                    "script": template.step_script,
                }
            ]
        },
    }


def mapping_build_task_run_manifest(namespace: str, task_name: str, generate_name: str) -> dict[str, Any]:
    """Build a TaskRun manifest with a server-generated name.

    Args:
        namespace: Target namespace.
        task_name: Referenced Task name.
        generate_name: Name prefix for the server-generated run identity.

    Returns:
        dict[str, Any]: TaskRun manifest.
    """

    return {
        "apiVersion": TEKTON_API_VERSION,
        "kind": ResourceKind.TASK_RUN.value,
        "metadata": {"generateName": generate_name, "namespace": namespace},
        "spec": {"taskRef": {"name": task_name}},
    }


def mapping_parse_timestamp(value: object) -> datetime | None:
    """Parse an RFC 3339 timestamp as emitted by the API server.

    Args:
        value: Raw timestamp value.

    Returns:
        datetime | None: Timezone-aware timestamp, or None when absent.

    Raises:
        MappingContractViolationError: Raised when the value is not a valid timestamp.
    """

    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise MappingContractViolationError(f"timestamp must be a string, got {type(value).__name__}")
    normalized_value = value.strip()
    if normalized_value.endswith("Z"):
        normalized_value = normalized_value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(normalized_value)
    except ValueError as error:
        raise MappingContractViolationError(f"invalid timestamp value={value}") from error


def mapping_parse_run_state(manifest: dict[str, Any]) -> RunState:
    """Map a TaskRun manifest to a run snapshot.

    Args:
        manifest: TaskRun manifest.

    Returns:
        RunState: Run snapshot with phase derived from the `Succeeded` condition.

    Raises:
        MappingContractViolationError: Raised when metadata is missing a name.
    """

    metadata = _mapping_require_mapping(manifest.get("metadata"), field_name="metadata")
    run_name = str(metadata.get("name") or "").strip()
    if not run_name:
        raise MappingContractViolationError("run manifest missing metadata.name")

    status = manifest.get("status") or {}
    if not isinstance(status, dict):
        raise MappingContractViolationError("run manifest status must be an object")

    condition = _mapping_find_succeeded_condition(status.get("conditions"))
    phase, done = _mapping_resolve_phase(condition)
    host_name = str(status.get("podName") or "").strip() or None
    return RunState(
        namespace=str(metadata.get("namespace") or ""),
        run_name=run_name,
        phase=phase,
        done=done,
        host_name=host_name,
    )


def mapping_parse_host_event(manifest: dict[str, Any]) -> HostEvent:
    """Map a Pod manifest to a host-placement snapshot.

    Args:
        manifest: Pod manifest.

    Returns:
        HostEvent: Host snapshot with owner label and creation time.

    Raises:
        MappingContractViolationError: Raised when metadata is missing a name.
    """

    metadata = _mapping_require_mapping(manifest.get("metadata"), field_name="metadata")
    host_name = str(metadata.get("name") or "").strip()
    if not host_name:
        raise MappingContractViolationError("host manifest missing metadata.name")

    labels = metadata.get("labels") or {}
    owner_run_name = None
    if isinstance(labels, dict):
        owner_run_name = str(labels.get(RUN_OWNER_LABEL) or "").strip() or None

    return HostEvent(
        host_name=host_name,
        owner_run_name=owner_run_name,
        created_at=mapping_parse_timestamp(metadata.get("creationTimestamp")),
    )


def mapping_parse_watch_frame(frame: dict[str, Any]) -> StreamEvent:
    """Map one object-change watch frame to a stream event.

    `ERROR` and `BOOKMARK` frames are handled by the transport and never reach
    this function.

    Args:
        frame: Decoded watch frame with `type` and `object` keys.

    Returns:
        StreamEvent: Mapped run/host event, or `UnrecognizedEvent` for other kinds.

    Raises:
        MappingContractViolationError: Raised when the frame shape is invalid.
    """

    change_type = str(frame.get("type") or "").strip()
    if change_type not in _OBJECT_CHANGE_TYPES:
        raise MappingContractViolationError(f"unsupported watch frame type={change_type or 'MISSING'}")

    watched_object = _mapping_require_mapping(frame.get("object"), field_name="object")
    object_kind = str(watched_object.get("kind") or "").strip()
    if object_kind == ResourceKind.TASK_RUN.value:
        return RunUpdated(change_type=change_type, run_state=mapping_parse_run_state(watched_object))
    if object_kind == ResourceKind.POD.value:
        return HostUpdated(change_type=change_type, host_event=mapping_parse_host_event(watched_object))
    return UnrecognizedEvent(change_type=change_type, object_kind=object_kind or "UNKNOWN")


def _mapping_require_mapping(value: object, field_name: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise MappingContractViolationError(f"manifest field {field_name} must be an object")
    return value


def _mapping_find_succeeded_condition(conditions: object) -> dict[str, Any] | None:
    if not isinstance(conditions, list):
        return None
    for condition in conditions:
        if isinstance(condition, dict) and condition.get("type") == _SUCCEEDED_CONDITION_TYPE:
            return condition
    return None


def _mapping_resolve_phase(condition: dict[str, Any] | None) -> tuple[RunPhase, bool]:
    """Derive lifecycle phase and done flag from the `Succeeded` condition.

    Args:
        condition: `Succeeded` condition, or None when not yet reported.

    Returns:
        tuple[RunPhase, bool]: Phase and control-plane done flag.
    """

    if condition is None:
        return RunPhase.UNKNOWN, False

    condition_status = str(condition.get("status") or "").strip()
    reason = str(condition.get("reason") or "").strip()
    if condition_status == "True":
        return RunPhase.SUCCEEDED, True
    if condition_status == "False":
        if reason in _CANCELLED_REASONS:
            return RunPhase.CANCELLED, True
        return RunPhase.FAILED, True
    if condition_status == "Unknown":
        if reason == _RUNNING_REASON:
            return RunPhase.RUNNING, False
        return RunPhase.PENDING, False
    return RunPhase.UNKNOWN, False
