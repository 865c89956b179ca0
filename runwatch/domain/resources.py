"""Control-plane resource kinds and shared labels."""

from __future__ import annotations

from enum import Enum
from typing import Final


class ResourceKind(str, Enum):
    """Resource kinds the session reads, creates or watches."""

    TASK = "Task"
    TASK_RUN = "TaskRun"
    POD = "Pod"


TEKTON_API_VERSION: Final[str] = "tekton.dev/v1"
RUN_OWNER_LABEL: Final[str] = "tekton.dev/taskRun"


def domain_resource_kind_from_value(value: str) -> ResourceKind:
    """Resolve a resource kind from a manifest `kind` field value.

    Args:
        value: Kind label such as `TaskRun`.

    Returns:
        ResourceKind: Matching resource kind.

    Raises:
        ValueError: Raised when the kind is not supported.
    """

    try:
        return ResourceKind(value)
    except ValueError as error:
        raise ValueError(f"unsupported resource kind={value}") from error
