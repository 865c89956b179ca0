"""REST routing for control-plane resource kinds."""

from __future__ import annotations

from typing import Final

from runwatch.domain import TEKTON_API_VERSION, ResourceKind

_RESOURCE_GROUP_PREFIXES: Final[dict[ResourceKind, str]] = {
    ResourceKind.TASK: f"/apis/{TEKTON_API_VERSION}",
    ResourceKind.TASK_RUN: f"/apis/{TEKTON_API_VERSION}",
    ResourceKind.POD: "/api/v1",
}

_RESOURCE_PLURALS: Final[dict[ResourceKind, str]] = {
    ResourceKind.TASK: "tasks",
    ResourceKind.TASK_RUN: "taskruns",
    ResourceKind.POD: "pods",
}


def resource_collection_path(kind: ResourceKind, namespace: str) -> str:
    """Return namespaced REST collection path for a resource kind.

    Args:
        kind: Resource kind.
        namespace: Target namespace.

    Returns:
        str: Collection path, e.g. `/api/v1/namespaces/default/pods`.
    """

    return f"{_RESOURCE_GROUP_PREFIXES[kind]}/namespaces/{namespace}/{_RESOURCE_PLURALS[kind]}"


def resource_item_path(kind: ResourceKind, namespace: str, name: str) -> str:
    """Return namespaced REST path for one named resource."""

    return f"{resource_collection_path(kind, namespace)}/{name}"
