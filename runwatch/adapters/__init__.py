"""Adapter layer package for control-plane integration boundaries."""

from .control_plane_errors import (
	ControlPlaneAuthError,
	ControlPlaneConflictError,
	ControlPlaneConnectionError,
	ControlPlaneError,
	ControlPlaneNotFoundError,
	ControlPlaneResponseError,
	ControlPlaneTimeoutError,
	ControlPlaneWatchError,
)
from .interfaces import ControlPlanePort, EventStreamPort
from .kubernetes_rest import KubernetesControlPlaneAdapter, KubernetesWatchStream
from .resource_paths import resource_collection_path, resource_item_path

__all__ = [
	"ControlPlaneAuthError",
	"ControlPlaneConflictError",
	"ControlPlaneConnectionError",
	"ControlPlaneError",
	"ControlPlaneNotFoundError",
	"ControlPlanePort",
	"ControlPlaneResponseError",
	"ControlPlaneTimeoutError",
	"ControlPlaneWatchError",
	"EventStreamPort",
	"KubernetesControlPlaneAdapter",
	"KubernetesWatchStream",
	"resource_collection_path",
	"resource_item_path",
]
