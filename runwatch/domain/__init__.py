"""Domain models used across application layer boundaries."""

from .models import (
	CorrelatedResult,
	HealthStatus,
	HostEvent,
	HostUpdated,
	RunPhase,
	RunState,
	RunUpdated,
	StreamEvent,
	UnrecognizedEvent,
)
from .resources import RUN_OWNER_LABEL, TEKTON_API_VERSION, ResourceKind, domain_resource_kind_from_value
from .timeline import domain_build_stage_event

__all__ = [
	"CorrelatedResult",
	"HealthStatus",
	"HostEvent",
	"HostUpdated",
	"RUN_OWNER_LABEL",
	"ResourceKind",
	"RunPhase",
	"RunState",
	"RunUpdated",
	"StreamEvent",
	"TEKTON_API_VERSION",
	"UnrecognizedEvent",
	"domain_build_stage_event",
	"domain_resource_kind_from_value",
]
