"""Mapping layer package for manifest to domain conversions."""

from .interfaces import MappingContractViolationError, TaskTemplate
from .service import (
	mapping_build_task_manifest,
	mapping_build_task_run_manifest,
	mapping_parse_host_event,
	mapping_parse_run_state,
	mapping_parse_timestamp,
	mapping_parse_watch_frame,
)

__all__ = [
	"MappingContractViolationError",
	"TaskTemplate",
	"mapping_build_task_manifest",
	"mapping_build_task_run_manifest",
	"mapping_parse_host_event",
	"mapping_parse_run_state",
	"mapping_parse_timestamp",
	"mapping_parse_watch_frame",
]
