"""Typed interfaces for mapping-layer transformations."""

from dataclasses import dataclass


class MappingContractViolationError(ValueError):
    """Raised when a manifest cannot satisfy domain mapping contract requirements."""


@dataclass(frozen=True)
class TaskTemplate:
    """Template values for the single-step task the session submits.

    Attributes:
        task_name: Task resource name.
        step_image: Container image for the step.
        step_script: Shell script executed by the step.
    """

    task_name: str
    step_image: str
    step_script: str
