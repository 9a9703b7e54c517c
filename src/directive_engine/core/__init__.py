"""Pure computation core: no file or network I/O happens below this package."""

from .align import (
    align_anchors,
    anchors_to_point_pairs,
    apply_transform_to_line,
    apply_transform_to_point,
    compose_transforms,
    compute_rigid_transform,
    identity_transform,
    invert_transform,
    transforms_close,
)
from .directives import aggregate_status, generate_directives
from .errors import (
    DirectiveEngineError,
    PartProcessingError,
    RigidAlignmentError,
    TimestampError,
    ValidationError,
)
from .simulate import simulate_directives, simulate_step
from .validate import (
    validate_as_built_poses,
    validate_constraints,
    validate_inputs,
    validate_nominal_poses,
)

__all__ = [
    "DirectiveEngineError",
    "PartProcessingError",
    "RigidAlignmentError",
    "TimestampError",
    "ValidationError",
    "aggregate_status",
    "align_anchors",
    "anchors_to_point_pairs",
    "apply_transform_to_line",
    "apply_transform_to_point",
    "compose_transforms",
    "compute_rigid_transform",
    "generate_directives",
    "identity_transform",
    "invert_transform",
    "simulate_directives",
    "simulate_step",
    "transforms_close",
    "validate_as_built_poses",
    "validate_constraints",
    "validate_inputs",
    "validate_nominal_poses",
]
