"""Rigid transforms: application, composition and anchor-based registration."""

from .anchors import align_anchors, anchors_to_point_pairs
from .rigid import compute_rigid_transform
from .transform import (
    apply_transform_to_line,
    apply_transform_to_point,
    compose_transforms,
    identity_transform,
    invert_transform,
    transforms_close,
)

__all__ = [
    "align_anchors",
    "anchors_to_point_pairs",
    "apply_transform_to_line",
    "apply_transform_to_point",
    "compose_transforms",
    "compute_rigid_transform",
    "identity_transform",
    "invert_transform",
    "transforms_close",
]
