"""Anchor surveys: pairs of scan/model coordinates for the same reference point."""

from collections.abc import Sequence
from typing import Any

from ..constants import POWER_ITERATION_CONVERGENCE, POWER_ITERATION_MAX_ITERS
from ..messages.alignment import AnchorPoint, AnchorsDataset, RigidTransformResult
from .rigid import compute_rigid_transform


def anchors_to_point_pairs(
    dataset: AnchorsDataset | dict[str, Any],
) -> tuple[list[AnchorPoint], list[AnchorPoint]]:
    """Split a survey into ``(scan_points, model_points)`` sorted by anchor id."""
    if not isinstance(dataset, AnchorsDataset):
        dataset = AnchorsDataset.model_validate(dataset)

    anchors = sorted(dataset.anchors, key=lambda anchor: anchor.anchor_id)
    scan_points = [AnchorPoint(anchor_id=a.anchor_id, point_mm=a.scan_xyz_mm) for a in anchors]
    model_points = [AnchorPoint(anchor_id=a.anchor_id, point_mm=a.model_xyz_mm) for a in anchors]
    return scan_points, model_points


def align_anchors(
    dataset: AnchorsDataset | dict[str, Any],
    exclude: Sequence[str] = (),
    max_iterations: int = POWER_ITERATION_MAX_ITERS,
    convergence: float = POWER_ITERATION_CONVERGENCE,
) -> RigidTransformResult:
    """Register the scan frame to the model frame from a survey.

    Anchors listed in ``exclude`` are left out of the fit.
    """
    scan_points, model_points = anchors_to_point_pairs(dataset)
    if exclude:
        excluded = set(exclude)
        scan_points = [p for p in scan_points if p.anchor_id not in excluded]
        model_points = [p for p in model_points if p.anchor_id not in excluded]
    return compute_rigid_transform(
        scan_points, model_points, max_iterations=max_iterations, convergence=convergence
    )
