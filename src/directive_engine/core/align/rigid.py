"""Rigid registration of anchor correspondences (Horn's absolute orientation).

Computes ``T_model_scan`` such that ``p_model = R * p_scan + t`` minimizes the
squared anchor residuals. The rotation is the dominant eigenvector of Horn's
symmetric 4x4 matrix, extracted with an explicit power iteration.
"""

import logging
import math
from collections.abc import Sequence

import numpy as np

from ..constants import (
    EPS_COLLINEAR,
    EPS_DEGENERATE_COVARIANCE,
    MIN_ANCHORS,
    POWER_ITERATION_CONVERGENCE,
    POWER_ITERATION_FAILURE,
    POWER_ITERATION_MAX_ITERS,
    POWER_ITERATION_SQUARINGS,
)
from ..errors import RigidAlignmentError
from ..geometry import quat
from ..geometry.vec import Vec3, norm, sub
from ..messages.alignment import AnchorPoint, AnchorResidual, RigidTransformResult
from ..messages.transform import Transform
from .transform import apply_transform_to_point

logger = logging.getLogger(__name__)


def _vec(values: np.ndarray) -> Vec3:
    return (float(values[0]), float(values[1]), float(values[2]))


def _index_by_id(points: Sequence[AnchorPoint], label: str) -> dict[str, Vec3]:
    by_id: dict[str, Vec3] = {}
    for point in points:
        if point.anchor_id in by_id:
            raise RigidAlignmentError(
                f"Duplicate {label} anchor id: {point.anchor_id}",
                reason="duplicate_anchor_id",
            )
        by_id[point.anchor_id] = point.point_mm
    return by_id


def _horn_matrix(cov: np.ndarray) -> np.ndarray:
    (sxx, sxy, sxz), (syx, syy, syz), (szx, szy, szz) = cov
    return np.array(
        [
            [sxx + syy + szz, syz - szy, szx - sxz, sxy - syx],
            [syz - szy, sxx - syy - szz, sxy + syx, szx + sxz],
            [szx - sxz, sxy + syx, -sxx + syy - szz, syz + szy],
            [sxy - syx, szx + sxz, syz + szy, -sxx - syy + szz],
        ]
    )


def dominant_eigenvector(
    matrix: np.ndarray,
    max_iterations: int = POWER_ITERATION_MAX_ITERS,
    convergence: float = POWER_ITERATION_CONVERGENCE,
) -> tuple[np.ndarray, int, bool, float]:
    """Power iteration for the eigenvector of the largest eigenvalue.

    ``matrix`` must be symmetric. It is shifted by its Frobenius norm so every
    eigenvalue is non-negative, then squared ``POWER_ITERATION_SQUARINGS``
    times so each iteration advances 2**k plain steps. Iteration starts from
    the largest column of the powered matrix, which cannot be orthogonal to
    the dominant eigenvector.

    Returns:
        (eigenvector, iterations, converged, last_change)
    """
    shift = float(np.linalg.norm(matrix))
    powered = matrix + shift * np.eye(matrix.shape[0])
    for _ in range(POWER_ITERATION_SQUARINGS):
        powered = powered @ powered
        scale = float(np.linalg.norm(powered))
        if scale == 0:
            break
        powered = powered / scale

    column_norms = np.linalg.norm(powered, axis=0)
    best = int(np.argmax(column_norms))
    if column_norms[best] == 0:
        vector = np.zeros(matrix.shape[0])
        vector[0] = 1.0
    else:
        vector = powered[:, best] / column_norms[best]

    change = math.inf
    for iteration in range(1, max_iterations + 1):
        product = powered @ vector
        magnitude = float(np.linalg.norm(product))
        if magnitude == 0:
            return vector, iteration, False, change
        updated = product / magnitude
        change = float(np.linalg.norm(updated - vector))
        vector = updated
        if change < convergence:
            return vector, iteration, True, change
    return vector, max_iterations, False, change


def _rms(residuals: list[AnchorResidual]) -> float:
    if not residuals:
        return 0.0
    return math.sqrt(sum(r.residual_mm * r.residual_mm for r in residuals) / len(residuals))


def _residuals(
    anchor_ids: list[str], scan: list[Vec3], model: list[Vec3], transform: Transform
) -> list[AnchorResidual]:
    residuals = []
    for anchor_id, scan_point, model_point in zip(anchor_ids, scan, model, strict=True):
        residual_vec = sub(model_point, apply_transform_to_point(transform, scan_point))
        residuals.append(
            AnchorResidual(
                anchor_id=anchor_id,
                residual_mm=norm(residual_vec),
                residual_vec_mm=residual_vec,
            )
        )
    return residuals


def compute_rigid_transform(
    scan_points: Sequence[AnchorPoint],
    model_points: Sequence[AnchorPoint],
    max_iterations: int = POWER_ITERATION_MAX_ITERS,
    convergence: float = POWER_ITERATION_CONVERGENCE,
) -> RigidTransformResult:
    """Best-fit rigid transform mapping scan anchors onto model anchors.

    Anchors are matched by ``anchor_id``; ids present in only one set are
    ignored. Raises RigidAlignmentError on duplicate ids, fewer than three
    matches, degenerate (coincident or collinear) geometry, or a power
    iteration that fails to converge.
    """
    model_by_id = _index_by_id(model_points, "model")
    scan_by_id = _index_by_id(scan_points, "scan")

    anchor_ids = [anchor_id for anchor_id in scan_by_id if anchor_id in model_by_id]
    if len(anchor_ids) < MIN_ANCHORS:
        raise RigidAlignmentError(
            f"Rigid alignment requires at least {MIN_ANCHORS} matching anchors, "
            f"got {len(anchor_ids)}",
            reason="insufficient_anchors",
            anchor_count=len(anchor_ids),
        )

    scan = [scan_by_id[anchor_id] for anchor_id in anchor_ids]
    model = [model_by_id[anchor_id] for anchor_id in anchor_ids]
    scan_arr = np.asarray(scan, dtype=float)
    model_arr = np.asarray(model, dtype=float)

    scan_centroid = scan_arr.mean(axis=0)
    model_centroid = model_arr.mean(axis=0)

    baseline = Transform(
        translation_mm=_vec(model_centroid - scan_centroid),
        rotation_quat_xyzw=quat.identity(),
    )
    baseline_rms = _rms(_residuals(anchor_ids, scan, model, baseline))

    centered_scan = scan_arr - scan_centroid
    centered_model = model_arr - model_centroid
    cov = centered_scan.T @ centered_model

    if float(np.linalg.norm(cov)) < EPS_DEGENERATE_COVARIANCE:
        raise RigidAlignmentError(
            "Anchor geometry is degenerate (coincident points)",
            reason="degenerate_geometry",
            anchor_count=len(anchor_ids),
        )
    singular = np.linalg.svd(centered_scan, compute_uv=False)
    if singular[1] <= EPS_COLLINEAR * singular[0]:
        raise RigidAlignmentError(
            "Anchor geometry is degenerate (collinear points)",
            reason="degenerate_geometry",
            anchor_count=len(anchor_ids),
        )

    eigenvector, iterations, converged, change = dominant_eigenvector(
        _horn_matrix(cov), max_iterations=max_iterations, convergence=convergence
    )
    if not converged:
        if change > POWER_ITERATION_FAILURE:
            raise RigidAlignmentError(
                f"Power iteration did not converge after {iterations} iterations "
                f"(last change {change:.3e})",
                reason="convergence_failed",
                anchor_count=len(anchor_ids),
            )
        logger.warning(
            f"Power iteration stopped at {iterations} iterations with change {change:.3e}"
        )

    qw, qx, qy, qz = (float(v) for v in eigenvector)
    rotation = quat.normalize((qx, qy, qz, qw))
    rotated_centroid = quat.rotate_vec(_vec(scan_centroid), rotation)
    translation = sub(_vec(model_centroid), rotated_centroid)

    transform = Transform(translation_mm=translation, rotation_quat_xyzw=rotation)
    residuals = _residuals(anchor_ids, scan, model, transform)
    rms = _rms(residuals)

    logger.debug(
        f"Aligned {len(anchor_ids)} anchors in {iterations} iterations: "
        f"rms={rms:.6f}mm, baseline_rms={baseline_rms:.6f}mm"
    )

    return RigidTransformResult(
        T_model_scan=transform,
        rms_mm=rms,
        baseline_rms_mm=baseline_rms,
        residuals_mm=residuals,
        iterations=iterations,
        converged=converged,
    )
