"""Re-apply generated directives to as-built poses and re-check tolerances.

Used to confirm that a step's ``expected_residual`` is what the field crew
will actually see after executing its actions.
"""

import logging
from collections.abc import Sequence

from .constants import Status
from .geometry import quat
from .geometry.vec import add, zeros
from .messages.datasets import (
    AsBuiltPosesDataset,
    ConstraintsDataset,
    NominalPosesDataset,
    Tolerances,
)
from .messages.directives import Action, DirectivesOutput, NoopAction, Step
from .messages.simulation import DirectiveDelta, PoseError, SimulationResult
from .messages.transform import Transform
from .pose_error import compute_pose_error, within_tolerance

logger = logging.getLogger(__name__)


def pose_error(nominal_pose: Transform, pose: Transform) -> PoseError:
    translation_vec, translation_norm, rotation_deg = compute_pose_error(nominal_pose, pose)
    return PoseError(
        translation_mm_vec=translation_vec,
        translation_norm_mm=translation_norm,
        rotation_deg=rotation_deg,
    )


def combine_action_deltas(actions: Sequence[Action]) -> Transform:
    """Fold action deltas in order: translations add, rotations left-compose."""
    translation = zeros()
    rotation = quat.identity()
    for action in actions:
        if isinstance(action, NoopAction):
            continue
        translation = add(translation, action.delta.translation_mm)
        rotation = quat.multiply(action.delta.rotation_quat_xyzw, rotation)
    return Transform(translation_mm=translation, rotation_quat_xyzw=rotation)


def apply_delta_to_pose(pose: Transform, delta: Transform) -> Transform:
    """World-frame correction: ``t' = t + dt``, ``q' = dq * q``."""
    return Transform(
        translation_mm=add(pose.translation_mm, delta.translation_mm),
        rotation_quat_xyzw=quat.multiply(delta.rotation_quat_xyzw, pose.rotation_quat_xyzw),
    )


def simulate_step(
    nominal_pose: Transform,
    as_built_pose: Transform,
    step: Step,
    tolerances: Tolerances,
) -> SimulationResult:
    """Apply a step's actions to the as-built pose and check the result.

    Blocked and needs_review steps cannot be simulated: they report
    ``pass=False`` with the after error equal to the before error.
    """
    before = pose_error(nominal_pose, as_built_pose)

    if step.status in (Status.BLOCKED, Status.NEEDS_REVIEW):
        return SimulationResult(
            before_error=before,
            directive_delta=None,
            after_error=before,
            passed=False,
            can_simulate=False,
        )

    delta = combine_action_deltas(step.actions)
    corrected = apply_delta_to_pose(as_built_pose, delta)
    after = pose_error(nominal_pose, corrected)

    return SimulationResult(
        before_error=before,
        directive_delta=DirectiveDelta(
            translation_mm_vec=delta.translation_mm,
            rotation_quat_xyzw=delta.rotation_quat_xyzw,
            rotation_deg=quat.angle_deg(delta.rotation_quat_xyzw),
        ),
        after_error=after,
        passed=within_tolerance(after.translation_norm_mm, after.rotation_deg, tolerances),
        can_simulate=True,
    )


def simulate_directives(
    nominal: NominalPosesDataset,
    as_built: AsBuiltPosesDataset,
    constraints: ConstraintsDataset,
    output: DirectivesOutput,
) -> dict[str, SimulationResult]:
    """Simulate every step of a run, keyed by part id.

    Parts without an as-built pose or a constraint have nothing to simulate
    against and are left out.
    """
    nominal_by_id = {part.part_id: part for part in nominal.parts}
    as_built_by_id = {part.part_id: part for part in as_built.parts}
    constraint_by_id = {part.part_id: part for part in constraints.parts}

    results: dict[str, SimulationResult] = {}
    for step in output.steps:
        nominal_part = nominal_by_id.get(step.part_id)
        as_built_part = as_built_by_id.get(step.part_id)
        constraint = constraint_by_id.get(step.part_id)
        if nominal_part is None or as_built_part is None or constraint is None:
            logger.debug(f"[{step.part_id}] Skipping simulation: missing inputs")
            continue

        result = simulate_step(
            nominal_part.T_world_part_nominal,
            as_built_part.T_world_part_asBuilt,
            step,
            constraint.tolerances,
        )
        results[step.part_id] = result
        logger.debug(
            f"[{step.part_id}] Simulated {step.step_id}: "
            f"after={result.after_error.translation_norm_mm:.3f}mm/"
            f"{result.after_error.rotation_deg:.3f}deg, pass={result.passed}"
        )
    return results
