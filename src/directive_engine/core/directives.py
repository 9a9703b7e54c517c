"""Directive generation: turn pose deviations into field correction steps.

Each nominal part is evaluated once, against rules in strict priority order:

1. missing as-built pose or constraint -> ``needs_review``
2. pose confidence below threshold   -> ``needs_review``
3. within tolerance                  -> ``ok``
4. translation beyond its norm limit -> ``blocked`` (no actions)
5. corrective translate/rotate actions -> ``pending``, ``clamped`` or ``blocked``

Rule outcomes are data, not exceptions. Rule decisions are logged at DEBUG
level.
"""

import itertools
import logging
import math
from collections.abc import Iterable, Iterator

from .constants import (
    ENGINE_VERSION,
    EPS,
    STATUS_PRIORITY,
    Axis,
    ExpectedResult,
    ReasonCode,
    RotationMode,
    Status,
    TranslationClampPolicy,
    VerificationType,
)
from .errors import PartProcessingError
from .geometry import quat
from .geometry.quat import Quat
from .geometry.vec import Vec3, clamp_vec_per_axis, sub, zeros
from .messages.datasets import (
    AsBuiltPartPose,
    AsBuiltPosesDataset,
    AxisMask,
    ConstraintsDataset,
    EngineConfig,
    NominalPartPose,
    NominalPosesDataset,
    PartConstraint,
    Tolerances,
)
from .messages.directives import (
    Action,
    ComputedErrors,
    DirectiveInputs,
    DirectivesOutput,
    ExpectedResidual,
    NoopAction,
    RotateAction,
    RotateToIndexAction,
    Step,
    Summary,
    TranslateAction,
    Verification,
)
from .messages.transform import Transform
from .pose_error import compute_pose_error, tolerance_exceeded
from .timestamps import add_seconds_iso

logger = logging.getLogger(__name__)


class _Ids:
    """Run-scoped action/verification id sequences (A1, A2, ... / V1, V2, ...)."""

    def __init__(self) -> None:
        self._actions: Iterator[int] = itertools.count(1)
        self._verifications: Iterator[int] = itertools.count(1)

    def action(self) -> str:
        return f"A{next(self._actions)}"

    def verification(self) -> str:
        return f"V{next(self._verifications)}"


def aggregate_status(statuses: Iterable[Status]) -> Status:
    """Most severe status: blocked > needs_review > clamped > pending > ok."""
    present = set(statuses)
    for status in STATUS_PRIORITY:
        if status in present:
            return status
    return Status.OK


def expected_result_for_status(status: Status) -> ExpectedResult:
    if status == Status.BLOCKED:
        return ExpectedResult.EXPECTED_FAIL
    if status == Status.NEEDS_REVIEW:
        return ExpectedResult.UNKNOWN
    return ExpectedResult.EXPECTED_PASS


def _mask_translation(v: Vec3, mask: AxisMask) -> Vec3:
    return (
        v[0] if mask.x else 0.0,
        v[1] if mask.y else 0.0,
        v[2] if mask.z else 0.0,
    )


def pick_rotation_axis(rotation_error: Quat, mask: AxisMask) -> Axis:
    """Allowed axis best aligned with the error rotation axis.

    Ties go to the first allowed axis in x, y, z order. With no allowed axis
    the result is X.
    """
    error_axis, _ = quat.to_axis_angle(rotation_error)
    best: Axis | None = None
    best_component = -1.0
    for i, axis in enumerate(Axis):
        if not mask.allows(axis):
            continue
        component = abs(error_axis[i])
        if component > best_component:
            best, best_component = axis, component
    return best if best is not None else Axis.X


def _verification_type(constraint: PartConstraint | None) -> VerificationType:
    if constraint is None or constraint.verification is None:
        return VerificationType.MEASURE_POSE
    return constraint.verification.method


def _verification_notes(constraint: PartConstraint | None) -> str | None:
    if constraint is None or constraint.verification is None:
        return None
    return constraint.verification.notes


def _make_verification(
    ids: _Ids,
    verification_type: VerificationType,
    acceptance: Tolerances,
    status: Status,
    residual_translation: Vec3,
    residual_rotation_deg: float,
    notes: str | None,
) -> Verification:
    return Verification(
        verification_id=ids.verification(),
        type=verification_type,
        acceptance=Tolerances(
            translation_mm=acceptance.translation_mm, rotation_deg=acceptance.rotation_deg
        ),
        expected_residual=ExpectedResidual(
            translation_mm_vec=residual_translation, rotation_deg=residual_rotation_deg
        ),
        expected_result=expected_result_for_status(status),
        notes=notes,
    )


def _add_reason(reasons: list[ReasonCode], *codes: ReasonCode) -> None:
    for code in codes:
        if code not in reasons:
            reasons.append(code)


def _missing_data_step(
    step_id: str,
    nominal_part: NominalPartPose,
    as_built_part: AsBuiltPartPose | None,
    constraint: PartConstraint | None,
    ids: _Ids,
) -> Step:
    missing = []
    acceptance = Tolerances(translation_mm=0.0, rotation_deg=0.0)
    if constraint is not None:
        acceptance = constraint.tolerances
    if as_built_part is None:
        missing.append("as-built pose")
    if constraint is None:
        missing.append("constraints")

    errors = ComputedErrors()
    if as_built_part is not None:
        t_err, t_norm, r_deg = compute_pose_error(
            nominal_part.T_world_part_nominal, as_built_part.T_world_part_asBuilt
        )
        errors = ComputedErrors(
            translation_error_mm_vec=t_err,
            translation_error_norm_mm=t_norm,
            rotation_error_deg=r_deg,
        )

    logger.debug(f"[{nominal_part.part_id}] Missing {' and '.join(missing)}")
    status = Status.NEEDS_REVIEW
    return Step(
        step_id=step_id,
        part_id=nominal_part.part_id,
        status=status,
        reason_codes=[ReasonCode.MISSING_INPUT_DATA],
        pose_confidence=as_built_part.pose_confidence if as_built_part else None,
        computed_errors=errors,
        actions=[
            NoopAction(
                action_id=ids.action(),
                description=f"Missing {' and '.join(missing)} input. Cannot issue directive.",
            )
        ],
        verification=[
            _make_verification(
                ids,
                VerificationType.RE_SCAN,
                acceptance,
                status,
                errors.translation_error_mm_vec,
                errors.rotation_error_deg,
                "Resolve missing inputs.",
            )
        ],
    )


def _evaluate_part(
    step_id: str,
    nominal_part: NominalPartPose,
    as_built_part: AsBuiltPartPose | None,
    constraint: PartConstraint | None,
    engine_config: EngineConfig,
    ids: _Ids,
) -> Step:
    part_id = nominal_part.part_id
    name = nominal_part.part_name
    logger.debug(f"[{part_id}] Processing part ({name})")

    if as_built_part is None or constraint is None:
        return _missing_data_step(step_id, nominal_part, as_built_part, constraint, ids)

    nominal_pose = nominal_part.T_world_part_nominal
    as_built_pose = as_built_part.T_world_part_asBuilt
    t_err, t_norm, r_deg = compute_pose_error(nominal_pose, as_built_pose)
    if not (math.isfinite(t_norm) and math.isfinite(r_deg)):
        raise PartProcessingError(f"Non-finite pose error for part {part_id}", part_id, step_id)
    q_err = quat.delta_quat(nominal_pose.rotation_quat_xyzw, as_built_pose.rotation_quat_xyzw)

    errors = ComputedErrors(
        translation_error_mm_vec=t_err,
        translation_error_norm_mm=t_norm,
        rotation_error_deg=r_deg,
    )
    logger.debug(f"[{part_id}] Errors: translation={t_norm:.3f}mm, rotation={r_deg:.3f}deg")

    tolerances = constraint.tolerances
    confidence = as_built_part.pose_confidence
    verification_type = _verification_type(constraint)
    notes = _verification_notes(constraint)

    def finish(
        status: Status,
        reasons: list[ReasonCode],
        actions: list[Action],
        verification: Verification,
    ) -> Step:
        logger.debug(
            f"[{part_id}] {step_id}: status={status}, "
            f"reasons=[{', '.join(reasons)}], actions={len(actions)}"
        )
        return Step(
            step_id=step_id,
            part_id=part_id,
            status=status,
            reason_codes=reasons,
            pose_confidence=confidence,
            computed_errors=errors,
            actions=actions,
            verification=[verification],
        )

    # Confidence gate
    if confidence < engine_config.confidence_threshold:
        status = Status.NEEDS_REVIEW
        noop = NoopAction(
            action_id=ids.action(),
            description="Do not move part: pose confidence below threshold. Request re-scan.",
        )
        verification = _make_verification(
            ids,
            VerificationType.RE_SCAN,
            tolerances,
            status,
            t_err,
            r_deg,
            notes or "Re-scan to improve confidence before issuing motion directives.",
        )
        return finish(status, [ReasonCode.LOW_CONFIDENCE], [noop], verification)

    translation_out, rotation_out = tolerance_exceeded(t_norm, r_deg, tolerances)
    if not (translation_out or rotation_out):
        status = Status.OK
        noop = NoopAction(
            action_id=ids.action(),
            description="No adjustment required; as-built pose is within tolerance.",
        )
        verification = _make_verification(
            ids, verification_type, tolerances, status, zeros(), 0.0, notes
        )
        return finish(status, [ReasonCode.WITHIN_TOLERANCE], [noop], verification)

    max_norm = constraint.translation_max_norm_mm
    if max_norm is not None and t_norm > max_norm + EPS:
        status = Status.BLOCKED
        verification = _make_verification(
            ids,
            verification_type,
            tolerances,
            status,
            t_err,
            r_deg,
            notes
            or (
                f"Required translation exceeds translation_max_norm_mm={max_norm:g}; "
                "do not attempt correction; escalate."
            ),
        )
        return finish(
            status,
            [ReasonCode.OUTSIDE_LIMITS_BLOCKED, ReasonCode.TRANSLATION_EXCEEDS_MAX_NORM],
            [],
            verification,
        )

    if rotation_out and constraint.rotation_mode == RotationMode.FIXED:
        # rotation is locked: no directive is issued
        status = Status.BLOCKED
        reasons = [ReasonCode.TRANSLATION_OUT_OF_TOLERANCE] if translation_out else []
        reasons += [ReasonCode.ROTATION_OUT_OF_TOLERANCE, ReasonCode.ROTATION_LOCKED_BLOCKED]
        verification = _make_verification(
            ids, verification_type, tolerances, status, t_err, r_deg, notes
        )
        return finish(status, reasons, [], verification)

    reasons = []
    actions: list[Action] = []
    clamped = False
    applied_translation = zeros()
    residual_rotation_deg = r_deg

    if translation_out:
        _add_reason(reasons, ReasonCode.TRANSLATION_OUT_OF_TOLERANCE)

        masked = _mask_translation(t_err, constraint.allowed_translation_axes)
        delta = masked
        clamp_applied = False
        policy = engine_config.translation_clamp_policy or TranslationClampPolicy.PER_AXIS_MAX_ABS
        limits = constraint.translation_max_abs_mm
        if limits is not None and policy == TranslationClampPolicy.PER_AXIS_MAX_ABS:
            delta, clamp_applied = clamp_vec_per_axis(masked, limits.as_vec())

        applied_translation = delta
        if clamp_applied:
            logger.debug(f"[{part_id}] Translation clamped from {masked} to {delta}")
            description = f"Translate {name} toward nominal but clamp to per-axis max abs limits."
        else:
            description = f"Translate {name} to nominal. Apply delta in world frame."
        actions.append(
            TranslateAction(
                action_id=ids.action(),
                description=description,
                delta=Transform(translation_mm=delta, rotation_quat_xyzw=quat.identity()),
                clamp_applied=clamp_applied,
                original_delta=(
                    Transform(translation_mm=masked, rotation_quat_xyzw=quat.identity())
                    if clamp_applied
                    else None
                ),
            )
        )
        if clamp_applied:
            clamped = True
            _add_reason(reasons, ReasonCode.CLAMPED_TO_LIMITS, ReasonCode.TRANSLATE_CLAMPED)
        else:
            _add_reason(reasons, ReasonCode.TRANSLATE_ONLY)

    if rotation_out:
        _add_reason(reasons, ReasonCode.ROTATION_OUT_OF_TOLERANCE)

        if constraint.rotation_mode == RotationMode.INDEX:
            index_rotation = constraint.index_rotation
            if index_rotation is None:
                logger.warning(f"[{part_id}] index_rotation config missing; defaulting to Z/0")
                axis, target_index = Axis.Z, 0
                _add_reason(reasons, ReasonCode.INDEX_ROTATION_CONFIG_MISSING)
            else:
                axis, target_index = index_rotation.axis, index_rotation.nominal_index
            actions.append(
                RotateToIndexAction(
                    action_id=ids.action(),
                    description=(
                        f"Rotate {name} to target detent index {target_index} "
                        f"about +{axis.upper()} (nominal index)."
                    ),
                    axis=axis,
                    target_index=target_index,
                    delta=Transform(translation_mm=zeros(), rotation_quat_xyzw=q_err),
                )
            )
            _add_reason(reasons, ReasonCode.INDEX_ROTATION)
            # indexing lands exactly on the nominal detent
            residual_rotation_deg = 0.0

        else:
            axis = pick_rotation_axis(q_err, constraint.allowed_rotation_axes)
            delta_q = q_err
            clamp_applied = False
            residual_rotation_deg = 0.0
            description = f"Rotate {name} about +{axis.upper()} back to nominal."

            limits = constraint.rotation_max_abs_deg
            max_deg = abs(limits.for_axis(axis)) if limits is not None else 0.0
            if max_deg > 0:
                delta_q, clamp_applied, original_deg = quat.clamp_quat_angle(q_err, max_deg)
                if clamp_applied:
                    residual_rotation_deg = original_deg - max_deg
                    description = (
                        f"Rotate {name} about +{axis.upper()} toward nominal, "
                        f"clamped to {max_deg:g} deg."
                    )
                    logger.debug(
                        f"[{part_id}] Rotation clamped from {original_deg:.3f} to {max_deg:g} deg"
                    )

            actions.append(
                RotateAction(
                    action_id=ids.action(),
                    description=description,
                    axis=axis,
                    delta=Transform(translation_mm=zeros(), rotation_quat_xyzw=delta_q),
                    clamp_applied=clamp_applied,
                    original_delta=(
                        Transform(translation_mm=zeros(), rotation_quat_xyzw=q_err)
                        if clamp_applied
                        else None
                    ),
                )
            )
            if len(constraint.allowed_rotation_axes.enabled()) == 1:
                _add_reason(reasons, ReasonCode.ROTATION_FREE_SINGLE_AXIS)
            if clamp_applied:
                clamped = True
                _add_reason(reasons, ReasonCode.CLAMPED_TO_LIMITS, ReasonCode.ROTATION_CLAMPED)

    status = Status.CLAMPED if clamped else Status.PENDING
    residual_translation = sub(t_err, applied_translation)

    for action in actions:
        logger.debug(f"[{part_id}] Action {action.action_id} - {action.type}: {action.description}")

    verification = _make_verification(
        ids,
        verification_type,
        tolerances,
        status,
        residual_translation,
        residual_rotation_deg,
        notes,
    )
    return finish(status, reasons, actions, verification)


def generate_directives(
    nominal: NominalPosesDataset,
    as_built: AsBuiltPosesDataset,
    constraints: ConstraintsDataset,
    nominal_path: str = "unknown",
    as_built_path: str = "unknown",
    constraints_path: str = "unknown",
    engine_version: str | None = None,
    generated_at: str | None = None,
) -> DirectivesOutput:
    """Generate one correction step per nominal part.

    ``generated_at`` defaults to ``measured_at + 1s`` so repeated runs over the
    same inputs produce identical output. Raises TimestampError if
    ``measured_at`` is not a valid ISO-8601 string.
    """
    engine_config = constraints.engine_config
    as_built_by_id = {part.part_id: part for part in as_built.parts}
    constraint_by_id = {part.part_id: part for part in constraints.parts}

    if generated_at is None:
        generated_at = add_seconds_iso(as_built.measured_at, 1)

    ids = _Ids()
    steps = [
        _evaluate_part(
            f"S{i + 1}",
            part,
            as_built_by_id.get(part.part_id),
            constraint_by_id.get(part.part_id),
            engine_config,
            ids,
        )
        for i, part in enumerate(nominal.parts)
    ]

    counts = {status: 0 for status in Status}
    for step in steps:
        counts[step.status] += 1

    logger.debug(
        f"Complete: {len(steps)} steps processed - "
        + ", ".join(f"{status}={count}" for status, count in counts.items() if count)
    )

    return DirectivesOutput(
        dataset_id=nominal.dataset_id,
        engine_version=engine_version or ENGINE_VERSION,
        generated_at=generated_at,
        inputs=DirectiveInputs(
            nominal_poses=nominal_path,
            as_built_poses=as_built_path,
            constraints=constraints_path,
            confidence_threshold=engine_config.confidence_threshold,
        ),
        summary=Summary(counts_by_status=counts),
        steps=steps,
    )
