"""Shared constants for the directive engine and its data models."""

from enum import StrEnum

SCHEMA_VERSION = "v0.1"
ENGINE_VERSION = "directive-engine/0.1.0"

# General epsilon for tolerance boundary checks in directive generation.
EPS = 1e-9

# Epsilon for within-tolerance checks (translation_mm, rotation_deg).
EPS_TOLERANCE = 1e-12

# A quaternion is accepted as normalized if |norm - 1| <= this value.
EPS_QUAT_NORM = 0.01

# Below this sin(half_angle) the rotation axis is underdetermined.
EPS_AXIS_DEGENERATE = 1e-8

# Zero-length threshold for axis vectors in from_axis_angle.
EPS_VECTOR_NORM = 1e-12

# Frobenius norm of the cross-covariance below which anchors are degenerate.
EPS_DEGENERATE_COVARIANCE = 1e-12

# Relative singular value below which centered anchors count as collinear.
EPS_COLLINEAR = 1e-9

POWER_ITERATION_MAX_ITERS = 200
POWER_ITERATION_CONVERGENCE = 1e-10
# Repeated squarings of the shifted Horn matrix before iterating.
POWER_ITERATION_SQUARINGS = 5
# Unconverged results whose last change exceeds this are rejected.
POWER_ITERATION_FAILURE = 1e-6

MIN_ANCHORS = 3


class Status(StrEnum):
    OK = "ok"
    PENDING = "pending"
    CLAMPED = "clamped"
    BLOCKED = "blocked"
    NEEDS_REVIEW = "needs_review"


# Highest priority first.
STATUS_PRIORITY: tuple[Status, ...] = (
    Status.BLOCKED,
    Status.NEEDS_REVIEW,
    Status.CLAMPED,
    Status.PENDING,
    Status.OK,
)


class ReasonCode(StrEnum):
    """Closed vocabulary explaining why a step got its status or actions."""

    # Input issues
    MISSING_INPUT_DATA = "missing_input_data"
    LOW_CONFIDENCE = "low_confidence"

    WITHIN_TOLERANCE = "within_tolerance"

    # Translation
    TRANSLATION_OUT_OF_TOLERANCE = "translation_out_of_tolerance"
    TRANSLATION_EXCEEDS_MAX_NORM = "translation_exceeds_max_norm"
    TRANSLATE_ONLY = "translate_only"
    TRANSLATE_CLAMPED = "translate_clamped"

    # Rotation
    ROTATION_OUT_OF_TOLERANCE = "rotation_out_of_tolerance"
    ROTATION_CLAMPED = "rotation_clamped"
    ROTATION_FREE_SINGLE_AXIS = "rotation_free_single_axis"
    ROTATION_LOCKED_BLOCKED = "rotation_locked_blocked"
    INDEX_ROTATION = "index_rotation"
    INDEX_ROTATION_CONFIG_MISSING = "index_rotation_config_missing"

    # Limits
    OUTSIDE_LIMITS_BLOCKED = "outside_limits_blocked"
    CLAMPED_TO_LIMITS = "clamped_to_limits"


class Axis(StrEnum):
    X = "x"
    Y = "y"
    Z = "z"


class RotationMode(StrEnum):
    FIXED = "fixed"
    FREE = "free"
    INDEX = "index"


class TranslationClampPolicy(StrEnum):
    NONE = "none"
    PER_AXIS_MAX_ABS = "per_axis_max_abs"
    VECTOR_NORM_MAX = "vector_norm_max"


class VerificationType(StrEnum):
    MEASURE_POSE = "measure_pose"
    RE_SCAN = "re_scan"
    MANUAL_INSPECTION = "manual_inspection"


class ExpectedResult(StrEnum):
    EXPECTED_PASS = "expected_pass"
    EXPECTED_FAIL = "expected_fail"
    UNKNOWN = "unknown"
