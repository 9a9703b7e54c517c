from .constants import EPS
from .geometry import quat
from .geometry.vec import Vec3, norm, sub
from .messages.datasets import Tolerances
from .messages.transform import Transform


def compute_pose_error(nominal: Transform, pose: Transform) -> tuple[Vec3, float, float]:
    """Return ``(translation_error_vec, translation_error_norm, rotation_error_deg)``.

    The translation error is ``nominal - pose``, i.e. the move that brings the
    part onto nominal. The rotation error is the shortest-arc angle in [0, 180].
    """
    translation_error = sub(nominal.translation_mm, pose.translation_mm)
    rotation_delta = quat.delta_quat(nominal.rotation_quat_xyzw, pose.rotation_quat_xyzw)
    return translation_error, norm(translation_error), quat.angle_deg(rotation_delta)


def tolerance_exceeded(
    translation_norm_mm: float, rotation_deg: float, tolerances: Tolerances
) -> tuple[bool, bool]:
    """Return ``(translation_out, rotation_out)``.

    An error counts as out of tolerance only when it exceeds the tolerance by
    more than EPS.
    """
    return (
        translation_norm_mm > tolerances.translation_mm + EPS,
        rotation_deg > tolerances.rotation_deg + EPS,
    )


def within_tolerance(
    translation_norm_mm: float, rotation_deg: float, tolerances: Tolerances
) -> bool:
    return not any(tolerance_exceeded(translation_norm_mm, rotation_deg, tolerances))
