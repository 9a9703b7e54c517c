"""Apply, invert and compose rigid transforms."""

from ..geometry import quat
from ..geometry.vec import Vec3, add, norm, scale, sub
from ..messages.transform import Line3, Transform


def identity_transform() -> Transform:
    return Transform(translation_mm=(0.0, 0.0, 0.0), rotation_quat_xyzw=quat.identity())


def apply_transform_to_point(transform: Transform, point: Vec3) -> Vec3:
    return add(quat.rotate_vec(point, transform.rotation_quat_xyzw), transform.translation_mm)


def apply_transform_to_line(transform: Transform, line: Line3) -> Line3:
    return Line3(
        p0=apply_transform_to_point(transform, line.p0),
        p1=apply_transform_to_point(transform, line.p1),
    )


def invert_transform(transform: Transform) -> Transform:
    rotation = quat.inverse(transform.rotation_quat_xyzw)
    translation = quat.rotate_vec(scale(transform.translation_mm, -1.0), rotation)
    return Transform(translation_mm=translation, rotation_quat_xyzw=rotation)


def compose_transforms(first: Transform, second: Transform) -> Transform:
    """Transform that applies ``first`` and then ``second``."""
    rotation = quat.normalize(
        quat.multiply(second.rotation_quat_xyzw, first.rotation_quat_xyzw)
    )
    translation = add(
        quat.rotate_vec(first.translation_mm, second.rotation_quat_xyzw),
        second.translation_mm,
    )
    return Transform(translation_mm=translation, rotation_quat_xyzw=rotation)


def transforms_close(a: Transform, b: Transform, tol: float = 1e-6) -> bool:
    """Compare poses; rotations are compared by angle so q and -q match."""
    if norm(sub(a.translation_mm, b.translation_mm)) > tol:
        return False
    rotation_deg = quat.angle_deg(quat.delta_quat(a.rotation_quat_xyzw, b.rotation_quat_xyzw))
    return rotation_deg <= tol
