"""Quaternion math.

All quaternions use the (x, y, z, w) convention and are treated as unit
rotations: every constructor and composition returns a normalized value.
"""

import math

from ..constants import EPS_AXIS_DEGENERATE, EPS_TOLERANCE, EPS_VECTOR_NORM
from .vec import Vec3, add, cross, scale

Quat = tuple[float, float, float, float]


def identity() -> Quat:
    return (0.0, 0.0, 0.0, 1.0)


def normalize(q: Quat) -> Quat:
    x, y, z, w = q
    n = math.sqrt(x * x + y * y + z * z + w * w)
    if n == 0:
        return identity()
    return (x / n, y / n, z / n, w / n)


def conjugate(q: Quat) -> Quat:
    return (-q[0], -q[1], -q[2], q[3])


def inverse(q: Quat) -> Quat:
    # inverse == conjugate for unit quaternions
    return conjugate(normalize(q))


def multiply(a: Quat, b: Quat) -> Quat:
    """Hamilton product ``a * b``: rotate by ``b`` first, then by ``a``."""
    ax, ay, az, aw = a
    bx, by, bz, bw = b
    return (
        aw * bx + ax * bw + ay * bz - az * by,
        aw * by - ax * bz + ay * bw + az * bx,
        aw * bz + ax * by - ay * bx + az * bw,
        aw * bw - ax * bx - ay * by - az * bz,
    )


def delta_quat(nominal: Quat, as_built: Quat) -> Quat:
    """Rotation that carries the as-built orientation onto nominal."""
    return normalize(multiply(nominal, inverse(as_built)))


def to_axis_angle(q: Quat) -> tuple[Vec3, float]:
    """Return ``(axis, angle_deg)`` with the angle in [0, 180].

    The sign is canonicalized so that w >= 0. Near the identity the axis is
    underdetermined and defaults to +X.
    """
    qx, qy, qz, qw = normalize(q)
    sign = -1.0 if qw < 0 else 1.0
    x, y, z, w = qx * sign, qy * sign, qz * sign, qw * sign

    # atan2 keeps precision near the identity where acos(w) does not
    sin_half = math.sqrt(x * x + y * y + z * z)
    angle_deg = math.degrees(2 * math.atan2(sin_half, w))
    if sin_half < EPS_AXIS_DEGENERATE:
        return (1.0, 0.0, 0.0), angle_deg
    return (x / sin_half, y / sin_half, z / sin_half), angle_deg


def angle_deg(q: Quat) -> float:
    return to_axis_angle(q)[1]


def from_axis_angle(axis: Vec3, angle_deg: float) -> Quat:
    length = math.sqrt(axis[0] * axis[0] + axis[1] * axis[1] + axis[2] * axis[2])
    if length < EPS_VECTOR_NORM:
        return identity()
    half = math.radians(angle_deg) / 2
    s = math.sin(half) / length
    return normalize((axis[0] * s, axis[1] * s, axis[2] * s, math.cos(half)))


def to_euler_xyz_deg(q: Quat) -> tuple[float, float, float]:
    """Roll, pitch, yaw in degrees."""
    x, y, z, w = normalize(q)
    roll = math.atan2(2 * (w * x + y * z), 1 - 2 * (x * x + y * y))
    # clamp to avoid NaN at gimbal lock
    pitch = math.asin(max(-1.0, min(1.0, 2 * (w * y - z * x))))
    yaw = math.atan2(2 * (w * z + x * y), 1 - 2 * (y * y + z * z))
    return math.degrees(roll), math.degrees(pitch), math.degrees(yaw)


def clamp_quat_angle(q: Quat, max_deg: float) -> tuple[Quat, bool, float]:
    """Limit the rotation angle of ``q`` to ``max_deg`` about the same axis.

    Returns ``(clamped, changed, original_deg)``. When no clamping is needed
    ``q`` is returned as-is.
    """
    axis, original_deg = to_axis_angle(q)
    if original_deg <= max_deg + EPS_TOLERANCE:
        return q, False, original_deg
    return from_axis_angle(axis, max_deg), True, original_deg


def rotate_vec(v: Vec3, q: Quat) -> Vec3:
    """Rotate ``v`` by ``q`` (v' = q v q*)."""
    qx, qy, qz, qw = normalize(q)
    u = (qx, qy, qz)
    t = scale(cross(u, v), 2.0)
    return add(add(v, scale(t, qw)), cross(u, t))
