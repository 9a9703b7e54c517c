import math

Vec3 = tuple[float, float, float]


def zeros() -> Vec3:
    return (0.0, 0.0, 0.0)


def add(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] + b[0], a[1] + b[1], a[2] + b[2])


def sub(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def scale(v: Vec3, s: float) -> Vec3:
    return (v[0] * s, v[1] * s, v[2] * s)


def cross(a: Vec3, b: Vec3) -> Vec3:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def norm(v: Vec3) -> float:
    return math.sqrt(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])


def clamp_vec_per_axis(v: Vec3, max_abs: Vec3) -> tuple[Vec3, bool]:
    """Clamp each component of ``v`` to +/-|max_abs[i]|.

    Axes whose limit is 0 are left untouched. Returns the clamped vector and
    whether any component changed.
    """
    out = list(v)
    changed = False
    for i in range(3):
        limit = abs(max_abs[i])
        if limit == 0:
            continue
        clamped = min(max(out[i], -limit), limit)
        if clamped != out[i]:
            out[i] = clamped
            changed = True
    return (out[0], out[1], out[2]), changed
