from pydantic import BaseModel, ConfigDict

from ..geometry.quat import Quat
from ..geometry.vec import Vec3


class Transform(BaseModel):
    """Rigid pose or rigid-body delta: rotate, then translate."""

    model_config = ConfigDict(allow_inf_nan=False)

    translation_mm: Vec3 = (0.0, 0.0, 0.0)
    rotation_quat_xyzw: Quat = (0.0, 0.0, 0.0, 1.0)  # unit quaternion (x, y, z, w)


class Line3(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    p0: Vec3
    p1: Vec3
