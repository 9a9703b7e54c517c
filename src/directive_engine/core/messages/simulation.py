from pydantic import BaseModel, ConfigDict, Field

from ..geometry.quat import Quat
from ..geometry.vec import Vec3


class PoseError(BaseModel):
    translation_mm_vec: Vec3  # nominal - pose
    translation_norm_mm: float
    rotation_deg: float


class DirectiveDelta(BaseModel):
    translation_mm_vec: Vec3
    rotation_quat_xyzw: Quat
    rotation_deg: float


class SimulationResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    before_error: PoseError
    directive_delta: DirectiveDelta | None = None
    after_error: PoseError
    passed: bool = Field(alias="pass")
    can_simulate: bool
