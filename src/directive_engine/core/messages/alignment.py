from pydantic import BaseModel, ConfigDict, Field

from ..geometry.vec import Vec3
from .transform import Transform


class AnchorPoint(BaseModel):
    anchor_id: str
    point_mm: Vec3


class AnchorResidual(BaseModel):
    anchor_id: str
    residual_mm: float
    residual_vec_mm: Vec3  # model - predicted


class RigidTransformResult(BaseModel):
    T_model_scan: Transform  # p_model = R * p_scan + t
    rms_mm: float
    baseline_rms_mm: float  # identity rotation, centroid translation
    residuals_mm: list[AnchorResidual]
    iterations: int
    converged: bool


class SurveyedAnchor(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    anchor_id: str = Field(min_length=1)
    scan_xyz_mm: Vec3
    model_xyz_mm: Vec3


class AnchorsDataset(BaseModel):
    schema_version: str | None = None
    dataset_id: str
    anchors: list[SurveyedAnchor] = Field(min_length=1)
