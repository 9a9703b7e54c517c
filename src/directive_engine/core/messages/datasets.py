"""Input dataset models.

Field names and nesting are the JSON wire contract shared with external
schema validators; do not rename them.
"""

import math
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from ..constants import (
    EPS_QUAT_NORM,
    Axis,
    RotationMode,
    TranslationClampPolicy,
    VerificationType,
)
from ..errors import TimestampError
from ..timestamps import parse_iso
from .transform import Transform


def _require_normalized(transform: Transform) -> Transform:
    x, y, z, w = transform.rotation_quat_xyzw
    n = math.sqrt(x * x + y * y + z * z + w * w)
    if abs(n - 1) > EPS_QUAT_NORM:
        raise ValueError(f"rotation_quat_xyzw is not normalized (norm={n:.6f})")
    return transform


class Units(BaseModel):
    length: Literal["mm"] = "mm"
    rotation: Literal["quaternion_xyzw"] = "quaternion_xyzw"


class NominalPartPose(BaseModel):
    part_id: str = Field(min_length=1)
    part_name: str
    part_type: str
    T_world_part_nominal: Transform

    @field_validator("T_world_part_nominal")
    @classmethod
    def validate_rotation(cls, v: Transform) -> Transform:
        return _require_normalized(v)


class NominalPosesDataset(BaseModel):
    schema_version: Literal["v0.1"]
    dataset_id: str = Field(min_length=1)
    frame_id: Literal["world"]
    units: Units = Units()
    parts: list[NominalPartPose]


class AsBuiltPartPose(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    part_id: str = Field(min_length=1)
    T_world_part_asBuilt: Transform
    pose_confidence: float = Field(ge=0.0, le=1.0)
    confidence_notes: str | None = None

    @field_validator("T_world_part_asBuilt")
    @classmethod
    def validate_rotation(cls, v: Transform) -> Transform:
        return _require_normalized(v)


class AsBuiltPosesDataset(BaseModel):
    schema_version: Literal["v0.1"]
    dataset_id: str = Field(min_length=1)
    frame_id: Literal["world"]
    units: Units = Units()
    measured_at: str  # ISO 8601
    parts: list[AsBuiltPartPose]

    @field_validator("measured_at")
    @classmethod
    def validate_measured_at(cls, v: str) -> str:
        try:
            parse_iso(v)
        except TimestampError as e:
            raise ValueError("measured_at must be a valid ISO date string") from e
        return v


class AxisMask(BaseModel):
    x: StrictBool
    y: StrictBool
    z: StrictBool

    def allows(self, axis: Axis) -> bool:
        return bool(getattr(self, axis.value))

    def enabled(self) -> list[Axis]:
        """Allowed axes in x, y, z priority order."""
        return [axis for axis in Axis if self.allows(axis)]


class PerAxisLimit(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    x: float
    y: float
    z: float

    def for_axis(self, axis: Axis) -> float:
        return float(getattr(self, axis.value))

    def as_vec(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


class IndexRotation(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    axis: Axis
    increment_deg: float
    allowed_indices: list[int]
    nominal_index: int


class Tolerances(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    translation_mm: float = Field(ge=0.0)
    rotation_deg: float = Field(ge=0.0)


class VerificationSpec(BaseModel):
    method: VerificationType = VerificationType.MEASURE_POSE
    notes: str | None = None


class PartConstraint(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    part_id: str = Field(min_length=1)
    allowed_translation_axes: AxisMask
    rotation_mode: RotationMode
    allowed_rotation_axes: AxisMask
    translation_max_abs_mm: PerAxisLimit | None = None
    translation_max_norm_mm: float | None = None
    rotation_max_abs_deg: PerAxisLimit | None = None
    index_rotation: IndexRotation | None = None
    tolerances: Tolerances
    verification: VerificationSpec | None = None


class EngineConfig(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    confidence_threshold: float = Field(ge=0.0, le=1.0)
    translation_clamp_policy: TranslationClampPolicy | None = None


class ConstraintsDataset(BaseModel):
    schema_version: Literal["v0.1"]
    dataset_id: str = Field(min_length=1)
    engine_config: EngineConfig
    parts: list[PartConstraint]
