"""Directive output models: steps, actions and verifications."""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from ..constants import (
    SCHEMA_VERSION,
    Axis,
    ExpectedResult,
    ReasonCode,
    Status,
    VerificationType,
)
from ..geometry.vec import Vec3
from .datasets import Tolerances
from .transform import Transform


class TranslateAction(BaseModel):
    action_id: str
    type: Literal["translate"] = "translate"
    description: str
    delta: Transform
    clamp_applied: bool = False
    original_delta: Transform | None = None  # pre-clamp value, kept for audit


class RotateAction(BaseModel):
    action_id: str
    type: Literal["rotate"] = "rotate"
    description: str
    axis: Axis
    delta: Transform
    clamp_applied: bool = False
    original_delta: Transform | None = None


class RotateToIndexAction(BaseModel):
    action_id: str
    type: Literal["rotate_to_index"] = "rotate_to_index"
    description: str
    axis: Axis
    target_index: int
    delta: Transform
    clamp_applied: bool = False


class NoopAction(BaseModel):
    action_id: str
    type: Literal["noop"] = "noop"
    description: str


Action = Annotated[
    TranslateAction | RotateAction | RotateToIndexAction | NoopAction,
    Field(discriminator="type"),
]


class ExpectedResidual(BaseModel):
    translation_mm_vec: Vec3
    rotation_deg: float


class Verification(BaseModel):
    verification_id: str
    type: VerificationType
    acceptance: Tolerances
    expected_residual: ExpectedResidual
    expected_result: ExpectedResult
    notes: str | None = None


class ComputedErrors(BaseModel):
    translation_error_mm_vec: Vec3 = (0.0, 0.0, 0.0)  # nominal - as_built
    translation_error_norm_mm: float = 0.0
    rotation_error_deg: float = 0.0


class Step(BaseModel):
    step_id: str
    part_id: str
    status: Status
    reason_codes: list[ReasonCode]
    pose_confidence: float | None = None
    computed_errors: ComputedErrors
    actions: list[Action]
    verification: list[Verification]


class DirectiveInputs(BaseModel):
    nominal_poses: str = "unknown"
    as_built_poses: str = "unknown"
    constraints: str = "unknown"
    confidence_threshold: float


class Summary(BaseModel):
    counts_by_status: dict[Status, int]


class DirectivesOutput(BaseModel):
    schema_version: Literal["v0.1"] = SCHEMA_VERSION
    dataset_id: str
    engine_version: str
    generated_at: str
    inputs: DirectiveInputs
    summary: Summary
    steps: list[Step]

    def to_json(self, indent: int | None = 2) -> str:
        return self.model_dump_json(indent=indent, exclude_none=True)
