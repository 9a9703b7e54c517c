"""Pydantic models for the JSON datasets consumed and produced by the engine."""

from .alignment import (
    AnchorPoint,
    AnchorResidual,
    AnchorsDataset,
    RigidTransformResult,
    SurveyedAnchor,
)
from .datasets import (
    AsBuiltPartPose,
    AsBuiltPosesDataset,
    AxisMask,
    ConstraintsDataset,
    EngineConfig,
    IndexRotation,
    NominalPartPose,
    NominalPosesDataset,
    PartConstraint,
    PerAxisLimit,
    Tolerances,
    Units,
    VerificationSpec,
)
from .directives import (
    Action,
    ComputedErrors,
    DirectiveInputs,
    DirectivesOutput,
    ExpectedResidual,
    NoopAction,
    RotateAction,
    RotateToIndexAction,
    Step,
    Summary,
    TranslateAction,
    Verification,
)
from .simulation import DirectiveDelta, PoseError, SimulationResult
from .transform import Line3, Transform

__all__ = [
    "Action",
    "AnchorPoint",
    "AnchorResidual",
    "AnchorsDataset",
    "AsBuiltPartPose",
    "AsBuiltPosesDataset",
    "AxisMask",
    "ComputedErrors",
    "ConstraintsDataset",
    "DirectiveDelta",
    "DirectiveInputs",
    "DirectivesOutput",
    "EngineConfig",
    "ExpectedResidual",
    "IndexRotation",
    "Line3",
    "NominalPartPose",
    "NominalPosesDataset",
    "NoopAction",
    "PartConstraint",
    "PerAxisLimit",
    "PoseError",
    "RigidTransformResult",
    "RotateAction",
    "RotateToIndexAction",
    "SimulationResult",
    "Step",
    "Summary",
    "SurveyedAnchor",
    "Tolerances",
    "Transform",
    "TranslateAction",
    "Units",
    "Verification",
    "VerificationSpec",
]
