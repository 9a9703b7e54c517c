"""Dataset builders shared by the directive engine tests."""

import math
from typing import Any

from directive_engine.core.messages.datasets import (
    AsBuiltPosesDataset,
    ConstraintsDataset,
    NominalPosesDataset,
)

IDENTITY = (0.0, 0.0, 0.0, 1.0)
ALL_AXES = {"x": True, "y": True, "z": True}
MEASURED_AT = "2024-01-15T10:30:00Z"


def quat_about(axis: str, angle_deg: float) -> tuple[float, float, float, float]:
    half = math.radians(angle_deg) / 2
    s = math.sin(half)
    return (
        s if axis == "x" else 0.0,
        s if axis == "y" else 0.0,
        s if axis == "z" else 0.0,
        math.cos(half),
    )


def make_nominal_part(
    part_id: str = "P1",
    translation: tuple[float, float, float] = (0.0, 0.0, 0.0),
    rotation: tuple[float, float, float, float] = IDENTITY,
) -> dict[str, Any]:
    return {
        "part_id": part_id,
        "part_name": f"Part {part_id}",
        "part_type": "bracket",
        "T_world_part_nominal": {
            "translation_mm": list(translation),
            "rotation_quat_xyzw": list(rotation),
        },
    }


def make_as_built_part(
    part_id: str = "P1",
    translation: tuple[float, float, float] = (0.0, 0.0, 0.0),
    rotation: tuple[float, float, float, float] = IDENTITY,
    confidence: float = 1.0,
) -> dict[str, Any]:
    return {
        "part_id": part_id,
        "T_world_part_asBuilt": {
            "translation_mm": list(translation),
            "rotation_quat_xyzw": list(rotation),
        },
        "pose_confidence": confidence,
    }


def make_constraint(part_id: str = "P1", **overrides: Any) -> dict[str, Any]:
    constraint: dict[str, Any] = {
        "part_id": part_id,
        "allowed_translation_axes": dict(ALL_AXES),
        "rotation_mode": "free",
        "allowed_rotation_axes": dict(ALL_AXES),
        "tolerances": {"translation_mm": 1.0, "rotation_deg": 1.0},
    }
    constraint.update(overrides)
    return constraint


def make_raw_datasets(
    nominal_parts: list[dict[str, Any]],
    as_built_parts: list[dict[str, Any]],
    constraint_parts: list[dict[str, Any]],
    confidence_threshold: float = 0.7,
    clamp_policy: str | None = None,
    measured_at: str = MEASURED_AT,
) -> tuple[dict[str, Any], dict[str, Any], dict[str, Any]]:
    engine_config: dict[str, Any] = {"confidence_threshold": confidence_threshold}
    if clamp_policy is not None:
        engine_config["translation_clamp_policy"] = clamp_policy
    nominal = {
        "schema_version": "v0.1",
        "dataset_id": "museum_wall_01",
        "frame_id": "world",
        "units": {"length": "mm", "rotation": "quaternion_xyzw"},
        "parts": nominal_parts,
    }
    as_built = {
        "schema_version": "v0.1",
        "dataset_id": "museum_wall_01",
        "frame_id": "world",
        "measured_at": measured_at,
        "parts": as_built_parts,
    }
    constraints = {
        "schema_version": "v0.1",
        "dataset_id": "museum_wall_01",
        "engine_config": engine_config,
        "parts": constraint_parts,
    }
    return nominal, as_built, constraints


def make_datasets(
    nominal_parts: list[dict[str, Any]],
    as_built_parts: list[dict[str, Any]],
    constraint_parts: list[dict[str, Any]],
    **kwargs: Any,
) -> tuple[NominalPosesDataset, AsBuiltPosesDataset, ConstraintsDataset]:
    nominal, as_built, constraints = make_raw_datasets(
        nominal_parts, as_built_parts, constraint_parts, **kwargs
    )
    return (
        NominalPosesDataset.model_validate(nominal),
        AsBuiltPosesDataset.model_validate(as_built),
        ConstraintsDataset.model_validate(constraints),
    )


def make_single_part(
    as_built_translation: tuple[float, float, float] = (0.0, 0.0, 0.0),
    as_built_rotation: tuple[float, float, float, float] = IDENTITY,
    confidence: float = 1.0,
    **constraint_overrides: Any,
) -> tuple[NominalPosesDataset, AsBuiltPosesDataset, ConstraintsDataset]:
    """One part at the origin with the given as-built pose and constraint overrides."""
    return make_datasets(
        [make_nominal_part()],
        [
            make_as_built_part(
                translation=as_built_translation,
                rotation=as_built_rotation,
                confidence=confidence,
            )
        ],
        [make_constraint(**constraint_overrides)],
    )
