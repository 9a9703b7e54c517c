"""Input validation for directive generation.

Structural checks come from the pydantic models; this module adds the checks
that span list items or datasets (duplicate part ids, matching dataset ids)
and reports everything found as one ValidationError.
"""

from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .messages.datasets import AsBuiltPosesDataset, ConstraintsDataset, NominalPosesDataset

ModelT = TypeVar("ModelT", bound=BaseModel)


def _format_loc(loc: tuple[int | str, ...]) -> str:
    path = ""
    for item in loc:
        path += f"[{item}]" if isinstance(item, int) else f".{item}"
    return path.lstrip(".")


def _duplicate_part_ids(data: Any) -> list[str]:
    if not isinstance(data, dict) or not isinstance(data.get("parts"), list):
        return []
    errors = []
    seen: set[str] = set()
    for i, part in enumerate(data["parts"]):
        part_id = part.get("part_id") if isinstance(part, dict) else None
        if not isinstance(part_id, str) or not part_id:
            continue
        if part_id in seen:
            errors.append(f'parts[{i}].part_id "{part_id}" is duplicated')
        seen.add(part_id)
    return errors


def _collect(
    model: type[ModelT], data: Any, label: str | None = None
) -> tuple[ModelT | None, list[str]]:
    errors = []
    parsed = None
    if isinstance(data, model):
        data = data.model_dump()
    try:
        parsed = model.model_validate(data)
    except PydanticValidationError as e:
        for error in e.errors():
            loc = _format_loc(error["loc"])
            errors.append(f"{loc}: {error['msg']}" if loc else error["msg"])
    errors.extend(_duplicate_part_ids(data))
    if label:
        errors = [f"{label}: {error}" for error in errors]
    return (parsed if not errors else None), errors


def _validate(model: type[ModelT], data: Any) -> ModelT:
    parsed, errors = _collect(model, data)
    if errors or parsed is None:
        raise ValidationError(errors)
    return parsed


def validate_nominal_poses(data: Any) -> NominalPosesDataset:
    return _validate(NominalPosesDataset, data)


def validate_as_built_poses(data: Any) -> AsBuiltPosesDataset:
    return _validate(AsBuiltPosesDataset, data)


def validate_constraints(data: Any) -> ConstraintsDataset:
    return _validate(ConstraintsDataset, data)


def validate_inputs(
    nominal: Any, as_built: Any, constraints: Any
) -> tuple[NominalPosesDataset, AsBuiltPosesDataset, ConstraintsDataset]:
    """Validate all three datasets together.

    Every problem across the three inputs is gathered before raising, so a
    single run reports the whole list.
    """
    nominal_model, errors = _collect(NominalPosesDataset, nominal, "nominal")
    as_built_model, as_built_errors = _collect(AsBuiltPosesDataset, as_built, "as_built")
    constraints_model, constraints_errors = _collect(
        ConstraintsDataset, constraints, "constraints"
    )
    errors += as_built_errors + constraints_errors

    if nominal_model is not None:
        if as_built_model is not None and as_built_model.dataset_id != nominal_model.dataset_id:
            errors.append(
                f'nominal.dataset_id "{nominal_model.dataset_id}" does not match '
                f'as_built.dataset_id "{as_built_model.dataset_id}"'
            )
        if (
            constraints_model is not None
            and constraints_model.dataset_id != nominal_model.dataset_id
        ):
            errors.append(
                f'nominal.dataset_id "{nominal_model.dataset_id}" does not match '
                f'constraints.dataset_id "{constraints_model.dataset_id}"'
            )

    if errors or nominal_model is None or as_built_model is None or constraints_model is None:
        raise ValidationError(errors)
    return nominal_model, as_built_model, constraints_model
