"""Domain error types for the directive engine."""

from typing import Literal

AlignmentFailureReason = Literal[
    "insufficient_anchors",
    "duplicate_anchor_id",
    "degenerate_geometry",
    "convergence_failed",
]


class DirectiveEngineError(Exception):
    """Base class for all directive engine errors."""


class ValidationError(DirectiveEngineError):
    """Input datasets failed validation.

    Carries every violation found, not only the first one.
    """

    def __init__(self, errors: list[str]):
        super().__init__(f"Validation failed: {'; '.join(errors)}")
        self.errors = errors


class RigidAlignmentError(DirectiveEngineError):
    def __init__(
        self,
        message: str,
        reason: AlignmentFailureReason,
        anchor_count: int | None = None,
    ):
        super().__init__(message)
        self.reason = reason
        self.anchor_count = anchor_count


class TimestampError(DirectiveEngineError):
    def __init__(self, message: str, invalid_value: str):
        super().__init__(message)
        self.invalid_value = invalid_value


class PartProcessingError(DirectiveEngineError):
    """Unrecoverable fault while processing a single part."""

    def __init__(self, message: str, part_id: str, step_id: str | None = None):
        super().__init__(message)
        self.part_id = part_id
        self.step_id = step_id
