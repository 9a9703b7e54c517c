"""Directive engine: turn as-built pose deviations into field correction directives."""

from .core import (
    DirectiveEngineError,
    generate_directives,
    simulate_directives,
    validate_inputs,
)

__all__ = [
    "DirectiveEngineError",
    "generate_directives",
    "simulate_directives",
    "validate_inputs",
]
