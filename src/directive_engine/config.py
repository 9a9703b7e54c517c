"""
Configuration module for the directive engine CLI.

Loads settings from a YAML file with Pydantic validation.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from .core.constants import ENGINE_VERSION, POWER_ITERATION_CONVERGENCE, POWER_ITERATION_MAX_ITERS

CONFIG_ENV_VAR = "DIRECTIVE_ENGINE_CONFIG"


class OutputSettings(BaseModel):
    path: str = "out/directives.json"
    indent: int = Field(default=2, ge=0)


class AlignmentSettings(BaseModel):
    max_iterations: int = Field(default=POWER_ITERATION_MAX_ITERS, gt=0)
    convergence_threshold: float = Field(default=POWER_ITERATION_CONVERGENCE, gt=0)


class EngineSettings(BaseModel):
    engine_version: str = ENGINE_VERSION
    output: OutputSettings = OutputSettings()
    alignment: AlignmentSettings = AlignmentSettings()
    debug: bool = False

    @classmethod
    def from_yaml(cls, path: Path | str | None = None) -> "EngineSettings":
        """Load settings from a YAML file."""
        if path is None:
            return cls()

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, encoding="utf-8") as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}

        return cls(**data)
