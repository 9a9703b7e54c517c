"""Command-line entry point: read input datasets, write a directives file."""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError

from .config import CONFIG_ENV_VAR, EngineSettings
from .core.align import align_anchors
from .core.directives import generate_directives
from .core.errors import DirectiveEngineError
from .core.validate import validate_inputs

logger = logging.getLogger(__name__)


def _read_json(path: str) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(text + "\n")


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="directive-engine",
        description="Generate field correction directives from nominal and as-built poses",
    )
    parser.add_argument("--nominal", type=str, required=True, help="Path to nominal poses JSON")
    parser.add_argument("--asbuilt", type=str, required=True, help="Path to as-built poses JSON")
    parser.add_argument(
        "--constraints", type=str, required=True, help="Path to constraints JSON"
    )
    parser.add_argument("--out", type=str, help="Output path (default: out/directives.json)")
    parser.add_argument("--anchors", type=str, help="Path to anchor survey JSON to align")
    parser.add_argument(
        "--config", type=str, help=f"Path to config.yaml (or set {CONFIG_ENV_VAR})"
    )
    parser.add_argument("--generated-at", type=str, help="Override the generated_at timestamp")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def run(args: argparse.Namespace, settings: EngineSettings) -> Path:
    nominal, as_built, constraints = validate_inputs(
        _read_json(args.nominal),
        _read_json(args.asbuilt),
        _read_json(args.constraints),
    )
    logger.info(
        f"Loaded dataset {nominal.dataset_id}: {len(nominal.parts)} nominal parts, "
        f"{len(as_built.parts)} as-built poses, {len(constraints.parts)} constraints"
    )

    output = generate_directives(
        nominal,
        as_built,
        constraints,
        nominal_path=args.nominal,
        as_built_path=args.asbuilt,
        constraints_path=args.constraints,
        engine_version=settings.engine_version,
        generated_at=args.generated_at,
    )
    counts = ", ".join(f"{k}={v}" for k, v in output.summary.counts_by_status.items())
    logger.info(f"Generated {len(output.steps)} steps ({counts})")

    out_path = Path(args.out or settings.output.path)
    _write_text(out_path, output.to_json(indent=settings.output.indent))
    logger.info(f"Wrote {out_path}")

    if args.anchors:
        result = align_anchors(
            _read_json(args.anchors),
            max_iterations=settings.alignment.max_iterations,
            convergence=settings.alignment.convergence_threshold,
        )
        logger.info(
            f"Aligned {len(result.residuals_mm)} anchors: rms={result.rms_mm:.3f}mm "
            f"(baseline {result.baseline_rms_mm:.3f}mm)"
        )
        alignment_path = out_path.with_name("alignment.json")
        _write_text(
            alignment_path,
            result.model_dump_json(indent=settings.output.indent, exclude_none=True),
        )
        logger.info(f"Wrote {alignment_path}")

    return out_path


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv()

    try:
        settings = EngineSettings.from_yaml(args.config or os.environ.get(CONFIG_ENV_VAR))
    except (OSError, yaml.YAMLError, PydanticValidationError) as e:
        _configure_logging(args.debug)
        logger.error(f"Failed to load config: {e}")
        return 1

    _configure_logging(args.debug or settings.debug)

    try:
        run(args, settings)
    except (DirectiveEngineError, PydanticValidationError, OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to generate directives: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
