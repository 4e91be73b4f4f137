"""Command line interface for REST interface generation."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from .annotations import HttpMethodAnnotationError
from .config import Configuration, ConfigurationError, ProtocolVersion
from .context import GenerationContextError
from .generator import run_generation
from .loader import ApiDescriptionLoadError
from .model_types import AnnotationStyle
from .schema_bridge import SchemaBridgeError
from .writer import WriteError

_GENERATION_ERRORS = (
    ApiDescriptionLoadError,
    ConfigurationError,
    GenerationContextError,
    HttpMethodAnnotationError,
    SchemaBridgeError,
    WriteError,
)


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    parser = argparse.ArgumentParser(
        prog="rest-interface-generator",
        description="Generate typed resource protocols and value types from a REST API description",
    )
    parser.add_argument("--input", required=True, help="Path to a RAML-style or OpenAPI YAML file")
    parser.add_argument("--output", required=True, help="Output directory for generated packages")
    parser.add_argument(
        "--base-package",
        required=True,
        help="Dotted package that receives the resource, model and support packages",
    )
    parser.add_argument(
        "--protocol-version",
        choices=[version.value for version in ProtocolVersion],
        default=ProtocolVersion.V2.value,
        help="Flavor of the generated ResponseWrapper",
    )
    parser.add_argument(
        "--annotation-style",
        choices=[style.value for style in AnnotationStyle],
        default=AnnotationStyle.PYDANTIC.value,
        help="Generate value types as pydantic models or dataclasses",
    )
    parser.add_argument(
        "--format",
        action="store_true",
        help="Run ruff format over the generated files",
    )
    parser.add_argument("--verbose", action="store_true", help="Log generation progress")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Run CLI and return process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        configuration = Configuration(
            output_directory=Path(args.output),
            base_package_name=args.base_package,
            protocol_version=ProtocolVersion(args.protocol_version),
            annotation_style=AnnotationStyle(args.annotation_style),
            format_output=bool(args.format),
        )
    except ValidationError as exc:
        parser.error(str(exc))
        return 2

    try:
        run = run_generation(input_path=Path(args.input), configuration=configuration)
    except _GENERATION_ERRORS as exc:
        parser.error(str(exc))
        return 2

    for warning in run.warnings:
        print(f"Warning: {warning}")
    for relative_path in run.generated_files:
        print(relative_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
