"""Filesystem writers for the generated module tree."""

from __future__ import annotations

import logging
import subprocess
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import TextIO

from .code_model import AnnotationTypeDef, CodeModel, InterfaceDef, TopLevelDef, ValueTypeModule
from .codegen_ast import (
    render_annotation_module,
    render_interface_module,
    render_package_init,
    render_value_type_module,
)
from .naming import package_path

logger = logging.getLogger(__name__)


class WriteError(RuntimeError):
    """Raised when output files cannot be written."""


def build_code_model(model: CodeModel, output_dir: Path, report: TextIO) -> None:
    """Write every module of the output model below ``output_dir``.

    Each written file is reported on ``report`` as one line holding its path
    relative to ``output_dir`` with ``/`` separators.

    Args:
        model (CodeModel): Output model to serialize.
        output_dir (Path): Root output directory; created when missing.
        report (TextIO): Stream receiving the written paths.
    """
    written: set[str] = set()
    for package in model.packages.values():
        if not package.types:
            continue
        for relative in write_package_inits(output_dir, package.name, written):
            report.write(f"{relative}\n")
        for definition in package.types.values():
            relative = f"{package_path(package.name)}/{definition.name}.py"
            write_text_file(output_dir / relative, _render(definition))
            report.write(f"{relative}\n")
            logger.debug("Wrote %s", relative)


def format_generated_files(*, output_dir: Path, relative_paths: Iterable[str]) -> None:
    """Run the Ruff formatter against generated files.

    Args:
        output_dir (Path): Root output directory.
        relative_paths (Iterable[str]): Files to format, relative to ``output_dir``.
    """
    paths = sorted(str(output_dir / relative) for relative in relative_paths)
    if not paths:
        return
    command = [sys.executable, "-m", "ruff", "format", *paths]
    try:
        subprocess.run(command, check=True, capture_output=True, text=True)
    except OSError as exc:
        raise WriteError(f"Failed to execute ruff format for {output_dir}: {exc}") from exc
    except subprocess.CalledProcessError as exc:
        error_text = exc.stderr.strip() or exc.stdout.strip() or str(exc)
        raise WriteError(f"ruff format failed for {output_dir}: {error_text}") from exc


def write_package_inits(output_dir: Path, package: str, written: set[str]) -> list[str]:
    """Write the ``__init__.py`` of ``package`` and of every parent package.

    Paths already in ``written`` are skipped; new ones are added to it and returned.
    """
    created: list[str] = []
    for init_package in _package_chain(package):
        relative = f"{package_path(init_package)}/__init__.py"
        if relative in written:
            continue
        written.add(relative)
        write_text_file(output_dir / relative, render_package_init(init_package))
        created.append(relative)
    return created


def write_text_file(path: Path, content: str) -> None:
    """Write ``content`` to ``path``, creating parent directories."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise WriteError(f"Failed to write file {path}: {exc}") from exc


def _render(definition: TopLevelDef) -> str:
    if isinstance(definition, InterfaceDef):
        return render_interface_module(definition)
    if isinstance(definition, AnnotationTypeDef):
        return render_annotation_module(definition)
    if isinstance(definition, ValueTypeModule):
        return render_value_type_module(definition)
    raise TypeError(f"Unsupported definition: {definition!r}")


def _package_chain(package: str) -> list[str]:
    parts = package.split(".")
    return [".".join(parts[: index + 1]) for index in range(len(parts))]
