"""Generate typed Python resource protocols from REST API descriptions."""

from __future__ import annotations

from .annotations import HttpMethodRegistry
from .cli import main
from .config import Configuration, ProtocolVersion
from .context import GenerationContext
from .generator import GenerationRun, run_generation
from .model_types import AnnotationStyle

__all__ = [
    "AnnotationStyle",
    "Configuration",
    "GenerationContext",
    "GenerationRun",
    "HttpMethodRegistry",
    "ProtocolVersion",
    "main",
    "run_generation",
]
