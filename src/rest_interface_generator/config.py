"""Run configuration for the generator."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator

from .model_types import AnnotationStyle, SchemaGenerationOptions
from .naming import is_dotted_identifier


class ConfigurationError(ValueError):
    """Raised when required generation inputs are missing or invalid."""


class ProtocolVersion(str, Enum):
    """Selects the response wrapper template flavour."""

    V1 = "v1"
    V2 = "v2"


class Configuration(BaseModel):
    """Settings shared by every component of one generation run."""

    model_config = ConfigDict(frozen=True)

    output_directory: Path
    base_package_name: str
    protocol_version: ProtocolVersion = ProtocolVersion.V2
    annotation_style: AnnotationStyle = AnnotationStyle.PYDANTIC
    format_output: bool = False
    validate_schemas: bool = True

    @field_validator("base_package_name")
    @classmethod
    def _check_base_package_name(cls, value: str) -> str:
        if not is_dotted_identifier(value):
            raise ValueError(f"base package name must be dotted identifiers, got {value!r}")
        return value

    @property
    def resource_package(self) -> str:
        return f"{self.base_package_name}.resource"

    @property
    def model_package(self) -> str:
        return f"{self.base_package_name}.model"

    @property
    def support_package(self) -> str:
        return f"{self.base_package_name}.support"

    def schema_generation_options(self) -> SchemaGenerationOptions:
        """Options for the schema-to-type mapper of this run."""
        return SchemaGenerationOptions(
            annotation_style=self.annotation_style,
            validate_schemas=self.validate_schemas,
        )
