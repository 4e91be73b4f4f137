"""Definitions of value types produced from JSON schemas."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, TypeAlias, Union

# Defaults and metadata copied out of schemas.
SchemaValue: TypeAlias = Union[str, int, float, bool, None, list[Any], Mapping[str, Any]]


class AnnotationStyle(str, Enum):
    """How generated value types are declared."""

    PYDANTIC = "pydantic"
    DATACLASS = "dataclass"


@dataclass(frozen=True)
class SchemaGenerationOptions:
    """Options the schema-to-type mapper is configured with once per run."""

    annotation_style: AnnotationStyle = AnnotationStyle.PYDANTIC
    include_docstrings: bool = True
    include_field_metadata: bool = True
    validate_schemas: bool = True


@dataclass(frozen=True)
class FieldDef:
    """A single field of a generated value type."""

    name: str
    source_name: str
    annotation: str
    required: bool
    default: Optional[SchemaValue]
    metadata: dict[str, SchemaValue] = field(default_factory=dict)


@dataclass(frozen=True)
class ModelDef:
    """A generated value type class, or a type alias when ``is_root``."""

    name: str
    is_root: bool
    root_annotation: Optional[str]
    fields: tuple[FieldDef, ...]
    docstring: Optional[str]
    title: Optional[str]
    extra_behavior: Optional[str]


@dataclass(frozen=True)
class ValueTypeSection:
    """All classes generated for one named schema, root class last."""

    root_class_name: str
    models: tuple[ModelDef, ...]
    annotation_style: AnnotationStyle
