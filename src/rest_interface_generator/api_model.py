"""Parsed API description consumed by the generator."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Parameter(BaseModel):
    """A URI, query or header parameter."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str = "string"
    required: bool = False
    enum: Optional[list[str]] = None
    description: Optional[str] = None


class Body(BaseModel):
    """One media type of a request or response body.

    ``schema_ref`` holds either the name of a global schema or inline schema
    text.
    """

    model_config = ConfigDict(frozen=True)

    media_type: str
    schema_ref: Optional[str] = None


class ResponseSpec(BaseModel):
    """A declared response of an action."""

    model_config = ConfigDict(frozen=True)

    status: str
    description: Optional[str] = None
    bodies: list[Body] = Field(default_factory=list)


class Action(BaseModel):
    """An HTTP method on a resource."""

    model_config = ConfigDict(frozen=True)

    verb: str
    description: Optional[str] = None
    query_parameters: list[Parameter] = Field(default_factory=list)
    headers: list[Parameter] = Field(default_factory=list)
    bodies: list[Body] = Field(default_factory=list)
    responses: list[ResponseSpec] = Field(default_factory=list)


class Resource(BaseModel):
    """A resource path with its actions and nested resources."""

    model_config = ConfigDict(frozen=True)

    relative_uri: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    uri_parameters: list[Parameter] = Field(default_factory=list)
    actions: list[Action] = Field(default_factory=list)
    resources: list[Resource] = Field(default_factory=list)


class ApiDescription(BaseModel):
    """Root of a parsed API description."""

    model_config = ConfigDict(frozen=True)

    title: Optional[str] = None
    version: Optional[str] = None
    base_uri: Optional[str] = None
    schemas: list[dict[str, str]] = Field(default_factory=list)
    schema_locations: dict[str, Path] = Field(default_factory=dict)
    resources: list[Resource] = Field(default_factory=list)
    source_path: Optional[Path] = None
