"""Bridge from named JSON schemas to generated value types."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional, TypeAlias, Union
from urllib.parse import unquote, urlparse

import yaml
from jsonschema.exceptions import SchemaError
from jsonschema.validators import Draft3Validator, Draft202012Validator, validator_for

from .code_model import CodeModel, TypeAlreadyExistsError, TypeRef
from .model_types import SchemaGenerationOptions
from .naming import is_identifier
from .resolver import ResolveError, Resolver
from .schema_types import ValueTypeMapper

logger = logging.getLogger(__name__)

SchemaLocation: TypeAlias = Union[Path, str]


class SchemaBridgeError(RuntimeError):
    """Raised when a schema cannot be read, validated or turned into types."""


class SchemaBridge:
    """Materialize value types for named schemas into one package of the model."""

    def __init__(
        self,
        code_model: CodeModel,
        *,
        package: str,
        options: SchemaGenerationOptions,
    ) -> None:
        self._code_model = code_model
        self._package = package
        self._mapper = ValueTypeMapper(options)

    @property
    def package(self) -> str:
        return self._package

    def materialize(self, type_name: str, schema_location: SchemaLocation) -> TypeRef:
        """Generate ``type_name`` from the schema stored at ``schema_location``.

        Args:
            type_name (str): Name of the root value type.
            schema_location (SchemaLocation): Filesystem path or ``file:`` URL.

        Returns:
            TypeRef: Reference to ``<package>.<type_name>``.
        """
        path = _location_to_path(schema_location)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SchemaBridgeError(f"Failed to read schema {schema_location}: {exc}") from exc
        return self.materialize_document(type_name, text, base_location=path)

    def materialize_document(
        self,
        type_name: str,
        document: Union[str, Mapping[str, Any]],
        *,
        base_location: Optional[Path] = None,
    ) -> TypeRef:
        """Generate ``type_name`` from schema text or an already parsed schema.

        Args:
            type_name (str): Name of the root value type.
            document (Union[str, Mapping[str, Any]]): JSON/YAML text or mapping.
            base_location (Optional[Path]): Location relative file references
                are resolved against.

        Returns:
            TypeRef: Reference to ``<package>.<type_name>``.
        """
        if not is_identifier(type_name):
            raise SchemaBridgeError(f"Invalid value type name: {type_name!r}")

        schema = _parse_schema(document, type_name=type_name)
        if self._mapper.options.validate_schemas:
            _check_schema(schema, type_name=type_name)
        try:
            resolved = Resolver(schema, base_path=base_location).resolve_document()
        except ResolveError as exc:
            raise SchemaBridgeError(f"Failed to resolve schema for {type_name}: {exc}") from exc

        section = self._mapper.build(type_name=type_name, schema=resolved)
        try:
            self._code_model.package(self._package).define_value_types(type_name, section)
        except TypeAlreadyExistsError as exc:
            raise SchemaBridgeError(str(exc)) from exc
        logger.debug(
            "Materialized %s.%s with %d class(es)", self._package, type_name, len(section.models)
        )
        return self._code_model.direct_class(f"{self._package}.{type_name}")


def _location_to_path(location: SchemaLocation) -> Path:
    if isinstance(location, Path):
        return location
    parsed = urlparse(location)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    if parsed.scheme and len(parsed.scheme) > 1:
        raise SchemaBridgeError(f"Unsupported schema location: {location}")
    return Path(location)


def _parse_schema(document: Union[str, Mapping[str, Any]], *, type_name: str) -> dict[str, Any]:
    if isinstance(document, Mapping):
        return dict(document)
    try:
        payload = yaml.safe_load(document)
    except yaml.YAMLError as exc:
        raise SchemaBridgeError(f"Failed to parse schema for {type_name}: {exc}") from exc
    if not isinstance(payload, dict):
        raise SchemaBridgeError(
            f"Schema for {type_name} must deserialize to a mapping, got {type(payload)!r}"
        )
    return payload


def _check_schema(schema: dict[str, Any], *, type_name: str) -> None:
    try:
        validator_for(schema, default=_default_validator(schema)).check_schema(schema)
    except SchemaError as exc:
        raise SchemaBridgeError(f"Invalid JSON schema for {type_name}: {exc.message}") from exc


def _default_validator(schema: dict[str, Any]) -> Any:
    # Schemas without $schema that mark properties with `required: true` are draft 3.
    properties = schema.get("properties")
    if isinstance(properties, dict) and any(
        isinstance(prop, dict) and isinstance(prop.get("required"), bool)
        for prop in properties.values()
    ):
        return Draft3Validator
    return Draft202012Validator
