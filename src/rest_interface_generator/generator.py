"""High-level generator orchestration."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .annotations import HttpMethodRegistry
from .api_model import Action, ApiDescription, Body, Parameter, Resource
from .code_model import InterfaceDef, MethodDef, TypeRef
from .config import Configuration
from .context import GenerationContext
from .identifiers import IdentifierAllocator
from .loader import load_api_description
from .naming import (
    class_name,
    path_parameter_name,
    path_segments,
    resource_interface_name,
    resource_method_name,
    snake_case,
)

logger = logging.getLogger(__name__)

_PARAMETER_TYPES: dict[str, type] = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": bool,
}
_SCHEMA_NAME_RE = re.compile(r"^[A-Za-z_][\w.-]*$")


@dataclass(frozen=True)
class GenerationRun:
    """Files written by one run and the problems that were skipped over."""

    generated_files: tuple[str, ...]
    warnings: tuple[str, ...]


def run_generation(
    *,
    input_path: Path,
    configuration: Configuration,
    http_methods: Optional[HttpMethodRegistry] = None,
) -> GenerationRun:
    """Generate resource protocols and value types from an API description.

    Args:
        input_path (Path): Path to the RAML-style or OpenAPI YAML description.
        configuration (Configuration): Output directory, base package and options.
        http_methods (Optional[HttpMethodRegistry]): Verb registry to share with
            other runs; a fresh one is used when omitted.

    Returns:
        GenerationRun: Sorted relative paths of generated files and warnings.
    """
    api = load_api_description(input_path)
    context = GenerationContext(configuration, api, http_methods=http_methods)
    warnings: list[str] = []
    schemas = _SchemaCatalog(context, api, warnings)

    for resource in api.resources:
        _generate_resource(context, schemas, resource)

    generated_files = tuple(sorted(context.emit()))
    for warning in warnings:
        logger.warning("%s", warning)
    return GenerationRun(generated_files=generated_files, warnings=tuple(warnings))


class _SchemaCatalog:
    """Materializes each schema once and hands out collision-free type names."""

    def __init__(
        self,
        context: GenerationContext,
        api: ApiDescription,
        warnings: list[str],
    ) -> None:
        self._context = context
        self._api = api
        self._warnings = warnings
        self._names = IdentifierAllocator()
        self._by_key: dict[str, TypeRef] = {}
        self._base_location = api.source_path

    def type_for(self, bodies: list[Body], *, hint: str) -> Optional[TypeRef]:
        for body in bodies:
            if body.schema_ref:
                return self._materialize(body.schema_ref.strip(), hint=hint)
        return None

    def _materialize(self, schema_ref: str, *, hint: str) -> Optional[TypeRef]:
        known = self._by_key.get(schema_ref)
        if known is not None:
            return known

        global_schema = self._context.find_global_schema(schema_ref)
        if global_schema is not None:
            type_name = self._names.allocate(class_name(schema_ref))
            location = self._api.schema_locations.get(schema_ref)
            if location is not None:
                type_ref = self._context.materialize_schema(type_name, location)
            else:
                type_ref = self._context.materialize_schema_document(
                    type_name, global_schema, base_location=self._base_location
                )
        elif _SCHEMA_NAME_RE.match(schema_ref):
            self._warnings.append(f"Unknown schema {schema_ref!r} referenced by {hint}")
            return None
        else:
            type_name = self._names.allocate(class_name(hint))
            type_ref = self._context.materialize_schema_document(
                type_name, schema_ref, base_location=self._base_location
            )

        self._by_key[schema_ref] = type_ref
        return type_ref


def _generate_resource(
    context: GenerationContext,
    schemas: _SchemaCatalog,
    resource: Resource,
) -> None:
    interface = context.create_resource_interface(
        resource_interface_name(resource.relative_uri, resource.display_name)
    )
    interface.docstring = resource.description or f"Resource {resource.relative_uri}."
    context.current_resource_interface = interface
    logger.info("Generating %s for %s", interface.name, resource.relative_uri)

    _generate_actions(
        context,
        schemas,
        interface,
        resource,
        relative_path="",
        uri_parameters=_uri_parameters(resource.relative_uri, resource.uri_parameters, {}),
    )
    context.current_resource_interface = None


def _generate_actions(
    context: GenerationContext,
    schemas: _SchemaCatalog,
    interface: InterfaceDef,
    resource: Resource,
    *,
    relative_path: str,
    uri_parameters: dict[str, Parameter],
) -> None:
    for action in resource.actions:
        _generate_method(context, schemas, interface, action, relative_path, uri_parameters)

    for child in resource.resources:
        _generate_actions(
            context,
            schemas,
            interface,
            child,
            relative_path=f"{relative_path}{child.relative_uri}",
            uri_parameters=_uri_parameters(
                child.relative_uri, child.uri_parameters, uri_parameters
            ),
        )


def _uri_parameters(
    relative_uri: str,
    declared: list[Parameter],
    inherited: dict[str, Parameter],
) -> dict[str, Parameter]:
    parameters = dict(inherited)
    by_name = {parameter.name: parameter for parameter in declared}
    for segment in path_segments(relative_uri):
        name = path_parameter_name(segment)
        if name is not None:
            parameters[name] = by_name.get(name, Parameter(name=name))
    return parameters


def _generate_method(
    context: GenerationContext,
    schemas: _SchemaCatalog,
    interface: InterfaceDef,
    action: Action,
    relative_path: str,
    uri_parameters: dict[str, Parameter],
) -> MethodDef:
    method_name = resource_method_name(action.verb, relative_path)
    hint = f"{interface.name} {method_name}"
    return_type = (
        context.response_wrapper_type() if action.responses else context.lookup_type(None)
    )
    method = context.create_resource_method(interface, method_name, return_type)

    for parameter in uri_parameters.values():
        method.param(snake_case(parameter.name), _parameter_type(context, parameter))

    entity_type = schemas.type_for(action.bodies, hint=f"{hint} body")
    if entity_type is not None:
        method.param("entity", entity_type)

    for parameter in action.query_parameters:
        if parameter.enum:
            type_ref = _parameter_enum(context, interface, parameter)
        else:
            type_ref = _parameter_type(context, parameter)
        method.param(snake_case(parameter.name), type_ref, required=parameter.required)
    for parameter in action.headers:
        method.param(
            snake_case(parameter.name),
            _parameter_type(context, parameter),
            required=parameter.required,
        )

    response_lines: list[str] = []
    for response in action.responses:
        response_type = schemas.type_for(response.bodies, hint=f"{hint} {response.status}")
        summary = str(response_type) if response_type is not None else response.description
        response_lines.append(f"    {response.status}: {summary or 'no content'}")
    method.docstring = _method_docstring(action, relative_path, response_lines)

    return context.add_http_method_annotation(action.verb, method)


def _parameter_type(context: GenerationContext, parameter: Parameter) -> TypeRef:
    return context.lookup_type(_PARAMETER_TYPES.get(parameter.type, str))


def _parameter_enum(
    context: GenerationContext,
    interface: InterfaceDef,
    parameter: Parameter,
) -> TypeRef:
    name = IdentifierAllocator(reserved=interface.enums).allocate(class_name(parameter.name))
    return context.create_resource_enum(interface, name, list(parameter.enum or [])).ref


def _method_docstring(action: Action, relative_path: str, response_lines: list[str]) -> str:
    lines = [action.description or f"{action.verb.upper()} {relative_path or '/'}"]
    if response_lines:
        lines.extend(["", "Responses:", *response_lines])
    return "\n".join(lines)


__all__ = ["GenerationRun", "run_generation"]
