"""API description loading.

Two notations are accepted: RAML-style YAML (``title``, ``schemas`` and
``/resource`` keys) and OpenAPI 3 documents (an ``openapi`` key).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import yaml
from openapi_python_client.schema import OpenAPI
from pydantic import ValidationError

from .api_model import Action, ApiDescription, Body, Parameter, Resource, ResponseSpec
from .naming import path_segments
from .resolver import ResolveError, Resolver

_RESOURCE_PROPERTIES = frozenset(
    {"displayName", "description", "uriParameters", "baseUriParameters", "type", "is", "securedBy"}
)
_OPENAPI_METHODS: tuple[str, ...] = (
    "get",
    "put",
    "post",
    "delete",
    "options",
    "head",
    "patch",
    "trace",
)
_COMPONENT_SCHEMA_PREFIX = "#/components/schemas/"


class ApiDescriptionLoadError(RuntimeError):
    """Raised when a source API description cannot be loaded."""


class IncludedText(str):
    """Text pulled in with ``!include``, remembering the file it came from."""

    path: Path

    def __new__(cls, text: str, path: Path) -> IncludedText:
        value = super().__new__(cls, text)
        value.path = path
        return value


def load_api_description(path: Path) -> ApiDescription:
    """Load a RAML-style or OpenAPI 3 description from YAML."""
    loader = _include_loader(path.parent)
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.load(handle, Loader=loader)
    except OSError as exc:
        raise ApiDescriptionLoadError(f"Failed to read API description {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ApiDescriptionLoadError(f"Failed to parse YAML in {path}: {exc}") from exc

    if not isinstance(payload, dict):
        raise ApiDescriptionLoadError(
            f"API description must deserialize to a mapping, got {type(payload)!r}"
        )
    if "openapi" in payload:
        return _from_openapi(payload, source_path=path)
    return _from_raml(payload, source_path=path)


def _include_loader(base_dir: Path) -> type[yaml.SafeLoader]:
    class _IncludeLoader(yaml.SafeLoader):
        pass

    def _include(loader: yaml.SafeLoader, node: yaml.Node) -> IncludedText:
        if not isinstance(node, yaml.ScalarNode):
            raise ApiDescriptionLoadError(f"!include expects a file name at {node.start_mark}")
        included = base_dir / loader.construct_scalar(node)
        try:
            return IncludedText(included.read_text(encoding="utf-8"), included)
        except OSError as exc:
            raise ApiDescriptionLoadError(f"Failed to include {included}: {exc}") from exc

    _IncludeLoader.add_constructor("!include", _include)
    return _IncludeLoader


def _from_raml(payload: dict[str, Any], *, source_path: Path) -> ApiDescription:
    schemas: list[dict[str, str]] = []
    locations: dict[str, Path] = {}
    raw_schemas = payload.get("schemas") or []
    if isinstance(raw_schemas, dict):
        raw_schemas = [raw_schemas]
    if not isinstance(raw_schemas, list):
        raise ApiDescriptionLoadError("'schemas' must be a list of name to schema mappings")
    for entry in raw_schemas:
        if not isinstance(entry, dict):
            raise ApiDescriptionLoadError(f"Invalid schemas entry: {entry!r}")
        mapping: dict[str, str] = {}
        for name, schema in entry.items():
            mapping[str(name)] = str(schema)
            if isinstance(schema, IncludedText):
                locations.setdefault(str(name), schema.path)
        schemas.append(mapping)

    return ApiDescription(
        title=_string_or_none(payload.get("title")),
        version=_string_or_none(payload.get("version")),
        base_uri=_string_or_none(payload.get("baseUri")),
        schemas=schemas,
        schema_locations=locations,
        resources=[
            _raml_resource(key, node)
            for key, node in payload.items()
            if isinstance(key, str) and key.startswith("/")
        ],
        source_path=source_path,
    )


def _raml_resource(relative_uri: str, node: Any) -> Resource:
    node = node if isinstance(node, dict) else {}
    actions: list[Action] = []
    children: list[Resource] = []
    for key, value in node.items():
        if not isinstance(key, str):
            continue
        if key.startswith("/"):
            children.append(_raml_resource(key, value))
        elif key not in _RESOURCE_PROPERTIES and (value is None or isinstance(value, dict)):
            actions.append(_raml_action(key, value or {}))

    return Resource(
        relative_uri=relative_uri,
        display_name=_string_or_none(node.get("displayName")),
        description=_string_or_none(node.get("description")),
        uri_parameters=_raml_parameters(node.get("uriParameters")),
        actions=actions,
        resources=children,
    )


def _raml_action(verb: str, node: dict[str, Any]) -> Action:
    responses: list[ResponseSpec] = []
    raw_responses = node.get("responses")
    if isinstance(raw_responses, dict):
        for status, response in raw_responses.items():
            response = response if isinstance(response, dict) else {}
            responses.append(
                ResponseSpec(
                    status=str(status),
                    description=_string_or_none(response.get("description")),
                    bodies=_raml_bodies(response.get("body")),
                )
            )
    return Action(
        verb=verb,
        description=_string_or_none(node.get("description")),
        query_parameters=_raml_parameters(node.get("queryParameters")),
        headers=_raml_parameters(node.get("headers")),
        bodies=_raml_bodies(node.get("body")),
        responses=responses,
    )


def _raml_parameters(node: Any) -> list[Parameter]:
    if not isinstance(node, dict):
        return []
    parameters: list[Parameter] = []
    for name, spec in node.items():
        spec = spec if isinstance(spec, dict) else {}
        enum = spec.get("enum")
        parameters.append(
            Parameter(
                name=str(name),
                type=str(spec.get("type", "string")),
                required=bool(spec.get("required", False)),
                enum=[str(value) for value in enum] if isinstance(enum, list) else None,
                description=_string_or_none(spec.get("description")),
            )
        )
    return parameters


def _raml_bodies(node: Any) -> list[Body]:
    if not isinstance(node, dict):
        return []
    bodies: list[Body] = []
    for media_type, spec in node.items():
        schema = spec.get("schema") if isinstance(spec, dict) else None
        bodies.append(
            Body(media_type=str(media_type), schema_ref=str(schema) if schema else None)
        )
    return bodies


def _from_openapi(payload: dict[str, Any], *, source_path: Path) -> ApiDescription:
    try:
        OpenAPI.model_validate(payload)
    except ValidationError as exc:
        raise ApiDescriptionLoadError(
            f"OpenAPI schema validation failed for {source_path}: {exc}"
        ) from exc

    resolver = Resolver(payload)
    try:
        components = payload.get("components") or {}
        raw_schemas = components.get("schemas") or {}
        schemas = [
            {str(name): json.dumps(resolver.resolve_node(schema))}
            for name, schema in raw_schemas.items()
        ]
        tree: dict[str, dict[str, Any]] = {}
        raw_paths = payload.get("paths") or {}
        for path, path_item in raw_paths.items():
            if isinstance(path, str) and isinstance(path_item, dict):
                _add_openapi_path(tree, path, path_item, resolver)
    except ResolveError as exc:
        raise ApiDescriptionLoadError(f"Failed to resolve {source_path}: {exc}") from exc

    info = payload.get("info") or {}
    servers = payload.get("servers") or []
    return ApiDescription(
        title=_string_or_none(info.get("title")),
        version=_string_or_none(info.get("version")),
        base_uri=_string_or_none(servers[0].get("url")) if servers else None,
        schemas=schemas,
        resources=[_tree_to_resource(uri, node) for uri, node in tree.items()],
        source_path=source_path,
    )


def _add_openapi_path(
    tree: dict[str, dict[str, Any]],
    path: str,
    path_item: dict[str, Any],
    resolver: Resolver,
) -> None:
    segments = path_segments(path) or [""]
    node = tree.setdefault(f"/{segments[0]}", _new_tree_node())
    for segment in segments[1:]:
        node = node["children"].setdefault(f"/{segment}", _new_tree_node())

    shared_parameters = _openapi_parameters(path_item.get("parameters"), resolver)
    for method in _OPENAPI_METHODS:
        operation = path_item.get(method)
        if not isinstance(operation, dict):
            continue
        parameters = shared_parameters + _openapi_parameters(operation.get("parameters"), resolver)
        for location, parameter in parameters:
            if location == "path" and parameter.name not in node["uri_names"]:
                node["uri_names"].add(parameter.name)
                node["uri_parameters"].append(parameter)
        node["actions"].append(
            Action(
                verb=method,
                description=_string_or_none(
                    operation.get("summary") or operation.get("description")
                ),
                query_parameters=[p for location, p in parameters if location == "query"],
                headers=[p for location, p in parameters if location == "header"],
                bodies=_openapi_bodies(operation.get("requestBody"), resolver),
                responses=[
                    ResponseSpec(
                        status=str(status),
                        description=_string_or_none(
                            resolver.resolve_node(response).get("description")
                        ),
                        bodies=_openapi_bodies(response, resolver),
                    )
                    for status, response in (operation.get("responses") or {}).items()
                    if isinstance(response, dict)
                ],
            )
        )


def _new_tree_node() -> dict[str, Any]:
    return {"actions": [], "uri_parameters": [], "uri_names": set(), "children": {}}


def _tree_to_resource(relative_uri: str, node: dict[str, Any]) -> Resource:
    return Resource(
        relative_uri=relative_uri,
        uri_parameters=node["uri_parameters"],
        actions=node["actions"],
        resources=[_tree_to_resource(uri, child) for uri, child in node["children"].items()],
    )


def _openapi_parameters(node: Any, resolver: Resolver) -> list[tuple[str, Parameter]]:
    if not isinstance(node, list):
        return []
    parameters: list[tuple[str, Parameter]] = []
    for raw in node:
        parameter = resolver.resolve_node(raw)
        if not isinstance(parameter, dict) or not isinstance(parameter.get("name"), str):
            continue
        schema = parameter.get("schema") if isinstance(parameter.get("schema"), dict) else {}
        enum = schema.get("enum")
        parameters.append(
            (
                str(parameter.get("in", "query")),
                Parameter(
                    name=parameter["name"],
                    type=str(schema.get("type", "string")),
                    required=bool(parameter.get("required", False)),
                    enum=[str(value) for value in enum] if isinstance(enum, list) else None,
                    description=_string_or_none(parameter.get("description")),
                ),
            )
        )
    return parameters


def _openapi_bodies(node: Any, resolver: Resolver) -> list[Body]:
    if not isinstance(node, dict):
        return []
    if isinstance(node.get("$ref"), str):
        node = resolver.resolve_node(node)
    content = node.get("content")
    if not isinstance(content, dict):
        return []
    bodies: list[Body] = []
    for media_type, media in content.items():
        schema = media.get("schema") if isinstance(media, dict) else None
        bodies.append(
            Body(media_type=str(media_type), schema_ref=_openapi_schema_ref(schema, resolver))
        )
    return bodies


def _openapi_schema_ref(schema: Any, resolver: Resolver) -> Optional[str]:
    if not isinstance(schema, dict):
        return None
    ref = schema.get("$ref")
    if isinstance(ref, str) and ref.startswith(_COMPONENT_SCHEMA_PREFIX):
        return ref[len(_COMPONENT_SCHEMA_PREFIX) :]
    return json.dumps(resolver.resolve_node(schema))


def _string_or_none(value: Any) -> Optional[str]:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped:
            return stripped
    return None
