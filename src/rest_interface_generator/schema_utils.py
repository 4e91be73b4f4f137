"""Shared helpers for JSON-Schema shape operations."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Optional


def is_object_schema(schema: dict[str, Any]) -> bool:
    """Return whether a schema behaves as an object schema.

    Args:
        schema (dict[str, Any]): Schema node to inspect.

    Returns:
        bool: Whether object modeling rules should apply.
    """
    if schema.get("type") == "object":
        return True
    if isinstance(schema.get("properties"), dict):
        return True
    all_of = schema.get("allOf")
    if isinstance(all_of, list) and all_of:
        return all(isinstance(item, dict) and is_object_schema(item) for item in all_of)
    return False


def required_property_names(schema: dict[str, Any]) -> set[str]:
    """Collect required property names from draft-4 and draft-3 style schemas.

    Draft 4 lists names in a ``required`` array on the object; draft 3 marks
    each property schema with ``required: true``.
    """
    names: set[str] = set()
    required = schema.get("required")
    if isinstance(required, list):
        names.update(name for name in required if isinstance(name, str))
    properties = schema.get("properties")
    if isinstance(properties, dict):
        for name, prop in properties.items():
            if isinstance(prop, dict) and prop.get("required") is True:
                names.add(name)
    return names


def normalize_nullable(schema: dict[str, Any]) -> dict[str, Any]:
    """Rewrite ``nullable: true`` into a ``null`` member of the type."""
    if schema.get("nullable") is not True:
        return schema
    schema = deepcopy(schema)
    schema.pop("nullable", None)
    schema_type = schema.get("type")
    if isinstance(schema_type, str):
        schema["type"] = [schema_type, "null"]
    elif isinstance(schema_type, list):
        if "null" not in schema_type:
            schema_type.append("null")
    else:
        original = deepcopy(schema)
        schema.clear()
        schema["anyOf"] = [original, {"type": "null"}]
    return schema


def merge_all_of_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Merge an object-only ``allOf`` chain into one object schema when possible.

    Args:
        schema (dict[str, Any]): Schema that may contain an ``allOf`` chain.

    Returns:
        dict[str, Any]: Merged object schema, or the original schema shape.
    """
    all_of = schema.get("allOf")
    if not isinstance(all_of, list) or not all_of:
        return schema

    children = _mergeable_children(all_of)
    if children is None:
        return schema

    merged: dict[str, Any] = {key: value for key, value in schema.items() if key != "allOf"}
    properties: dict[str, Any] = dict(merged.get("properties") or {})
    required = required_property_names(merged)
    additional_properties: Optional[Any] = merged.get("additionalProperties")
    for child in children:
        child_properties = child.get("properties")
        if isinstance(child_properties, dict):
            properties.update(deepcopy(child_properties))
        required.update(required_property_names(child))
        if child.get("additionalProperties") is False:
            additional_properties = False

    merged["type"] = "object"
    merged["properties"] = properties
    if required:
        merged["required"] = sorted(required)
    if additional_properties is not None:
        merged["additionalProperties"] = additional_properties
    return merged


def _mergeable_children(all_of: list[Any]) -> Optional[list[dict[str, Any]]]:
    children: list[dict[str, Any]] = []
    for item in all_of:
        if not isinstance(item, dict):
            return None
        child = merge_all_of_schema(normalize_nullable(deepcopy(item)))
        if not is_object_schema(child):
            return None
        children.append(child)
    return children
