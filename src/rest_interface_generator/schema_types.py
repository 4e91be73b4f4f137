"""Map JSON schemas onto value type definitions."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, RootModel

from .identifiers import IdentifierAllocator
from .model_types import (
    AnnotationStyle,
    FieldDef,
    ModelDef,
    SchemaGenerationOptions,
    ValueTypeSection,
)
from .naming import class_name, snake_case
from .schema_utils import (
    is_object_schema,
    merge_all_of_schema,
    normalize_nullable,
    required_property_names,
)

_PYDANTIC_RESERVED = set(dir(BaseModel)) | set(dir(RootModel))
_BUILTIN_RESERVED = {
    "bool",
    "bytes",
    "dict",
    "float",
    "int",
    "list",
    "set",
    "str",
    "tuple",
    "type",
}
_FIELD_METADATA_KEYS = ("title", "description", "examples", "deprecated")
_PRIMITIVE_ANNOTATIONS = {
    "string": "str",
    "integer": "int",
    "number": "float",
    "boolean": "bool",
    "null": "None",
}
_ANY_JSON_ANNOTATION = (
    "Union[str, int, float, bool, None, list[Any], dict[str, Any]]"
)


@dataclass
class _ModuleContext:
    class_names: IdentifierAllocator
    models: list[ModelDef] = field(default_factory=list)


class ValueTypeMapper:
    """Build the value type classes for one schema at a time."""

    def __init__(self, options: SchemaGenerationOptions) -> None:
        self._options = options

    @property
    def options(self) -> SchemaGenerationOptions:
        return self._options

    def build(self, *, type_name: str, schema: dict[str, Any]) -> ValueTypeSection:
        """Convert a resolved schema into classes rooted at ``type_name``.

        Args:
            type_name (str): Name of the root class; used verbatim.
            schema (dict[str, Any]): Schema with local references inlined.

        Returns:
            ValueTypeSection: Root class and the helper classes it needs.
        """
        context = _ModuleContext(class_names=IdentifierAllocator(reserved=(type_name,)))
        normalized = normalize_nullable(deepcopy(schema))

        if is_object_schema(normalized):
            self._build_object_model(model_name=type_name, schema=normalized, context=context)
        else:
            annotation = self._annotation(
                schema=normalized,
                hint=f"{type_name}Item",
                context=context,
            )
            context.models.append(
                ModelDef(
                    name=type_name,
                    is_root=True,
                    root_annotation=annotation,
                    fields=(),
                    docstring=self._docstring(normalized),
                    title=_string_or_none(normalized.get("title")),
                    extra_behavior=None,
                )
            )

        return ValueTypeSection(
            root_class_name=type_name,
            models=tuple(context.models),
            annotation_style=self._options.annotation_style,
        )

    def _build_object_model(
        self,
        *,
        model_name: str,
        schema: dict[str, Any],
        context: _ModuleContext,
    ) -> str:
        merged = merge_all_of_schema(schema)
        properties = merged.get("properties")
        if not isinstance(properties, dict):
            properties = {}
        required_names = required_property_names(merged)

        field_names = IdentifierAllocator()
        fields: list[FieldDef] = []
        for source_name, raw_property in properties.items():
            if not isinstance(source_name, str) or not isinstance(raw_property, dict):
                continue
            property_schema = normalize_nullable(deepcopy(raw_property))
            required = source_name in required_names
            annotation = self._annotation(
                schema=property_schema,
                hint=f"{model_name} {source_name}",
                context=context,
            )
            default = None if required else deepcopy(property_schema.get("default"))
            fields.append(
                FieldDef(
                    name=field_names.allocate(self._field_name(source_name)),
                    source_name=source_name,
                    annotation=annotation if required else _optional(annotation),
                    required=required,
                    default=default,
                    metadata=self._field_metadata(property_schema),
                )
            )

        additional_properties = merged.get("additionalProperties")
        context.models.append(
            ModelDef(
                name=model_name,
                is_root=False,
                root_annotation=None,
                fields=tuple(fields),
                docstring=self._docstring(merged),
                title=_string_or_none(merged.get("title")),
                extra_behavior="forbid" if additional_properties is False else "allow",
            )
        )
        return model_name

    def _annotation(
        self,
        *,
        schema: dict[str, Any],
        hint: str,
        context: _ModuleContext,
    ) -> str:
        if "const" in schema:
            return f"Literal[{schema['const']!r}]"

        enum = schema.get("enum")
        if isinstance(enum, list) and enum:
            return f"Literal[{', '.join(repr(value) for value in enum)}]"

        for keyword in ("oneOf", "anyOf"):
            options = schema.get(keyword)
            if isinstance(options, list) and options:
                return _union(
                    [
                        self._annotation(
                            schema=normalize_nullable(deepcopy(option))
                            if isinstance(option, dict)
                            else {},
                            hint=f"{hint} option{index + 1}",
                            context=context,
                        )
                        for index, option in enumerate(options)
                    ]
                )

        if isinstance(schema.get("allOf"), list):
            merged = merge_all_of_schema(schema)
            if is_object_schema(merged):
                return self._nested_model(hint=hint, schema=merged, context=context)
            return _ANY_JSON_ANNOTATION

        schema_type = schema.get("type")
        if isinstance(schema_type, list):
            return _union(
                [
                    self._annotation(
                        schema={**schema, "type": member}
                        if member in ("object", "array")
                        else {"type": member},
                        hint=hint,
                        context=context,
                    )
                    for member in schema_type
                    if isinstance(member, str)
                ]
            )

        if schema_type == "array":
            items = schema.get("items")
            item_schema = normalize_nullable(deepcopy(items)) if isinstance(items, dict) else {}
            item_annotation = self._annotation(
                schema=item_schema,
                hint=f"{hint} item",
                context=context,
            )
            return f"list[{item_annotation}]"

        if schema_type == "object" or is_object_schema(schema):
            if isinstance(schema.get("properties"), dict):
                return self._nested_model(hint=hint, schema=schema, context=context)
            additional = schema.get("additionalProperties")
            if isinstance(additional, dict):
                value_annotation = self._annotation(
                    schema=normalize_nullable(deepcopy(additional)),
                    hint=f"{hint} value",
                    context=context,
                )
                return f"dict[str, {value_annotation}]"
            return "dict[str, Any]"

        if isinstance(schema_type, str) and schema_type in _PRIMITIVE_ANNOTATIONS:
            return _PRIMITIVE_ANNOTATIONS[schema_type]

        if schema_type == "any" or "$ref" in schema:
            # Recursive references stay as refs after inlining.
            return "Any"

        return _ANY_JSON_ANNOTATION

    def _nested_model(self, *, hint: str, schema: dict[str, Any], context: _ModuleContext) -> str:
        name = context.class_names.allocate(class_name(hint))
        return self._build_object_model(model_name=name, schema=schema, context=context)

    def _field_name(self, source_name: str) -> str:
        candidate = snake_case(source_name)
        reserved = set(_BUILTIN_RESERVED)
        if self._options.annotation_style is AnnotationStyle.PYDANTIC:
            reserved |= _PYDANTIC_RESERVED
        if candidate in reserved:
            candidate = f"{candidate}_field"
        return candidate

    def _field_metadata(self, schema: dict[str, Any]) -> dict[str, Any]:
        if not self._options.include_field_metadata:
            return {}
        metadata = {key: deepcopy(schema[key]) for key in _FIELD_METADATA_KEYS if key in schema}
        if "example" in schema and "examples" not in metadata:
            metadata["examples"] = [deepcopy(schema["example"])]
        return metadata

    def _docstring(self, schema: dict[str, Any]) -> Optional[str]:
        if not self._options.include_docstrings:
            return None
        return _string_or_none(schema.get("description"))


def _optional(annotation: str) -> str:
    if annotation in ("None", "Any") or annotation.startswith("Optional["):
        return annotation
    return f"Optional[{annotation}]"


def _union(annotations: list[str]) -> str:
    members: list[str] = []
    for annotation in annotations:
        if annotation not in members:
            members.append(annotation)
    if not members:
        return _ANY_JSON_ANNOTATION
    nullable = "None" in members
    members = [member for member in members if member != "None"]
    if not members:
        return "None"
    joined = members[0] if len(members) == 1 else f"Union[{', '.join(members)}]"
    return f"Optional[{joined}]" if nullable else joined


def _string_or_none(value: Any) -> Optional[str]:
    return value.strip() if isinstance(value, str) and value.strip() else None
