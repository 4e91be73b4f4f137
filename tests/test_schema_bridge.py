"""Tests for materializing value types from JSON schemas."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from rest_interface_generator.code_model import CodeModel, ValueTypeModule
from rest_interface_generator.model_types import AnnotationStyle, SchemaGenerationOptions
from rest_interface_generator.resolver import ResolveError, Resolver
from rest_interface_generator.schema_bridge import SchemaBridge, SchemaBridgeError

_PERSON_SCHEMA = {
    "type": "object",
    "properties": {"name": {"type": "string"}, "age": {"type": "integer"}},
    "required": ["name"],
}


def _bridge(options: SchemaGenerationOptions = SchemaGenerationOptions()) -> SchemaBridge:
    return SchemaBridge(CodeModel(), package="com.example.model", options=options)


def _write_schema(path: Path, schema: dict[str, Any]) -> Path:
    path.write_text(json.dumps(schema), encoding="utf-8")
    return path


def test_materialize_returns_model_package_reference(tmp_path: Path) -> None:
    """The type is named exactly as requested inside the model package."""
    code_model = CodeModel()
    bridge = SchemaBridge(
        code_model, package="com.example.model", options=SchemaGenerationOptions()
    )
    schema_path = _write_schema(tmp_path / "person.json", _PERSON_SCHEMA)

    ref = bridge.materialize("Foo", schema_path)

    assert ref.fully_qualified_name == "com.example.model.Foo"
    assert ref.module == "com.example.model.Foo"
    definition = code_model.package("com.example.model").get("Foo")
    assert isinstance(definition, ValueTypeModule)
    assert definition.section.root_class_name == "Foo"


def test_materialize_accepts_file_urls(tmp_path: Path) -> None:
    """file: URLs are read like paths."""
    schema_path = _write_schema(tmp_path / "person.json", _PERSON_SCHEMA)

    ref = _bridge().materialize("Person", schema_path.as_uri())

    assert ref.name == "Person"


def test_unreadable_location_is_reported(tmp_path: Path) -> None:
    """Missing files and remote URLs fail with SchemaBridgeError."""
    bridge = _bridge()

    with pytest.raises(SchemaBridgeError, match="Failed to read schema"):
        bridge.materialize("Missing", tmp_path / "missing.json")
    with pytest.raises(SchemaBridgeError, match="Unsupported schema location"):
        bridge.materialize("Remote", "https://example.com/schema.json")


def test_invalid_schemas_are_rejected() -> None:
    """Malformed text, non-mappings and invalid schemas fail with SchemaBridgeError."""
    bridge = _bridge()

    with pytest.raises(SchemaBridgeError, match="Failed to parse schema"):
        bridge.materialize_document("Broken", "{not: [valid")
    with pytest.raises(SchemaBridgeError, match="must deserialize to a mapping"):
        bridge.materialize_document("Listed", "[1, 2]")
    with pytest.raises(SchemaBridgeError, match="Invalid JSON schema"):
        bridge.materialize_document("Typed", '{"type": 12}')
    with pytest.raises(SchemaBridgeError, match="Invalid value type name"):
        bridge.materialize_document("not-a-name", json.dumps(_PERSON_SCHEMA))


def test_validation_can_be_disabled() -> None:
    """Schema checking is skipped when the options say so."""
    bridge = _bridge(SchemaGenerationOptions(validate_schemas=False))

    ref = bridge.materialize_document("Loose", '{"type": 12}')

    assert ref.name == "Loose"


def test_same_name_twice_is_an_error() -> None:
    """A schema name is materialized at most once per model package."""
    bridge = _bridge()
    bridge.materialize_document("Person", json.dumps(_PERSON_SCHEMA))

    with pytest.raises(SchemaBridgeError, match="already exists"):
        bridge.materialize_document("Person", json.dumps(_PERSON_SCHEMA))


def test_draft3_required_flags_are_understood() -> None:
    """Boolean required flags select draft 3 and mark fields as required."""
    code_model = CodeModel()
    bridge = SchemaBridge(code_model, package="legacy.model", options=SchemaGenerationOptions())
    schema = {
        "type": "object",
        "properties": {
            "name": {"type": "string", "required": True},
            "nickname": {"type": "string"},
        },
    }

    bridge.materialize_document("Legacy", json.dumps(schema))

    definition = code_model.package("legacy.model").get("Legacy")
    assert isinstance(definition, ValueTypeModule)
    fields = {field.name: field for field in definition.section.models[-1].fields}
    assert fields["name"].required
    assert not fields["nickname"].required


def test_relative_file_references_are_inlined(tmp_path: Path) -> None:
    """References to sibling files resolve against the schema's own location."""
    _write_schema(
        tmp_path / "address.json",
        {"type": "object", "properties": {"city": {"type": "string"}}},
    )
    schema_path = _write_schema(
        tmp_path / "customer.json",
        {"type": "object", "properties": {"address": {"$ref": "address.json"}}},
    )
    code_model = CodeModel()
    bridge = SchemaBridge(code_model, package="crm.model", options=SchemaGenerationOptions())

    bridge.materialize("Customer", schema_path)

    definition = code_model.package("crm.model").get("Customer")
    assert isinstance(definition, ValueTypeModule)
    assert [model.name for model in definition.section.models] == ["CustomerAddress", "Customer"]


def test_dataclass_style_is_recorded_on_the_section() -> None:
    """The annotation style of the run travels with each generated section."""
    code_model = CodeModel()
    bridge = SchemaBridge(
        code_model,
        package="crm.model",
        options=SchemaGenerationOptions(annotation_style=AnnotationStyle.DATACLASS),
    )

    bridge.materialize_document("Person", json.dumps(_PERSON_SCHEMA))

    definition = code_model.package("crm.model").get("Person")
    assert isinstance(definition, ValueTypeModule)
    assert definition.section.annotation_style is AnnotationStyle.DATACLASS


def test_resolver_keeps_recursive_references() -> None:
    """Cycles stop at the first repeated reference."""
    document = {
        "definitions": {
            "node": {
                "type": "object",
                "properties": {"child": {"$ref": "#/definitions/node"}},
            }
        },
        "$ref": "#/definitions/node",
    }

    resolved = Resolver(document).resolve_document()

    assert resolved["type"] == "object"
    assert resolved["properties"]["child"] == {"$ref": "#/definitions/node"}


def test_resolver_reports_unknown_pointers() -> None:
    """Dangling local references raise ResolveError."""
    with pytest.raises(ResolveError, match="Unresolvable reference"):
        Resolver({"$ref": "#/definitions/missing"}).resolve_document()
