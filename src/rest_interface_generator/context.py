"""Generation state shared by every step of one run.

``GenerationContext`` owns the output model and everything that must stay
consistent while the API description is walked: interface and method names,
HTTP verb annotations, schema-derived value types and whether the response
wrapper support module is needed. ``emit()`` writes it all out once.
"""

from __future__ import annotations

import io
import logging
from importlib import resources
from pathlib import Path
from typing import Any, Optional

from .annotations import CustomVerb, HttpMethodAnnotationError, HttpMethodRegistry, StandardVerb
from .api_model import ApiDescription
from .code_model import AnnotationTypeDef, CodeModel, EnumDef, InterfaceDef, MethodDef, TypeRef
from .config import Configuration, ConfigurationError
from .identifiers import IdentifierAllocator
from .naming import is_identifier, package_path
from .schema_bridge import SchemaBridge, SchemaLocation
from .writer import (
    WriteError,
    build_code_model,
    format_generated_files,
    write_package_inits,
    write_text_file,
)

logger = logging.getLogger(__name__)

RESPONSE_WRAPPER_NAME = "ResponseWrapper"
SUPPORT_PACKAGE_PLACEHOLDER = "${codegen.support.package}"

_PRIMITIVE_TYPES: dict[type, str] = {
    bool: "bool",
    bytes: "bytes",
    complex: "complex",
    float: "float",
    int: "int",
    str: "str",
    type(None): "None",
}


class GenerationContextError(RuntimeError):
    """Raised when the context is driven with inconsistent inputs."""


class GenerationContext:
    """Coordinator of one generation run."""

    def __init__(
        self,
        configuration: Optional[Configuration],
        api: Optional[ApiDescription],
        *,
        http_methods: Optional[HttpMethodRegistry] = None,
    ) -> None:
        if configuration is None:
            raise ConfigurationError("configuration can't be None")
        if api is None:
            raise ConfigurationError("api description can't be None")

        self.configuration = configuration
        self.api = api
        self.code_model = CodeModel()
        self.current_resource_interface: Optional[InterfaceDef] = None

        self._http_methods = http_methods if http_methods is not None else HttpMethodRegistry()
        self._interface_names = IdentifierAllocator()
        self._method_names: dict[str, IdentifierAllocator] = {}
        self._schema_bridge = SchemaBridge(
            self.code_model,
            package=configuration.model_package,
            options=configuration.schema_generation_options(),
        )
        self._response_wrapper_requested = False

    @property
    def http_methods(self) -> HttpMethodRegistry:
        return self._http_methods

    def create_resource_interface(self, name: str) -> InterfaceDef:
        """Define a resource protocol under a run-unique name."""
        if not is_identifier(name):
            raise GenerationContextError(f"Invalid resource interface name: {name!r}")
        actual_name = self._interface_names.allocate(name)
        package = self.code_model.package(self.configuration.resource_package)
        interface = package.define_interface(actual_name)
        self._method_names[actual_name] = IdentifierAllocator()
        if actual_name != name:
            logger.debug("Resource interface %s renamed to %s", name, actual_name)
        return interface

    def create_resource_method(
        self,
        interface: InterfaceDef,
        name: str,
        return_type: TypeRef,
    ) -> MethodDef:
        """Add a method whose name is unique among the interface's methods."""
        method_names = self._method_names.get(interface.name)
        if method_names is None:
            raise GenerationContextError(
                f"Resource interface {interface.name} was not created by this context"
            )
        if not is_identifier(name):
            raise GenerationContextError(
                f"Invalid method name {name!r} for resource interface {interface.name}"
            )
        return interface.method(return_type, method_names.allocate(name))

    def create_resource_enum(
        self,
        interface: InterfaceDef,
        name: str,
        values: list[str],
    ) -> EnumDef:
        """Nest an enum with ``values`` in their given order inside ``interface``."""
        enum = interface.enum(name)
        for value in values:
            enum.constant(value)
        return enum

    def add_http_method_annotation(self, verb: str, method: MethodDef) -> MethodDef:
        """Mark ``method`` with the annotation of HTTP ``verb``.

        Raises:
            HttpMethodAnnotationError: The registry holds an unexpected entry
                or the method is already bound to another verb.
        """
        annotation = self._http_methods.resolve(verb)
        if isinstance(annotation, StandardVerb):
            marker = annotation.marker
        elif isinstance(annotation, CustomVerb):
            marker = self._custom_verb_annotation(annotation).ref
        else:
            raise HttpMethodAnnotationError(
                f"Found annotation: {annotation!r} for HTTP method: {verb}"
            )

        try:
            method.bind_http_method(marker)
        except ValueError as exc:
            raise HttpMethodAnnotationError(str(exc)) from exc
        return method

    def lookup_type(self, python_type: Any) -> TypeRef:
        """Return the output model reference for a primitive or a class."""
        if python_type is None:
            return self.code_model.primitive("None")
        if not isinstance(python_type, type):
            raise GenerationContextError(f"Not a type: {python_type!r}")
        primitive = _PRIMITIVE_TYPES.get(python_type)
        if primitive is not None:
            return self.code_model.primitive(primitive)
        return self.code_model.ref(python_type)

    def find_global_schema(self, name: str) -> Optional[str]:
        """Return the first global schema declared under ``name``."""
        for name_and_schema in self.api.schemas:
            schema = name_and_schema.get(name)
            if schema is not None:
                return schema
        return None

    def materialize_schema(self, class_name: str, schema_location: SchemaLocation) -> TypeRef:
        """Generate value type ``class_name`` from the schema at ``schema_location``."""
        return self._schema_bridge.materialize(class_name, schema_location)

    def materialize_schema_document(
        self,
        class_name: str,
        document: str,
        *,
        base_location: Optional[Path] = None,
    ) -> TypeRef:
        """Generate value type ``class_name`` from schema text."""
        return self._schema_bridge.materialize_document(
            class_name, document, base_location=base_location
        )

    def response_wrapper_type(self) -> TypeRef:
        """Reference the response wrapper; requesting it makes ``emit()`` write it."""
        self._response_wrapper_requested = True
        return self.code_model.direct_class(
            f"{self.configuration.support_package}.{RESPONSE_WRAPPER_NAME}"
        )

    def emit(self) -> set[str]:
        """Write the output model and return the generated relative paths."""
        output_dir = self.configuration.output_directory
        report = io.StringIO()
        build_code_model(self.code_model, output_dir, report)

        generated_files = set(report.getvalue().split())
        if self._response_wrapper_requested:
            write_package_inits(output_dir, self.configuration.support_package, generated_files)
            generated_files.add(self._generate_response_wrapper())

        if self.configuration.format_output:
            format_generated_files(output_dir=output_dir, relative_paths=generated_files)
        logger.info("Generated %d file(s) in %s", len(generated_files), output_dir)
        return generated_files

    def _custom_verb_annotation(self, verb: CustomVerb) -> AnnotationTypeDef:
        package = self.code_model.package(self.configuration.support_package)
        existing = package.get(verb.type_name)
        if isinstance(existing, AnnotationTypeDef):
            if existing.verb != verb.verb:
                raise HttpMethodAnnotationError(
                    f"{package.name}.{verb.type_name} already marks HTTP {existing.verb}, "
                    f"not {verb.verb}"
                )
            return existing
        if existing is not None:
            raise HttpMethodAnnotationError(
                f"{package.name}.{verb.type_name} exists and is not an HTTP method annotation"
            )
        return package.define_annotation(
            verb.type_name,
            verb=verb.verb,
            description=verb.description,
            targets=verb.targets,
        )

    def _generate_response_wrapper(self) -> str:
        support_package = self.configuration.support_package
        version = self.configuration.protocol_version
        template_name = f"{RESPONSE_WRAPPER_NAME}.{version.value}.template"
        try:
            template = (
                resources.files(__package__)
                .joinpath("templates", template_name)
                .read_text(encoding="utf-8")
            )
        except OSError as exc:
            raise WriteError(f"Failed to read template {template_name}: {exc}") from exc

        relative = f"{package_path(support_package)}/{RESPONSE_WRAPPER_NAME}.py"
        source = template.replace(SUPPORT_PACKAGE_PLACEHOLDER, support_package)
        write_text_file(self.configuration.output_directory / relative, source)
        return relative
