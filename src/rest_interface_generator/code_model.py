"""In-memory model of the Python modules produced by one generation run."""

from __future__ import annotations

import builtins
from dataclasses import dataclass
from typing import Optional, TypeAlias, Union

from .identifiers import IdentifierAllocator
from .model_types import ValueTypeSection
from .naming import is_identifier

_PRIMITIVE_NAMES: frozenset[str] = frozenset(
    {"bool", "bytes", "complex", "float", "int", "str", "None", "object"}
)


class TypeAlreadyExistsError(RuntimeError):
    """Raised when a type name is defined twice in the same container."""


@dataclass(frozen=True)
class TypeRef:
    """Reference to a type usable in generated annotations.

    ``package`` and ``name`` form the fully-qualified name; ``module`` is the
    module the generated code imports the first component of ``name`` from.
    Builtin types have neither a package nor a module.
    """

    package: str
    name: str
    module: Optional[str] = None

    @property
    def fully_qualified_name(self) -> str:
        return f"{self.package}.{self.name}" if self.package else self.name

    @property
    def import_name(self) -> str:
        return self.name.split(".", maxsplit=1)[0]

    @property
    def is_builtin(self) -> bool:
        return self.module is None

    def __str__(self) -> str:
        return self.fully_qualified_name


@dataclass(frozen=True)
class ParamDef:
    """A method parameter."""

    name: str
    type_ref: TypeRef
    required: bool


class MethodDef:
    """A method stub on a generated resource protocol."""

    def __init__(self, owner: InterfaceDef, name: str, return_type: TypeRef) -> None:
        self.owner = owner
        self.name = name
        self.return_type = return_type
        self.params: list[ParamDef] = []
        self.http_method: Optional[TypeRef] = None
        self.docstring: Optional[str] = None
        self._param_names = IdentifierAllocator(reserved=("self",))

    def param(self, name: str, type_ref: TypeRef, *, required: bool = True) -> ParamDef:
        """Append a parameter, renaming it if the name is already taken."""
        param = ParamDef(
            name=self._param_names.allocate(name),
            type_ref=type_ref,
            required=required,
        )
        self.params.append(param)
        return param

    def bind_http_method(self, marker: TypeRef) -> None:
        """Attach the HTTP verb marker; a method carries exactly one."""
        if self.http_method is not None and self.http_method != marker:
            raise ValueError(
                f"Method {self.owner.name}.{self.name} is already bound to "
                f"{self.http_method}, cannot bind {marker}"
            )
        self.http_method = marker

    def __repr__(self) -> str:
        return f"MethodDef({self.owner.name}.{self.name})"


class EnumDef:
    """An ``enum.Enum`` nested inside a resource protocol."""

    def __init__(self, owner: InterfaceDef, name: str) -> None:
        self.owner = owner
        self.name = name
        self.constants: list[str] = []

    def constant(self, value: str) -> None:
        """Append a constant; duplicates are kept in insertion order."""
        self.constants.append(value)

    @property
    def ref(self) -> TypeRef:
        owner_ref = self.owner.ref
        return TypeRef(
            package=owner_ref.package,
            name=f"{owner_ref.name}.{self.name}",
            module=owner_ref.module,
        )


class InterfaceDef:
    """A ``typing.Protocol`` describing one API resource."""

    def __init__(self, package: PackageDef, name: str) -> None:
        self.package = package
        self.name = name
        self.docstring: Optional[str] = None
        self.methods: list[MethodDef] = []
        self.enums: dict[str, EnumDef] = {}

    @property
    def ref(self) -> TypeRef:
        return self.package.ref_for(self.name)

    def method(self, return_type: TypeRef, name: str) -> MethodDef:
        if not is_identifier(name):
            raise ValueError(f"Invalid method name {name!r} in {self.ref}")
        method = MethodDef(self, name, return_type)
        self.methods.append(method)
        return method

    def enum(self, name: str) -> EnumDef:
        if name in self.enums:
            raise TypeAlreadyExistsError(f"Enum {name} already defined in {self.ref}")
        enum = EnumDef(self, name)
        self.enums[name] = enum
        return enum


class AnnotationTypeDef:
    """A custom ``HttpMethod`` marker generated into the support package."""

    def __init__(
        self,
        package: PackageDef,
        name: str,
        *,
        verb: str,
        description: str,
        targets: tuple[str, ...],
    ) -> None:
        self.package = package
        self.name = name
        self.verb = verb
        self.description = description
        self.targets = targets

    @property
    def ref(self) -> TypeRef:
        return self.package.ref_for(self.name)


class ValueTypeModule:
    """Value types generated from one named schema."""

    def __init__(self, package: PackageDef, name: str, section: ValueTypeSection) -> None:
        self.package = package
        self.name = name
        self.section = section

    @property
    def ref(self) -> TypeRef:
        return self.package.ref_for(self.name)


TopLevelDef: TypeAlias = Union[InterfaceDef, AnnotationTypeDef, ValueTypeModule]


class PackageDef:
    """A Python package; every top-level type is rendered as its own module."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.types: dict[str, TopLevelDef] = {}

    def ref_for(self, name: str) -> TypeRef:
        return TypeRef(package=self.name, name=name, module=f"{self.name}.{name}")

    def get(self, name: str) -> Optional[TopLevelDef]:
        return self.types.get(name)

    def define_interface(self, name: str) -> InterfaceDef:
        interface = InterfaceDef(self, name)
        self._register(name, interface)
        return interface

    def define_annotation(
        self,
        name: str,
        *,
        verb: str,
        description: str,
        targets: tuple[str, ...] = ("method",),
    ) -> AnnotationTypeDef:
        annotation = AnnotationTypeDef(
            self,
            name,
            verb=verb,
            description=description,
            targets=targets,
        )
        self._register(name, annotation)
        return annotation

    def define_value_types(self, name: str, section: ValueTypeSection) -> ValueTypeModule:
        module = ValueTypeModule(self, name, section)
        self._register(name, module)
        return module

    def _register(self, name: str, definition: TopLevelDef) -> None:
        if not is_identifier(name):
            raise ValueError(f"Invalid type name {name!r} in package {self.name}")
        if name in self.types:
            raise TypeAlreadyExistsError(f"{self.name}.{name} already exists")
        self.types[name] = definition


class CodeModel:
    """Root of the output model: packages by dotted name."""

    def __init__(self) -> None:
        self.packages: dict[str, PackageDef] = {}

    def package(self, name: str) -> PackageDef:
        """Return the package named ``name``, creating it on first use."""
        package = self.packages.get(name)
        if package is None:
            package = PackageDef(name)
            self.packages[name] = package
        return package

    def primitive(self, name: str) -> TypeRef:
        """Return a reference to a builtin type such as ``int`` or ``None``."""
        if name not in _PRIMITIVE_NAMES:
            raise ValueError(f"Not a primitive type name: {name!r}")
        return TypeRef(package="", name=name)

    def ref(self, cls: type) -> TypeRef:
        """Return a reference to an existing Python class."""
        if cls.__module__ == builtins.__name__:
            return TypeRef(package="", name=cls.__qualname__)
        return TypeRef(package=cls.__module__, name=cls.__qualname__, module=cls.__module__)

    def direct_class(self, fully_qualified_name: str) -> TypeRef:
        """Reference a generated type by name without defining it."""
        package, _, name = fully_qualified_name.rpartition(".")
        if not package or not name:
            raise ValueError(f"Expected a package-qualified name, got {fully_qualified_name!r}")
        return TypeRef(package=package, name=name, module=fully_qualified_name)

    def iter_types(self) -> list[TopLevelDef]:
        """Return every defined top-level type, package by package."""
        return [
            definition
            for package in self.packages.values()
            for definition in package.types.values()
        ]
