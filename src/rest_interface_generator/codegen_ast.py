"""AST-based Python code generation for the output model."""

from __future__ import annotations

import ast
from collections.abc import Iterable
from typing import Any, Optional

from .code_model import AnnotationTypeDef, InterfaceDef, MethodDef, TypeRef, ValueTypeModule
from .http_methods import HttpMethod
from .identifiers import IdentifierAllocator
from .model_types import AnnotationStyle, FieldDef, ModelDef, ValueTypeSection
from .naming import constant_name

_TYPING_IMPORT_ORDER: tuple[str, ...] = (
    "Any",
    "Literal",
    "Optional",
    "Protocol",
    "Union",
)

_PYDANTIC_IMPORT_ORDER: tuple[str, ...] = (
    "BaseModel",
    "ConfigDict",
    "Field",
    "RootModel",
)


class _ImportTable:
    """Local names for the type references a generated module uses."""

    def __init__(self, module: str, local_names: Iterable[str]) -> None:
        self._module = module
        self._names = IdentifierAllocator(reserved=local_names)
        self._aliases: dict[tuple[str, str], str] = {}

    def expr(self, ref: TypeRef) -> str:
        if ref.module is None or ref.module == self._module:
            return ref.name
        key = (ref.module, ref.import_name)
        alias = self._aliases.get(key)
        if alias is None:
            alias = self._names.allocate(ref.import_name)
            self._aliases[key] = alias
        return alias + ref.name[len(ref.import_name) :]

    def statements(self) -> list[ast.stmt]:
        imports: list[ast.stmt] = []
        for (module, name), alias in sorted(self._aliases.items()):
            imports.append(
                ast.ImportFrom(
                    module=module,
                    names=[ast.alias(name=name, asname=None if alias == name else alias)],
                    level=0,
                )
            )
        return imports


def render_interface_module(interface: InterfaceDef) -> str:
    """Render a resource protocol module.

    Args:
        interface (InterfaceDef): Resource interface to render.

    Returns:
        str: Generated Python source code.
    """
    module_name = interface.ref.module or interface.name
    imports = _ImportTable(
        module_name, local_names=(interface.name, "Enum", "Optional", "Protocol")
    )

    class_body: list[ast.stmt] = []
    if interface.docstring:
        class_body.append(_docstring(interface.docstring))
    for enum in interface.enums.values():
        class_body.append(_enum_to_ast(enum.name, enum.constants))
    for method in interface.methods:
        class_body.append(_method_to_ast(method, imports))
    if not class_body:
        class_body.append(ast.Expr(value=ast.Constant(value=Ellipsis)))

    used_typing = {"Protocol"}
    if any(not param.required for method in interface.methods for param in method.params):
        used_typing.add("Optional")

    body: list[ast.stmt] = [
        _docstring(f"Resource interface {interface.ref.fully_qualified_name}."),
        _future_annotations(),
    ]
    if interface.enums:
        body.append(_import_from("enum", ["Enum"]))
    body.append(_import_from("typing", _ordered(_TYPING_IMPORT_ORDER, used_typing)))
    body.extend(imports.statements())
    body.append(
        ast.ClassDef(
            name=interface.name,
            bases=[ast.Name(id="Protocol", ctx=ast.Load())],
            keywords=[],
            body=class_body,
            decorator_list=[],
            type_params=[],
        )
    )
    return _unparse(body)


def render_annotation_module(annotation: AnnotationTypeDef) -> str:
    """Render the module defining a custom HTTP verb marker."""
    call = ast.Call(
        func=ast.Name(id=HttpMethod.__name__, ctx=ast.Load()),
        args=[ast.Constant(value=annotation.verb)],
        keywords=[
            ast.keyword(arg="targets", value=_value_expr(annotation.targets)),
            ast.keyword(arg="doc", value=ast.Constant(value=annotation.description)),
        ],
    )
    body: list[ast.stmt] = [
        _docstring(annotation.description),
        _import_from(HttpMethod.__module__, [HttpMethod.__name__]),
        ast.Assign(targets=[ast.Name(id=annotation.name, ctx=ast.Store())], value=call),
    ]
    return _unparse(body)


def render_value_type_module(module: ValueTypeModule) -> str:
    """Render the value types generated from one schema."""
    section = module.section
    body: list[ast.stmt] = [
        _docstring(f"Value types for {module.ref.fully_qualified_name}."),
        _future_annotations(),
    ]
    body.extend(_value_type_imports(section))
    for model in section.models:
        if section.annotation_style is AnnotationStyle.DATACLASS:
            body.append(_dataclass_to_ast(model))
        else:
            body.append(_pydantic_model_to_ast(model))
    return _unparse(body)


def render_package_init(package: str) -> str:
    """Render a generated package ``__init__.py``."""
    return _unparse([_docstring(f"Generated package {package}.")])


def _method_to_ast(method: MethodDef, imports: _ImportTable) -> ast.FunctionDef:
    positional: list[ast.arg] = [ast.arg(arg="self")]
    defaults: list[ast.expr] = []
    ordered = [param for param in method.params if param.required] + [
        param for param in method.params if not param.required
    ]
    for param in ordered:
        annotation = imports.expr(param.type_ref)
        if not param.required:
            annotation = f"Optional[{annotation}]"
            defaults.append(ast.Constant(value=None))
        positional.append(ast.arg(arg=param.name, annotation=_expr(annotation)))

    decorators: list[ast.expr] = []
    if method.http_method is not None:
        decorators.append(_expr(imports.expr(method.http_method)))

    body: list[ast.stmt] = []
    if method.docstring:
        body.append(_docstring(method.docstring))
    body.append(ast.Expr(value=ast.Constant(value=Ellipsis)))

    return ast.FunctionDef(
        name=method.name,
        args=ast.arguments(
            posonlyargs=[],
            args=positional,
            vararg=None,
            kwonlyargs=[],
            kw_defaults=[],
            kwarg=None,
            defaults=defaults,
        ),
        body=body,
        decorator_list=decorators,
        returns=_expr(imports.expr(method.return_type)),
        type_params=[],
    )


def _enum_to_ast(name: str, constants: list[str]) -> ast.ClassDef:
    member_names = IdentifierAllocator()
    body: list[ast.stmt] = [
        ast.Assign(
            targets=[ast.Name(id=member_names.allocate(constant_name(value)), ctx=ast.Store())],
            value=ast.Constant(value=value),
        )
        for value in constants
    ]
    if not body:
        body.append(ast.Pass())
    return ast.ClassDef(
        name=name,
        bases=[ast.Name(id="Enum", ctx=ast.Load())],
        keywords=[],
        body=body,
        decorator_list=[],
        type_params=[],
    )


def _pydantic_model_to_ast(model: ModelDef) -> ast.ClassDef:
    class_body: list[ast.stmt] = []
    if model.docstring:
        class_body.append(_docstring(model.docstring))

    if model.is_root:
        base: ast.expr = ast.Subscript(
            value=ast.Name(id="RootModel", ctx=ast.Load()),
            slice=_expr(_require_root_annotation(model)),
            ctx=ast.Load(),
        )
    else:
        base = ast.Name(id="BaseModel", ctx=ast.Load())
        config_keywords = _config_keywords(model)
        if config_keywords:
            class_body.append(
                ast.Assign(
                    targets=[ast.Name(id="model_config", ctx=ast.Store())],
                    value=ast.Call(
                        func=ast.Name(id="ConfigDict", ctx=ast.Load()),
                        args=[],
                        keywords=config_keywords,
                    ),
                )
            )
        class_body.extend(_pydantic_field_to_ast(field) for field in model.fields)

    if not class_body:
        class_body.append(ast.Pass())
    return ast.ClassDef(
        name=model.name,
        bases=[base],
        keywords=[],
        body=class_body,
        decorator_list=[],
        type_params=[],
    )


def _config_keywords(model: ModelDef) -> list[ast.keyword]:
    keywords: list[ast.keyword] = []
    if model.title:
        keywords.append(ast.keyword(arg="title", value=ast.Constant(value=model.title)))
    if model.extra_behavior:
        keywords.append(ast.keyword(arg="extra", value=ast.Constant(value=model.extra_behavior)))
    if any(field.source_name != field.name for field in model.fields):
        keywords.append(ast.keyword(arg="populate_by_name", value=ast.Constant(value=True)))
    return keywords


def _pydantic_field_to_ast(field: FieldDef) -> ast.AnnAssign:
    keywords: list[ast.keyword] = []
    if field.source_name != field.name:
        keywords.append(ast.keyword(arg="alias", value=ast.Constant(value=field.source_name)))
    for key, value in field.metadata.items():
        keywords.append(ast.keyword(arg=key, value=_value_expr(value)))

    default: ast.expr = (
        ast.Constant(value=Ellipsis) if field.required else _value_expr(field.default)
    )
    return ast.AnnAssign(
        target=ast.Name(id=field.name, ctx=ast.Store()),
        annotation=_expr(field.annotation),
        value=ast.Call(
            func=ast.Name(id="Field", ctx=ast.Load()),
            args=[default],
            keywords=keywords,
        ),
        simple=1,
    )


def _dataclass_to_ast(model: ModelDef) -> ast.stmt:
    if model.is_root:
        return ast.Assign(
            targets=[ast.Name(id=model.name, ctx=ast.Store())],
            value=_expr(_require_root_annotation(model)),
        )

    class_body: list[ast.stmt] = []
    if model.docstring:
        class_body.append(_docstring(model.docstring))
    ordered = [field for field in model.fields if field.required] + [
        field for field in model.fields if not field.required
    ]
    for field in ordered:
        value: Optional[ast.expr] = None
        if not field.required:
            value = _dataclass_default(field.default)
        class_body.append(
            ast.AnnAssign(
                target=ast.Name(id=field.name, ctx=ast.Store()),
                annotation=_expr(field.annotation),
                value=value,
                simple=1,
            )
        )
    if not class_body:
        class_body.append(ast.Pass())
    return ast.ClassDef(
        name=model.name,
        bases=[],
        keywords=[],
        body=class_body,
        decorator_list=[ast.Name(id="dataclass", ctx=ast.Load())],
        type_params=[],
    )


def _dataclass_default(value: Any) -> ast.expr:
    if isinstance(value, (list, dict)):
        return ast.Call(
            func=ast.Name(id="field", ctx=ast.Load()),
            args=[],
            keywords=[
                ast.keyword(
                    arg="default_factory",
                    value=ast.Lambda(
                        args=ast.arguments(
                            posonlyargs=[],
                            args=[],
                            vararg=None,
                            kwonlyargs=[],
                            kw_defaults=[],
                            kwarg=None,
                            defaults=[],
                        ),
                        body=_value_expr(value),
                    ),
                )
            ],
        )
    return _value_expr(value)


def _value_type_imports(section: ValueTypeSection) -> list[ast.stmt]:
    used_names: set[str] = set()
    for model in section.models:
        if model.root_annotation is not None:
            used_names.update(_loaded_names(model.root_annotation))
        for field in model.fields:
            used_names.update(_loaded_names(field.annotation))

    imports: list[ast.stmt] = []
    if section.annotation_style is AnnotationStyle.DATACLASS:
        dataclass_names: list[str] = []
        if any(not model.is_root for model in section.models):
            dataclass_names.append("dataclass")
        if any(
            isinstance(field.default, (list, dict))
            for model in section.models
            for field in model.fields
            if not field.required
        ):
            dataclass_names.append("field")
        if dataclass_names:
            imports.append(_import_from("dataclasses", dataclass_names))

    typing_names = _ordered(_TYPING_IMPORT_ORDER, used_names)
    if typing_names:
        imports.append(_import_from("typing", typing_names))

    if section.annotation_style is AnnotationStyle.PYDANTIC:
        requested: set[str] = set()
        for model in section.models:
            if model.is_root:
                requested.add("RootModel")
                continue
            requested.add("BaseModel")
            if model.fields:
                requested.add("Field")
            if _config_keywords(model):
                requested.add("ConfigDict")
        imports.append(_import_from("pydantic", _ordered(_PYDANTIC_IMPORT_ORDER, requested)))
    return imports


def _require_root_annotation(model: ModelDef) -> str:
    if model.root_annotation is None:
        raise ValueError(f"Root model {model.name} missing annotation")
    return model.root_annotation


def _loaded_names(expr_code: str) -> set[str]:
    parsed = ast.parse(expr_code, mode="eval")
    return {
        node.id
        for node in ast.walk(parsed)
        if isinstance(node, ast.Name) and isinstance(node.ctx, ast.Load)
    }


def _ordered(order: tuple[str, ...], names: set[str]) -> list[str]:
    return [name for name in order if name in names]


def _import_from(module: str, names: list[str]) -> ast.ImportFrom:
    return ast.ImportFrom(module=module, names=[ast.alias(name=name) for name in names], level=0)


def _future_annotations() -> ast.ImportFrom:
    return _import_from("__future__", ["annotations"])


def _docstring(text: str) -> ast.Expr:
    return ast.Expr(value=ast.Constant(value=text))


def _expr(code: str) -> ast.expr:
    return ast.parse(code, mode="eval").body


def _value_expr(value: Any) -> ast.expr:
    return ast.parse(repr(value), mode="eval").body


def _unparse(body: list[ast.stmt]) -> str:
    module = ast.Module(body=body, type_ignores=[])
    ast.fix_missing_locations(module)
    return ast.unparse(module) + "\n"
