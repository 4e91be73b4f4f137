"""Naming helpers for generated Python identifiers."""

from __future__ import annotations

import keyword
import re
from typing import Optional

_IDENTIFIER_SANITIZE_RE = re.compile(r"[^0-9a-zA-Z_]+")
_MULTIPLE_UNDERSCORES_RE = re.compile(r"_+")
_WORD_SPLIT_RE = re.compile(r"[^0-9a-zA-Z]+")
_CAMEL_BOUNDARY_RE = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_BOUNDARY_RE = re.compile(r"([A-Z]+)([A-Z][a-z])")
_PATH_PARAM_RE = re.compile(r"^\{(?P<name>[^{}]+)\}$")


def sanitize_identifier(raw: str, *, lowercase: bool = True) -> str:
    """Convert arbitrary text into a valid Python identifier."""
    text = raw.lower() if lowercase else raw
    text = _IDENTIFIER_SANITIZE_RE.sub("_", text)
    text = _MULTIPLE_UNDERSCORES_RE.sub("_", text).strip("_")
    if not text:
        text = "root"
    if text[0].isdigit():
        text = f"x_{text}"
    if keyword.iskeyword(text):
        text = f"{text}_"
    return text


def snake_case(raw: str) -> str:
    """Convert camelCase, PascalCase or punctuated text to snake_case."""
    text = _ACRONYM_BOUNDARY_RE.sub(r"\1_\2", raw)
    text = _CAMEL_BOUNDARY_RE.sub(r"\1_\2", text)
    return sanitize_identifier(text)


def class_name(raw: str) -> str:
    """Convert a name to a PascalCase class name, keeping inner capitals.

    ``"user accounts"`` and ``"userAccounts"`` both become ``"UserAccounts"``.
    """
    parts = [part for part in _WORD_SPLIT_RE.split(raw) if part]
    name = "".join(part[0].upper() + part[1:] for part in parts)
    if not name:
        return "Resource"
    if name[0].isdigit():
        name = f"X{name}"
    return name


def constant_name(value: str) -> str:
    """Convert an enum value to an UPPER_SNAKE_CASE member name."""
    return snake_case(value).upper()


def path_segments(path: str) -> list[str]:
    """Split a URI template into its non-empty segments."""
    return [segment for segment in path.split("/") if segment]


def path_parameter_name(segment: str) -> Optional[str]:
    """Return the parameter name of a ``{param}`` segment, if it is one."""
    match = _PATH_PARAM_RE.match(segment)
    return match.group("name") if match else None


def resource_interface_name(relative_uri: str, display_name: Optional[str] = None) -> str:
    """Name the protocol generated for a top-level resource."""
    if display_name and display_name.strip():
        return class_name(display_name)
    words: list[str] = []
    for segment in path_segments(relative_uri):
        param = path_parameter_name(segment)
        words.append(f"by {param}" if param else segment)
    return class_name(" ".join(words))


def resource_method_name(verb: str, relative_path: str) -> str:
    """Name a resource method from its HTTP verb and the path below the resource.

    ``("GET", "")`` gives ``get``; ``("GET", "/{userId}/posts")`` gives
    ``get_by_user_id_posts``.
    """
    parts = [snake_case(verb)]
    for segment in path_segments(relative_path):
        param = path_parameter_name(segment)
        parts.append(f"by_{snake_case(param)}" if param else snake_case(segment))
    return "_".join(parts)


def package_path(package: str) -> str:
    """Return the POSIX directory path of a dotted package name."""
    return package.replace(".", "/")


def is_identifier(name: str) -> bool:
    """Return whether ``name`` can be used as a module, class or function name."""
    return name.isidentifier() and not keyword.iskeyword(name)


def is_dotted_identifier(name: str) -> bool:
    """Return whether ``name`` is a dotted sequence of Python identifiers."""
    return all(is_identifier(part) for part in name.split("."))
