"""``$ref`` inlining for schema documents."""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Optional

import yaml


class ResolveError(RuntimeError):
    """Raised when resolving a schema reference fails."""


class Resolver:
    """Inline local (``#/...``) and relative file references of one document.

    Recursive references are left as ``{"$ref": ...}`` once the cycle is
    detected, so recursive structures stay finite.
    """

    def __init__(self, document: dict[str, Any], *, base_path: Optional[Path] = None) -> None:
        self._document = deepcopy(document)
        self._base_path = base_path
        self._cache: dict[str, Any] = {}
        self._external: dict[Path, Any] = {}

    def resolve_document(self) -> dict[str, Any]:
        """Return the whole document with its references inlined."""
        resolved = self.resolve_node(self._document)
        if not isinstance(resolved, dict):
            raise ResolveError("Schema document must resolve to a mapping")
        return resolved

    def resolve_node(self, node: Any) -> Any:
        """Recursively inline references in a node."""
        return self._resolve(node, stack=())

    def _resolve(self, node: Any, stack: tuple[str, ...]) -> Any:
        if isinstance(node, list):
            return [self._resolve(item, stack) for item in node]
        if not isinstance(node, dict):
            return node

        ref_value = node.get("$ref")
        if isinstance(ref_value, str):
            resolved_ref = self._resolve_ref(ref_value, stack)
            siblings = {key: value for key, value in node.items() if key != "$ref"}
            if siblings and isinstance(resolved_ref, dict) and "$ref" not in resolved_ref:
                merged = deepcopy(resolved_ref)
                merged.update(self._resolve(siblings, stack))
                return merged
            return deepcopy(resolved_ref)

        return {key: self._resolve(value, stack) for key, value in node.items()}

    def _resolve_ref(self, ref: str, stack: tuple[str, ...]) -> Any:
        if ref in stack:
            return {"$ref": ref}
        if ref in self._cache:
            return deepcopy(self._cache[ref])

        location, _, pointer = ref.partition("#")
        target = self._document if not location else self._load_external(location)
        resolved = self._resolve(deepcopy(_follow_pointer(target, pointer, ref)), (*stack, ref))
        self._cache[ref] = deepcopy(resolved)
        return resolved

    def _load_external(self, location: str) -> Any:
        if "://" in location:
            raise ResolveError(f"Only local and relative file references are supported: {location}")
        if self._base_path is None:
            raise ResolveError(f"Cannot resolve relative reference {location} without a base path")
        path = (self._base_path.parent / location).resolve()
        if path not in self._external:
            try:
                self._external[path] = yaml.safe_load(path.read_text(encoding="utf-8"))
            except OSError as exc:
                raise ResolveError(f"Failed to read referenced schema {path}: {exc}") from exc
            except yaml.YAMLError as exc:
                raise ResolveError(f"Failed to parse referenced schema {path}: {exc}") from exc
        return self._external[path]


def _follow_pointer(document: Any, pointer: str, ref: str) -> Any:
    current = document
    for token in pointer.lstrip("/").split("/") if pointer.strip("/") else []:
        token = token.replace("~1", "/").replace("~0", "~")
        if isinstance(current, dict) and token in current:
            current = current[token]
        elif isinstance(current, list) and token.isdigit() and int(token) < len(current):
            current = current[int(token)]
        else:
            raise ResolveError(f"Unresolvable reference: {ref}")
    return current
