"""HTTP verb markers applied to generated resource protocol methods.

Generated code imports the standard markers from this module and decorates
each resource method with exactly one of them. Non-standard verbs get their
own ``HttpMethod`` instance, generated into the API's support package.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Optional, TypeVar

_F = TypeVar("_F", bound=Callable[..., Any])

HTTP_METHOD_ATTRIBUTE = "__http_method__"

_TARGET_KINDS: tuple[str, ...] = ("method", "class")


class HttpMethod:
    """Decorator binding a callable to an HTTP verb at runtime."""

    def __init__(
        self,
        verb: str,
        *,
        targets: tuple[str, ...] = ("method",),
        doc: Optional[str] = None,
    ) -> None:
        if not verb:
            raise ValueError("HTTP verb must not be empty")
        unknown = [target for target in targets if target not in _TARGET_KINDS]
        if unknown:
            raise ValueError(f"Unsupported HttpMethod targets: {unknown!r}")
        self.verb = verb
        self.targets = targets
        self.__doc__ = doc or f"HTTP {verb} method marker."

    def __call__(self, target: _F) -> _F:
        kind = "class" if isinstance(target, type) else "method"
        if kind not in self.targets or not callable(target):
            raise TypeError(f"@{self.verb} cannot be applied to {target!r}")
        setattr(target, HTTP_METHOD_ATTRIBUTE, self.verb)
        return target

    def __repr__(self) -> str:
        return f"HttpMethod({self.verb!r})"


def http_method_of(target: Callable[..., Any]) -> Optional[str]:
    """Return the HTTP verb a callable was marked with, if any."""
    verb = getattr(target, HTTP_METHOD_ATTRIBUTE, None)
    return verb if isinstance(verb, str) else None


GET = HttpMethod("GET")
POST = HttpMethod("POST")
PUT = HttpMethod("PUT")
DELETE = HttpMethod("DELETE")
HEAD = HttpMethod("HEAD")
OPTIONS = HttpMethod("OPTIONS")

STANDARD_HTTP_METHODS: tuple[HttpMethod, ...] = (GET, POST, PUT, DELETE, HEAD, OPTIONS)
