"""HTTP verb annotation registry.

Standard verbs map to the markers in :mod:`rest_interface_generator.http_methods`.
Any other verb is synthesized once per registry as a :class:`CustomVerb` and
reused for every later lookup of the same token, whatever its case.

A registry is an explicit object. ``GenerationContext`` creates one per run
unless a registry is passed in; sharing one between runs is safe because
entries describe the marker, not a node of a particular output model, and
every access holds the registry lock.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional, TypeAlias, Union

from .code_model import TypeRef
from .http_methods import STANDARD_HTTP_METHODS, HttpMethod
from .identifiers import IdentifierAllocator
from .naming import sanitize_identifier

logger = logging.getLogger(__name__)


class HttpMethodAnnotationError(RuntimeError):
    """Raised when the verb registry or a method's verb binding is inconsistent."""


@dataclass(frozen=True)
class StandardVerb:
    """A verb with a marker shipped in ``http_methods``."""

    verb: str
    marker: TypeRef


@dataclass(frozen=True)
class CustomVerb:
    """A verb whose marker is generated into the support package."""

    verb: str
    type_name: str
    description: str
    targets: tuple[str, ...] = ("method",)


HttpVerbAnnotation: TypeAlias = Union[StandardVerb, CustomVerb]


def _standard_verb(marker: HttpMethod) -> StandardVerb:
    module = HttpMethod.__module__
    return StandardVerb(
        verb=marker.verb,
        marker=TypeRef(package=module, name=marker.verb, module=module),
    )


class HttpMethodRegistry:
    """Case-insensitive map from verb token to its annotation."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, Any] = {
            marker.verb.upper(): _standard_verb(marker) for marker in STANDARD_HTTP_METHODS
        }
        self._synthesized = 0
        # Marker module names; tokens that sanitize alike get suffixed names.
        self._type_names = IdentifierAllocator(reserved=self._entries)

    @property
    def synthesized_count(self) -> int:
        """Number of custom verbs created by this registry."""
        with self._lock:
            return self._synthesized

    def lookup(self, verb: str) -> Optional[Any]:
        """Return the cached entry for ``verb`` without synthesizing."""
        with self._lock:
            return self._entries.get(verb.upper())

    def register(self, verb: str, annotation: Any) -> None:
        """Store an entry under the normalized token, replacing any previous one."""
        with self._lock:
            self._entries[verb.upper()] = annotation

    def resolve(self, verb: str) -> HttpVerbAnnotation:
        """Return the annotation for ``verb``, synthesizing a custom one once.

        Raises:
            HttpMethodAnnotationError: The cached entry is neither a standard
                nor a custom verb.
        """
        token = verb.strip().upper()
        if not token:
            raise HttpMethodAnnotationError("HTTP verb must not be empty")
        with self._lock:
            entry = self._entries.get(token)
            if entry is None:
                entry = CustomVerb(
                    verb=token,
                    type_name=self._type_names.allocate(
                        sanitize_identifier(token, lowercase=False)
                    ),
                    description=f"Custom support for HTTP {token}.",
                )
                self._entries[token] = entry
                self._synthesized += 1
                logger.info("Synthesized custom HTTP method annotation for %s", token)

        if isinstance(entry, (StandardVerb, CustomVerb)):
            return entry
        raise HttpMethodAnnotationError(f"Found annotation: {entry!r} for HTTP method: {verb}")
