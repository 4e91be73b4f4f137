"""Tests for the HTTP verb annotation registry."""

from __future__ import annotations

import threading

import pytest

from rest_interface_generator.annotations import (
    CustomVerb,
    HttpMethodAnnotationError,
    HttpMethodRegistry,
    StandardVerb,
)


def test_standard_verbs_resolve_case_insensitively() -> None:
    """GET, get and ' Get ' resolve to the shipped marker."""
    registry = HttpMethodRegistry()

    resolved = {registry.resolve(verb) for verb in ("GET", "get", " Get ")}

    assert len(resolved) == 1
    entry = resolved.pop()
    assert isinstance(entry, StandardVerb)
    assert entry.marker.fully_qualified_name == "rest_interface_generator.http_methods.GET"
    assert registry.synthesized_count == 0


def test_custom_verb_is_synthesized_once() -> None:
    """PATCH and patch share one synthesized custom verb."""
    registry = HttpMethodRegistry()

    first = registry.resolve("PATCH")
    second = registry.resolve("patch")

    assert first is second
    assert isinstance(first, CustomVerb)
    assert first.verb == "PATCH"
    assert first.type_name == "PATCH"
    assert first.targets == ("method",)
    assert registry.synthesized_count == 1
    assert registry.lookup("Patch") is first


def test_custom_verb_type_name_is_an_identifier() -> None:
    """Tokens with punctuation still yield importable names."""
    entry = HttpMethodRegistry().resolve("version-control")

    assert isinstance(entry, CustomVerb)
    assert entry.verb == "VERSION-CONTROL"
    assert entry.type_name == "VERSION_CONTROL"


def test_tokens_that_sanitize_alike_get_distinct_type_names() -> None:
    """VERSION-CONTROL and VERSION_CONTROL are different verbs with different markers."""
    registry = HttpMethodRegistry()

    dashed = registry.resolve("VERSION-CONTROL")
    underscored = registry.resolve("VERSION_CONTROL")

    assert isinstance(dashed, CustomVerb)
    assert isinstance(underscored, CustomVerb)
    assert (dashed.type_name, underscored.type_name) == ("VERSION_CONTROL", "VERSION_CONTROL1")
    assert registry.resolve("version_control") is underscored


def test_unexpected_cached_entry_is_an_error() -> None:
    """Entries that are not verb annotations are reported with the verb."""
    registry = HttpMethodRegistry()
    registry.register("TRACE", "not an annotation")

    with pytest.raises(
        HttpMethodAnnotationError, match="Found annotation: .* for HTTP method: trace"
    ):
        registry.resolve("trace")


def test_empty_verb_is_rejected() -> None:
    """Blank verbs cannot be resolved."""
    with pytest.raises(HttpMethodAnnotationError):
        HttpMethodRegistry().resolve("  ")


def test_concurrent_resolution_synthesizes_once() -> None:
    """Threads racing on one new verb observe a single entry."""
    registry = HttpMethodRegistry()
    results: list[object] = []
    barrier = threading.Barrier(8)

    def _resolve() -> None:
        barrier.wait()
        results.append(registry.resolve("purge"))

    threads = [threading.Thread(target=_resolve) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert registry.synthesized_count == 1
    assert all(result is results[0] for result in results)
