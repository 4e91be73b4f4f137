"""Tests for identifier allocation and naming helpers."""

from __future__ import annotations

import pytest

from rest_interface_generator.identifiers import IdentifierAllocator
from rest_interface_generator.naming import (
    class_name,
    constant_name,
    is_dotted_identifier,
    path_parameter_name,
    resource_interface_name,
    resource_method_name,
    sanitize_identifier,
    snake_case,
)


def test_allocator_appends_increasing_suffixes() -> None:
    """Repeated requests for one name get 1, 2, ... appended."""
    allocator = IdentifierAllocator()

    assert [allocator.allocate("A") for _ in range(3)] == ["A", "A1", "A2"]


def test_allocator_skips_names_taken_by_suffixed_requests() -> None:
    """A suffixed name requested directly is not handed out twice."""
    allocator = IdentifierAllocator()
    allocator.allocate("get1")
    allocator.allocate("get")

    assert allocator.allocate("get") == "get2"
    assert list(allocator) == ["get1", "get", "get2"]


def test_allocator_respects_reserved_names() -> None:
    """Reserved names are never returned unchanged."""
    allocator = IdentifierAllocator(reserved=("self",))

    assert allocator.allocate("self") == "self1"
    assert "self" in allocator
    assert len(allocator) == 2


def test_allocators_are_independent_scopes() -> None:
    """Names taken in one scope stay free in another."""
    first = IdentifierAllocator()
    second = IdentifierAllocator()
    first.allocate("get")

    assert second.allocate("get") == "get"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("userId", "user_id"),
        ("HTTPStatus", "http_status"),
        ("x-request-id", "x_request_id"),
        ("class", "class_"),
        ("2fa", "x_2fa"),
    ],
)
def test_snake_case(raw: str, expected: str) -> None:
    """snake_case yields valid, keyword-free identifiers."""
    assert snake_case(raw) == expected


def test_class_name_keeps_inner_capitals() -> None:
    """Words are capitalized without lowering the rest of each word."""
    assert class_name("user accounts") == "UserAccounts"
    assert class_name("userAccounts") == "UserAccounts"
    assert class_name("2 step") == "X2Step"
    assert class_name("") == "Resource"


def test_constant_and_sanitized_names() -> None:
    """Enum member names are upper snake case."""
    assert constant_name("in-progress") == "IN_PROGRESS"
    assert sanitize_identifier("PATCH", lowercase=False) == "PATCH"
    assert sanitize_identifier("---") == "root"


def test_resource_names_from_paths() -> None:
    """Interfaces and methods are named from display names and paths."""
    assert resource_interface_name("/users") == "Users"
    assert resource_interface_name("/{tenant}/users") == "ByTenantUsers"
    assert resource_interface_name("/users", "User accounts") == "UserAccounts"
    assert resource_method_name("GET", "") == "get"
    assert resource_method_name("GET", "/{userId}/posts") == "get_by_user_id_posts"
    assert path_parameter_name("{id}") == "id"
    assert path_parameter_name("id") is None


def test_dotted_identifier_check() -> None:
    """Package names must be dotted, keyword-free identifiers."""
    assert is_dotted_identifier("com.example.api")
    assert not is_dotted_identifier("com.class.api")
    assert not is_dotted_identifier("com..api")
    assert not is_dotted_identifier("1api")
