"""Collision-free identifier allocation within one naming scope."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any


class IdentifierAllocator:
    """Hand out names that are unique within a single scope.

    The first request for a base name gets it unchanged; later requests get
    the base name followed by 1, 2, 3, ... Names are never released, so the
    result only depends on the order of the calls.
    """

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self._used: dict[str, None] = dict.fromkeys(reserved)

    def allocate(self, candidate: str) -> str:
        """Reserve and return the first free name derived from ``candidate``.

        Args:
            candidate (str): Preferred name.

        Returns:
            str: ``candidate`` itself or ``candidate`` with a numeric suffix.
        """
        actual = candidate
        index = 0
        while actual in self._used:
            index += 1
            actual = f"{candidate}{index}"
        self._used[actual] = None
        return actual

    def __contains__(self, name: Any) -> bool:
        return name in self._used

    def __iter__(self) -> Iterator[str]:
        return iter(self._used)

    def __len__(self) -> int:
        return len(self._used)
