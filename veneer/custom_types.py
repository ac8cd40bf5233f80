"""Custom types for the overlay module."""

from __future__ import annotations

from typing import Any, NamedTuple, TypeAlias, TypedDict

import re


__all__ = [
    "MISSING",
    "ChangeDescription",
    "Descriptor",
    "Key",
    "PathPattern",
]

Key: TypeAlias = "str | int"
PathPattern: TypeAlias = "str | re.Pattern[str]"


class _Missing:
    """Sentinel for absent keys (distinct from a stored `None`)."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


class ChangeDescription(TypedDict, total=False):
    """Flattened changes keyed by dotted paths.

    Both groups are omitted when empty, so `{}` means "no changes". Numeric
    path segments stand for sequence indices; there is no other type tag.

    """

    assign: dict[str, object]
    remove: dict[str, bool]


class Descriptor(NamedTuple):
    """Reflection result for a single key of an overlay."""

    present: bool
    value: object = None
    enumerable: bool = True
