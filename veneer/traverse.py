"""Utilities for classifying and inspecting nested object structures.

This module decides which values an overlay descends into (mappings, mutable
sequences and plain or dataclass objects) and which it treats as leaves, and
provides raw, side-effect free access to the keys of a target.
"""

from __future__ import annotations

from collections.abc import MutableMapping, MutableSequence
from types import ModuleType
from typing import Any

import dataclasses
import enum
import inspect

from veneer.custom_types import MISSING, Key
from veneer.proxy import OverlayProxy


__all__ = [
    "Kind",
    "has_key",
    "is_container",
    "kind_of",
    "own_keys",
    "owns_key",
    "read_own",
]


class Kind(enum.Enum):
    """How keys of a container are addressed."""

    MAPPING = "mapping"
    SEQUENCE = "sequence"
    OBJECT = "object"


def kind_of(value: object) -> Kind | None:
    """Classify `value`, returning None for leaves.

    Args:
      value: Any value, possibly an overlay proxy.

    Returns:
      kind: The container kind, or None if overlays treat it as a leaf.

    """
    if isinstance(value, (str, bytes, bytearray)):
        return None
    if isinstance(value, MutableMapping):
        return Kind.MAPPING
    if isinstance(value, MutableSequence):
        return Kind.SEQUENCE
    if isinstance(value, (type, ModuleType, enum.Enum)) or callable(value):
        return None
    if hasattr(value, "__dict__") or dataclasses.is_dataclass(value):
        return Kind.OBJECT
    return None


def is_container(value: object) -> bool:
    return kind_of(value) is not None


def _slot_names(value: object) -> list[str]:
    names: list[str] = []
    seen_slots = set[str]()
    for cls in type(value).__mro__:
        slots = getattr(cls, "__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for slot in slots:
            if slot in seen_slots or slot in ("__dict__", "__weakref__"):
                continue
            seen_slots.add(slot)
            try:
                getattr(value, slot)
            except AttributeError:
                continue
            names.append(slot)
    return names


def own_keys(target: object) -> list[Key]:
    """Return the keys a target holds itself (not inherited ones).

    Args:
      target: A container value.

    Returns:
      keys: Mapping keys, sequence indices, or instance attribute names.

    """
    if isinstance(target, OverlayProxy):
        return target.__veneer__.keys()
    kind = kind_of(target)
    if kind is Kind.MAPPING:
        return list(target.keys())  # pyright: ignore[reportAttributeAccessIssue]
    if kind is Kind.SEQUENCE:
        return list(range(len(target)))  # pyright: ignore[reportArgumentType]
    if kind is Kind.OBJECT:
        keys: list[Key] = list(_slot_names(target))
        if hasattr(target, "__dict__"):
            keys.extend(k for k in vars(target) if k not in keys)
        return keys
    return []


def has_key(target: object, key: Key) -> bool:
    """Check containment without invoking properties on object targets.

    Class attributes (methods, properties) count for object targets, matching
    how attribute lookup resolves them.

    """
    if isinstance(target, OverlayProxy):
        return target.__veneer__.has(key)
    kind = kind_of(target)
    if kind is Kind.MAPPING:
        return key in target  # pyright: ignore[reportOperatorIssue]
    if kind is Kind.SEQUENCE:
        return isinstance(key, int) and 0 <= key < len(target)  # pyright: ignore[reportArgumentType]
    if kind is Kind.OBJECT:
        if not isinstance(key, str):
            return False
        return inspect.getattr_static(target, key, MISSING) is not MISSING
    return False


def owns_key(target: object, key: Key) -> bool:
    """Like `has_key`, but only instance and slot attributes count for objects.

    These are the keys a removal can actually delete; class attributes stay
    readable after `del` on an instance.
    """
    if kind_of(target) is Kind.OBJECT:
        return key in own_keys(target)
    return has_key(target, key)


def read_own(target: object, key: Key) -> Any:
    """Read `key` straight from `target`.

    Raises:
      KeyError: Missing mapping key.
      IndexError: Missing sequence index.
      AttributeError: Missing attribute.

    """
    kind = kind_of(target)
    if kind is Kind.OBJECT:
        return getattr(target, str(key))
    return target[key]  # pyright: ignore[reportIndexIssue]
