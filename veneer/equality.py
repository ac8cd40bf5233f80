"""Structural equality over nested mappings, sequences and objects."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import math

from veneer.proxy import OverlayProxy
from veneer.traverse import Kind, kind_of, own_keys


__all__ = ["deep_equal"]


def _materialize(value: object) -> object:
    if isinstance(value, OverlayProxy):
        return value.__veneer__.unwrap()
    return value


def _has_custom_eq(value: object) -> bool:
    return type(value).__eq__ is not object.__eq__


def deep_equal(a: object, b: object) -> bool:
    """Compare two values by structure rather than identity.

    Overlay proxies are compared by their effective value. Booleans only equal
    booleans (so `True` is a change from `1`), and NaN equals NaN.

    Args:
      a: First value.
      b: Second value.

    Returns:
      equal: True if both values hold the same data.

    """
    a = _materialize(a)
    b = _materialize(b)
    if a is b:
        return True
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    if isinstance(a, float) and isinstance(b, float) and math.isnan(a) and math.isnan(b):
        return True

    kind_a, kind_b = kind_of(a), kind_of(b)
    if kind_a is not kind_b:
        return False
    if kind_a is Kind.MAPPING:
        return _mappings_equal(a, b)  # pyright: ignore[reportArgumentType]
    if kind_a is Kind.SEQUENCE:
        return _sequences_equal(a, b)  # pyright: ignore[reportArgumentType]
    if kind_a is Kind.OBJECT:
        if type(a) is not type(b):
            return False
        if _has_custom_eq(a):
            return bool(a == b)
        keys = own_keys(a)
        if set(keys) != set(own_keys(b)):
            return False
        return all(deep_equal(getattr(a, k), getattr(b, k)) for k in keys)  # pyright: ignore[reportArgumentType]
    # tuples are leaves to overlays but still compare elementwise
    if isinstance(a, tuple) and isinstance(b, tuple):
        return _sequences_equal(a, b)
    try:
        return bool(a == b)
    except (TypeError, ValueError):
        return False


def _mappings_equal(a: Mapping[object, object], b: Mapping[object, object]) -> bool:
    if len(a) != len(b):
        return False
    return all(k in b and deep_equal(v, b[k]) for k, v in a.items())


def _sequences_equal(a: Sequence[object], b: Sequence[object]) -> bool:
    if len(a) != len(b):
        return False
    return all(deep_equal(x, y) for x, y in zip(a, b, strict=True))
