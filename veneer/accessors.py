"""Resolution of inherited accessors (properties and methods) on object targets.

Accessors live on classes, so lookups are memoized per class and attribute
name in a weak-keyed cache: a cached class can still be garbage collected.
"""

from __future__ import annotations

from collections.abc import Callable
from types import FunctionType
from typing import Any, NamedTuple

import weakref


__all__ = ["Accessor", "AccessorCache", "resolve_accessor"]


class Accessor(NamedTuple):
    """What a class provides for one attribute name.

    Attributes:
      getter: `property.fget`, called with the overlay proxy as `self`.
      setter: `property.fset`, called with the overlay proxy as `self`.
      method: Plain function to bind to the overlay proxy instead of the target.

    """

    getter: Callable[[Any], Any] | None = None
    setter: Callable[[Any, Any], None] | None = None
    method: FunctionType | None = None


class AccessorCache:
    """Memoizes `Accessor` lookups per class and attribute name."""

    def __init__(self) -> None:
        self._by_class: weakref.WeakKeyDictionary[type, dict[str, Accessor | None]] = (
            weakref.WeakKeyDictionary()
        )

    def resolve(self, target: object, key: str) -> Accessor | None:
        """Find the accessor for `key` along the MRO of `target`'s class.

        Args:
          target: Object whose class is searched (its `__class__`, so proxies
            resolve against the class they stand in for).
          key: Attribute name.

        Returns:
          accessor: The property/method found first in the MRO, or None if the
            nearest class attribute is neither (or there is none).

        """
        cls: type = target.__class__
        try:
            per_class = self._by_class[cls]
        except KeyError:
            per_class = self._by_class[cls] = {}
        except TypeError:
            # Not weak-referenceable; resolve without caching.
            return _lookup(cls, key)
        if key not in per_class:
            per_class[key] = _lookup(cls, key)
        return per_class[key]

    def clear(self) -> None:
        self._by_class.clear()


def _lookup(cls: type, key: str) -> Accessor | None:
    for klass in cls.__mro__:
        if key not in klass.__dict__:
            continue
        attr = klass.__dict__[key]
        if isinstance(attr, property):
            return Accessor(getter=attr.fget, setter=attr.fset)
        if isinstance(attr, FunctionType):
            return Accessor(method=attr)
        return None
    return None


_DEFAULT_CACHE = AccessorCache()


def resolve_accessor(target: object, key: str) -> Accessor | None:
    """Resolve `key` on `target` using the process-wide cache."""
    return _DEFAULT_CACHE.resolve(target, key)
