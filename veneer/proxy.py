"""Transparent proxies that route every access through an overlay node.

Each `Overlay` node owns exactly one proxy. Attribute access on object targets
and item access on mapping/sequence targets is forwarded to the node, so the
proxy reads like the original object while writes land in the node's diff.

Example:
    ```python
    original = {"a": 1, "b": {"x": 1, "y": 2}}
    proxy = veneer.wrap(original)
    proxy["a"] = 2
    del proxy["b"]["y"]
    proxy.__veneer__.get_changes()
    # {"assign": {"a": 2}, "remove": {"b.y": True}}
    ```

"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import copy

from typing_extensions import override

import wrapt

from veneer.custom_types import MISSING


if TYPE_CHECKING:
    from veneer.custom_types import Key
    from veneer.overlay import Overlay


__all__ = [
    "MappingOverlayProxy",
    "OverlayProxy",
    "SequenceOverlayProxy",
]

_T = TypeVar("_T")


def _materialized(value: _T) -> _T:
    return value


def _plain(value: object) -> object:
    if isinstance(value, OverlayProxy):
        return value.__veneer__.unwrap()
    return value


# Note: wrapt.ObjectProxy is generic in type stubs but not subscriptable at runtime.
# We use Generic[_T] to provide type parameters and declare __wrapped__: _T.
class OverlayProxy(wrapt.ObjectProxy, Generic[_T]):  # pyright: ignore[reportMissingTypeArgument]
    """A proxy over an object whose attribute writes are recorded, not applied.

    Attribute reads resolve through the owning `Overlay`: pending assignments
    win, then `property` getters and methods (bound to this proxy), then the
    target's own values. Nested containers come back as child proxies.

    The reserved `__veneer__` attribute returns the owning `Overlay`.

    """

    # Declare __wrapped__ with proper type to help pyright
    __wrapped__: _T

    # Use _self_ prefix to avoid conflicts with wrapped object attributes
    # (this is the wrapt convention)
    _self_overlay: Overlay[_T]

    def __init__(self, overlay: Overlay[_T]) -> None:
        # wrapt.ObjectProxy.__init__ type is partially unknown in stubs
        super().__init__(overlay.get_target())  # pyright: ignore[reportUnknownMemberType]
        self._self_overlay = overlay

    @property
    def __veneer__(self) -> Overlay[_T]:
        return self._self_overlay

    # -------------------------------------------------------------------------
    # Attribute access
    # -------------------------------------------------------------------------

    def __getattr__(self, key: str) -> Any:
        if key.startswith("_self_"):
            # This shouldn't happen with wrapt, but just in case
            raise AttributeError(key)
        return self._self_overlay.read(key)

    @override
    def __setattr__(self, key: str, value: object) -> None:
        # Let wrapt handle its internal attributes
        if key.startswith("_self_") or key == "__wrapped__":
            super().__setattr__(key, value)
            return
        self._self_overlay.write(key, value)

    @override
    def __delattr__(self, key: str) -> None:
        if key.startswith("_self_"):
            super().__delattr__(key)
            return
        self._self_overlay.remove(key)

    def __setitem__(self, key: object, value: object) -> None:
        raise TypeError(
            f"{type(self.__wrapped__).__name__!r} overlay does not support item assignment",
        )

    def __delitem__(self, key: object) -> None:
        raise TypeError(
            f"{type(self.__wrapped__).__name__!r} overlay does not support item deletion",
        )

    # -------------------------------------------------------------------------
    # Value semantics: compare, copy and pickle the effective value
    # -------------------------------------------------------------------------

    @override
    def __eq__(self, other: object) -> bool:
        return self._self_overlay.equals(other)

    @override
    def __ne__(self, other: object) -> bool:
        return not self._self_overlay.equals(other)

    @override
    def __hash__(self) -> int:
        # Use identity-based hash so proxies can be stored in sets
        # regardless of whether the wrapped object is hashable
        return id(self)

    @override
    def __repr__(self) -> str:
        return repr(self._self_overlay.unwrap())

    @override
    def __dir__(self) -> list[str]:
        names = set(dir(type(self.__wrapped__)))
        names.update(str(k) for k in self._self_overlay.keys())
        return sorted(names)

    def __copy__(self) -> _T:
        return self._self_overlay.unwrap()

    def __deepcopy__(self, memo: dict[int, object]) -> _T:
        return copy.deepcopy(self._self_overlay.unwrap(), memo)

    @override
    def __reduce__(self) -> tuple[Any, tuple[_T]]:
        return _materialized, (self._self_overlay.unwrap(),)

    @override
    def __reduce_ex__(self, protocol: Any) -> tuple[Any, tuple[_T]]:
        return self.__reduce__()


class _ContainerOverlayProxy(OverlayProxy[_T]):
    """Shared behavior for proxies whose keys are items rather than attributes."""

    @override
    def __getattr__(self, key: str) -> Any:
        # Methods of the target are not forwarded: most of them would mutate it.
        raise AttributeError(
            f"{type(self.__wrapped__).__name__!r} overlay has no attribute {key!r}",
        )

    @override
    def __setattr__(self, key: str, value: object) -> None:
        if key.startswith("_self_") or key == "__wrapped__":
            super().__setattr__(key, value)
            return
        raise AttributeError(
            f"{type(self.__wrapped__).__name__!r} overlay has no attribute {key!r}",
        )

    @override
    def __delattr__(self, key: str) -> None:
        if key.startswith("_self_"):
            super().__delattr__(key)
            return
        raise AttributeError(key)

    def __len__(self) -> int:
        return len(self._self_overlay.keys())

    def __bool__(self) -> bool:
        return bool(self._self_overlay.keys())

    def copy(self) -> _T:
        """Return the materialized effective value."""
        return self._self_overlay.unwrap()


class MappingOverlayProxy(_ContainerOverlayProxy[_T]):
    """Proxy for mapping targets; items are keys of the overlay."""

    @override
    def __getitem__(self, key: Key) -> Any:
        return self._self_overlay.read(key)

    @override
    def __setitem__(self, key: Key, value: object) -> None:
        self._self_overlay.write(key, value)

    @override
    def __delitem__(self, key: Key) -> None:
        self._self_overlay.remove(key)

    def __contains__(self, key: object) -> bool:
        return self._self_overlay.has(key)  # pyright: ignore[reportArgumentType]

    def __iter__(self) -> Iterator[Key]:
        return iter(self._self_overlay.keys())

    def keys(self) -> list[Key]:
        return self._self_overlay.keys()

    def values(self) -> list[Any]:
        return [self._self_overlay.read(k) for k in self._self_overlay.keys()]

    def items(self) -> list[tuple[Key, Any]]:
        return [(k, self._self_overlay.read(k)) for k in self._self_overlay.keys()]

    def get(self, key: Key, default: object = None) -> Any:
        return self._self_overlay.read(key, default)

    def pop(self, key: Key, default: object = MISSING) -> Any:
        if not self._self_overlay.has(key):
            if default is MISSING:
                raise KeyError(key)
            return default
        value = _plain(self._self_overlay.read(key))
        self._self_overlay.remove(key)
        return value

    def setdefault(self, key: Key, default: object = None) -> Any:
        if not self._self_overlay.has(key):
            self._self_overlay.write(key, default)
        return self._self_overlay.read(key)

    def update(self, other: object = (), /, **kwargs: object) -> None:
        if hasattr(other, "keys"):
            for k in other.keys():  # pyright: ignore[reportAttributeAccessIssue]
                self._self_overlay.write(k, other[k])  # pyright: ignore[reportIndexIssue]
        else:
            for k, v in other:  # pyright: ignore[reportGeneralTypeIssues]
                self._self_overlay.write(k, v)
        for k, v in kwargs.items():
            self._self_overlay.write(k, v)

    def clear(self) -> None:
        for k in self._self_overlay.keys():
            self._self_overlay.remove(k)


class SequenceOverlayProxy(_ContainerOverlayProxy[_T]):
    """Proxy for mutable sequence targets; items are integer indices.

    Removing an index leaves a hole instead of shifting later items, so the
    recorded paths keep pointing at the same elements. The holes are closed
    when the overlay is unwrapped.

    """

    def _index(self, index: int) -> int:
        if not isinstance(index, int):
            raise TypeError(f"sequence indices must be integers, not {type(index).__name__}")
        if index < 0:
            # Count from the end of the live keys, skipping removed holes.
            return self._self_overlay.keys()[index]  # pyright: ignore[reportReturnType]
        return index

    @override
    def __getitem__(self, index: int | slice) -> Any:
        if isinstance(index, slice):
            keys = self._self_overlay.keys()
            return [self._self_overlay.read(k) for k in keys[index]]
        return self._self_overlay.read(self._index(index))

    @override
    def __setitem__(self, index: int, value: object) -> None:
        self._self_overlay.write(self._index(index), value)

    @override
    def __delitem__(self, index: int) -> None:
        self._self_overlay.remove(self._index(index))

    def __iter__(self) -> Iterator[Any]:
        for k in self._self_overlay.keys():
            yield self._self_overlay.read(k)

    def __contains__(self, value: object) -> bool:
        return any(item is value or item == value for item in self)

    def append(self, value: object) -> None:
        keys = self._self_overlay.keys()
        self._self_overlay.write(int(keys[-1]) + 1 if keys else 0, value)

    def extend(self, values: Iterable[object]) -> None:
        for value in values:
            self.append(value)

    def index(self, value: object) -> int:
        """Return the index of the first item equal to `value`, usable with `self[...]`."""
        for k in self._self_overlay.keys():
            item = self._self_overlay.read(k)
            if item is value or item == value:
                return k  # pyright: ignore[reportReturnType]
        raise ValueError(f"{value!r} is not in overlay")

    def count(self, value: object) -> int:
        return sum(1 for item in self if item is value or item == value)
