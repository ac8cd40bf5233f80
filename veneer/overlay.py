"""Overlay nodes: record writes over an object graph without touching it.

An `Overlay` wraps one container (a mapping, a mutable sequence or a plain
object) and keeps its own pending assignments and removals. Reading a nested
container lazily creates a child node, so `proxy.a.b = 2` is recorded on the
node for `a` and reported from the root as the dotted path `"a.b"`.

Example:
    ```python
    original = {"a": 1, "b": {"x": 1, "y": 2}}
    proxy = Overlay.create(original)
    proxy["a"] = 2
    del proxy["b"]["y"]
    proxy["b"]["z"] = 3

    proxy.__veneer__.get_changes()
    # {"assign": {"a": 2, "b.z": 3}, "remove": {"b.y": True}}
    proxy.__veneer__.unwrap()
    # {"a": 2, "b": {"x": 1, "z": 3}}
    # original is unchanged
    ```

"""

from __future__ import annotations

from collections.abc import Iterator
from types import MethodType
from typing import Any, Generic, TypeVar

import contextlib
import dataclasses
import warnings

from veneer import merge as _merge
from veneer import unwrap as _unwrap
from veneer.accessors import Accessor, resolve_accessor
from veneer.config import DEFAULT_CONFIG, OverlayConfig
from veneer.custom_types import MISSING, ChangeDescription, Descriptor, Key, PathPattern
from veneer.equality import deep_equal
from veneer.errors import OverlayWarning
from veneer.paths import filter_changes, looks_like_index
from veneer.proxy import MappingOverlayProxy, OverlayProxy, SequenceOverlayProxy
from veneer.traverse import Kind, has_key, is_container, kind_of, own_keys, owns_key, read_own


__all__ = [
    "RESERVED_KEY",
    "Overlay",
    "get_overlay",
    "has_overlay",
    "wrap",
]

_T = TypeVar("_T")

RESERVED_KEY = "__veneer__"

_PROXY_TYPES: dict[Kind, type[OverlayProxy[Any]]] = {
    Kind.MAPPING: MappingOverlayProxy,
    Kind.SEQUENCE: SequenceOverlayProxy,
    Kind.OBJECT: OverlayProxy,
}

_REMOVED: Any = object()


@dataclasses.dataclass
class _Diff:
    """Pending changes of one node. A key is never in both groups."""

    assigned: dict[Key, object] = dataclasses.field(default_factory=dict)
    removed: set[Key] = dataclasses.field(default_factory=set)

    def discard(self, key: Key) -> bool:
        """Forget any pending entry for `key`, returning whether there was one."""
        found = key in self.assigned or key in self.removed
        self.assigned.pop(key, None)
        self.removed.discard(key)
        return found


class Overlay(Generic[_T]):
    """Records changes made to one object of a tree, without mutating it.

    Nodes form a tree mirroring the parts of the target graph that were
    traversed. Each node owns its children; the parent reference is only used
    to propagate change notifications upwards.

    Attributes:
      proxy: The proxy through which this node is read and written.
      parent: Owning node, or None for the root.

    """

    def __init__(
        self,
        target: _T,
        parent: Overlay[Any] | None = None,
        key: Key | None = None,
        config: OverlayConfig | None = None,
    ) -> None:
        """Initialize an overlay node.

        Args:
          target: The container to overlay. It is never modified.
          parent: Parent node (for internal use in nested access).
          key: Key under which `parent` reaches this node.
          config: Options; children inherit their parent's.

        Raises:
          TypeError: If `target` is a leaf value (str, int, tuple, ...).

        """
        kind = kind_of(target)
        if kind is None:
            raise TypeError(f"cannot overlay a {type(target).__name__!r} value")
        if config is None:
            config = parent._config if parent is not None else DEFAULT_CONFIG  # noqa: SLF001
        self._target = target
        self._kind = kind
        self._parent = parent
        self._key = key
        self._config = config
        self._diff: _Diff | None = None
        self._temp: _Diff | None = None
        self._tracked = True
        self._children: dict[Key, Overlay[Any]] = {}
        self._changed = False
        self._change_cache: dict[str, ChangeDescription] = {}
        self._proxy: OverlayProxy[_T] = _PROXY_TYPES[kind](self)

    @classmethod
    def create(cls, target: _T, config: OverlayConfig | None = None) -> OverlayProxy[_T]:
        """Wrap `target` in a new root overlay and return its proxy."""
        return cls(target, config=config).proxy

    # -------------------------------------------------------------------------
    # Tree
    # -------------------------------------------------------------------------

    @property
    def proxy(self) -> OverlayProxy[_T]:
        return self._proxy

    @property
    def parent(self) -> Overlay[Any] | None:
        return self._parent

    @property
    def root(self) -> Overlay[Any]:
        node: Overlay[Any] = self
        while node._parent is not None:
            node = node._parent
        return node

    @property
    def kind(self) -> Kind:
        return self._kind

    @property
    def config(self) -> OverlayConfig:
        return self._config

    def get_target(self) -> _T:
        """Return the object this node overlays."""
        return self._target

    def clone_proxy(self) -> OverlayProxy[_T]:
        """Return a fresh overlay of the same target, without any changes."""
        return Overlay(self._target, config=self._config).proxy

    def path(self, key: Key | None = None) -> str:
        """Dotted path of this node from the root, optionally extended by `key`."""
        parts: list[str] = [] if key is None else [str(key)]
        node: Overlay[Any] = self
        while node._parent is not None:
            parts.append(str(node._key))
            node = node._parent
        return ".".join(reversed(parts))

    def _child(self, key: Key, value: object) -> Overlay[Any]:
        child = self._children.get(key)
        if child is None:
            child = Overlay(value, parent=self, key=key, config=self._config)
            self._children[key] = child
        return child

    def _coerce_key(self, segment: str) -> Key:
        """Map a path segment back to a key; numeric segments may name int keys."""
        if not looks_like_index(segment):
            return segment
        if self._kind is Kind.SEQUENCE:
            return int(segment)
        # Int-keyed mappings render their keys as digits in paths.
        if self._kind is Kind.MAPPING and not self.has(segment) and self.has(int(segment)):
            return int(segment)
        return segment

    # -------------------------------------------------------------------------
    # Interception: read, write, remove, has, keys, describe
    # -------------------------------------------------------------------------

    def read(self, key: Key, default: Any = MISSING) -> Any:
        """Return the effective value of `key`.

        Pending assignments and removals win. On object targets a `property`
        getter is called with the proxy as `self`, and methods are returned
        bound to the proxy. Nested containers are returned as child proxies.

        Args:
          key: Mapping key, sequence index or attribute name.
          default: Returned when `key` is absent instead of raising.

        Returns:
          value: The effective value.

        Raises:
          KeyError: Absent mapping key and no default.
          IndexError: Absent sequence index and no default.
          AttributeError: Absent attribute and no default.

        """
        self._trace("get", key)
        pending = self._pending(key)
        if pending is _REMOVED:
            return self._absent(key, default)
        if pending is not MISSING:
            return pending
        accessor = self._accessor(key)
        if accessor is not None and accessor.getter is not None:
            return accessor.getter(self._proxy)
        try:
            value = read_own(self._target, key)
        except (KeyError, IndexError, AttributeError):
            return self._absent(key, default)
        if accessor is not None and accessor.method is not None and not self._shadowed(key):
            return MethodType(accessor.method, self._proxy)
        if not is_container(value):
            return value
        return self._child(key, value).proxy

    def write(self, key: Key, value: object) -> None:
        """Record `key = value` without touching the target.

        Writing a value structurally equal to the target's own value cancels
        any pending change for `key` instead of recording one.

        """
        self._trace("set", key, value)
        child = self._children.get(key)
        if child is not None and child.proxy is value:
            return
        if (
            isinstance(value, OverlayProxy)
            and not self._config.production
            and value.__veneer__.root is not self.root
        ):
            warnings.warn(
                f"Assigning an overlay of another object tree to {self.path(key)!r}; "
                "it is stored as-is.",
                OverlayWarning,
                stacklevel=3,
            )
        accessor = self._accessor(key)
        if accessor is not None and accessor.setter is not None:
            # The setter writes other keys through the proxy.
            accessor.setter(self._proxy, value)
            return
        self._record(key, value)

    def remove(self, key: Key) -> None:
        """Record the removal of `key`. Absent keys and class attributes are ignored."""
        self._trace("del", key)
        exists = owns_key(self._target, key)
        if not exists and not any(key in d.assigned for d in self._diffs()):
            return
        if self._is_tracked():
            diff = self._get_diff()
            if self._temp is not None:
                self._temp.discard(key)
        else:
            diff = self._get_temp()
        diff.assigned.pop(key, None)
        self._children.pop(key, None)
        # The untracked diff also has to hide keys assigned by the tracked one.
        if exists or diff is self._temp:
            diff.removed.add(key)
        self._on_change()

    def has(self, key: Key) -> bool:
        pending = self._pending(key)
        if pending is _REMOVED:
            return False
        if pending is not MISSING:
            return True
        return has_key(self._target, key)

    def keys(self) -> list[Key]:
        """Return the target's own keys plus assigned ones, minus removed ones."""
        assigned, removed = self._effective_diff()
        keys = [k for k in own_keys(self._target) if k not in removed]
        present = set(keys)
        keys.extend(k for k in assigned if k not in present)
        if self._kind is Kind.SEQUENCE:
            keys.sort()
        return keys

    def describe(self, key: Key) -> Descriptor:
        """Reflect on `key` the way `read` and `has` see it."""
        if key == RESERVED_KEY:
            return Descriptor(True, self, enumerable=False)
        pending = self._pending(key)
        if pending is _REMOVED:
            return Descriptor(False)
        if pending is not MISSING:
            return Descriptor(True, pending)
        if key not in own_keys(self._target):
            return Descriptor(False)
        return Descriptor(True, self.read(key))

    def equals(self, other: object) -> bool:
        """Compare the effective value with `other` structurally."""
        return deep_equal(self.unwrap(), other)

    # -------------------------------------------------------------------------
    # Changes
    # -------------------------------------------------------------------------

    def get_changes(
        self,
        prefix: str = "",
        pattern: PathPattern | None = None,
    ) -> ChangeDescription:
        """Return the flattened changes of this node and its descendants.

        The result is cached per prefix until the next change anywhere below
        this node; treat it as read-only.

        Args:
          prefix: Prepended to every path, e.g. "a." for the child at "a".
          pattern: Keep only paths containing this substring (str) or
            matching this regular expression (re.Pattern).

        Returns:
          changes: `{"assign": {path: value}, "remove": {path: True}}` with
            empty groups omitted.

        """
        if pattern is not None:
            return filter_changes(self.get_changes(prefix), pattern)
        cached = self._change_cache.get(prefix)
        if cached is not None:
            return cached
        assign: dict[str, object] = {}
        remove: dict[str, bool] = {}
        if self._diff is not None:
            for key, value in self._diff.assigned.items():
                assign[f"{prefix}{key}"] = value
            for key in self._diff.removed:
                remove[f"{prefix}{key}"] = True
        for key, child in self._children.items():
            nested = child.get_changes(f"{prefix}{key}.")
            assign.update(nested.get("assign", {}))
            remove.update(nested.get("remove", {}))
        changes: ChangeDescription = {}
        if assign:
            changes["assign"] = assign
        if remove:
            changes["remove"] = remove
        self._change_cache[prefix] = changes
        return changes

    def has_changes(self, pattern: PathPattern | None = None) -> bool:
        return bool(self.get_changes("", pattern))

    def is_dirty(self) -> bool:
        """Whether anything was ever recorded, even if since reverted."""
        return self._changed

    def reset(self, key: Key | None = None) -> None:
        """Drop pending changes for `key`, or for the whole node.

        The node stays dirty: `is_dirty()` keeps returning True.

        """
        if key is None:
            self._diff = None
            self._temp = None
            self._children.clear()
        else:
            for diff in self._diffs():
                diff.discard(key)
            self._children.pop(key, None)
        self._on_change()

    def merge_changes(
        self,
        changes: ChangeDescription,
        ignore_errors: bool = False,
    ) -> None:
        """Replay a change description as if its writes were made here."""
        _merge.merge_changes(self, changes, ignore_errors=ignore_errors)

    def unwrap(self, in_place: bool = False) -> _T:
        """Materialize the effective value (see `veneer.unwrap.unwrap`)."""
        return _unwrap.unwrap(self, in_place=in_place)

    @contextlib.contextmanager
    def untracked(self) -> Iterator[OverlayProxy[_T]]:
        """Suspend change tracking for this node and its descendants.

        Writes made inside are visible through the proxy and kept by `unwrap`,
        but they are left out of `get_changes` and do not mark anything dirty.

        """
        previous = self._tracked
        self._tracked = False
        try:
            yield self._proxy
        finally:
            self._tracked = previous

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _record(self, key: Key, value: object) -> None:
        if not self._is_tracked():
            temp = self._get_temp()
            temp.removed.discard(key)
            temp.assigned[key] = value
            self._children.pop(key, None)
            self._on_change()
            return
        diff = self._get_diff()
        cleared = self._temp is not None and self._temp.discard(key)
        original = self._original(key)
        if original is not MISSING and deep_equal(value, original):
            cleared = diff.discard(key) or cleared
            child = self._children.get(key)
            if child is not None and child.has_changes():
                del self._children[key]
                cleared = True
            if cleared:
                self._on_change()
            return
        diff.removed.discard(key)
        self._children.pop(key, None)
        diff.assigned[key] = value
        self._on_change()

    def _on_change(self) -> None:
        """Mark this node and its ancestors changed, clearing cached changes."""
        if not self._is_tracked():
            node: Overlay[Any] | None = self
            while node is not None:
                node._change_cache = {}
                node = node._parent
            return
        self._changed = True
        self._change_cache = {}
        if self._parent is not None:
            self._parent._on_change()

    def _is_tracked(self) -> bool:
        node: Overlay[Any] | None = self
        while node is not None:
            if not node._tracked:
                return False
            node = node._parent
        return True

    def _get_diff(self) -> _Diff:
        if self._diff is None:
            self._diff = _Diff()
        return self._diff

    def _get_temp(self) -> _Diff:
        if self._temp is None:
            self._temp = _Diff()
        return self._temp

    def _diffs(self) -> list[_Diff]:
        """Diffs in lookup order: untracked changes shadow tracked ones."""
        return [d for d in (self._temp, self._diff) if d is not None]

    def _pending(self, key: Key) -> Any:
        for diff in self._diffs():
            if key in diff.removed:
                return _REMOVED
            if key in diff.assigned:
                return diff.assigned[key]
        return MISSING

    def _effective_diff(self) -> tuple[dict[Key, object], set[Key]]:
        assigned: dict[Key, object] = {}
        removed: set[Key] = set()
        for diff in (self._diff, self._temp):
            if diff is None:
                continue
            for key, value in diff.assigned.items():
                assigned[key] = value
                removed.discard(key)
            for key in diff.removed:
                assigned.pop(key, None)
                removed.add(key)
        return assigned, removed

    def _original(self, key: Key) -> Any:
        if not has_key(self._target, key):
            return MISSING
        try:
            return read_own(self._target, key)
        except (KeyError, IndexError, AttributeError):
            return MISSING

    def _accessor(self, key: Key) -> Accessor | None:
        if self._kind is not Kind.OBJECT or not self._config.accessors:
            return None
        if not isinstance(key, str):
            return None
        return resolve_accessor(self._target, key)

    def _shadowed(self, key: Key) -> bool:
        return key in getattr(self._target, "__dict__", {})

    def _absent(self, key: Key, default: Any) -> Any:
        if default is not MISSING:
            return default
        name = type(self._target).__name__
        if self._kind is Kind.MAPPING:
            raise KeyError(key)
        if self._kind is Kind.SEQUENCE:
            raise IndexError(f"{name!r} overlay index {key!r} out of range")
        raise AttributeError(f"{name!r} overlay has no attribute {key!r}")

    def _trace(self, op: str, key: Key, *value: object) -> None:
        if not self._config.debug:
            return
        name = type(self._target).__name__
        where = f"{name}.{key}" if self._kind is Kind.OBJECT else f"{name}[{key!r}]"
        suffix = f" = {value[0]!r}" if value else ""
        print(f"  {op:<4}: {where}{suffix}")


def wrap(target: _T, config: OverlayConfig | None = None) -> OverlayProxy[_T]:
    """Return a proxy that records changes made to `target` without applying them.

    Args:
      target: A mapping, mutable sequence or plain/dataclass object.
      config: Options for the whole overlay tree.

    Returns:
      proxy: Reads like `target`; `proxy.__veneer__` is the root `Overlay`.

    """
    return Overlay.create(target, config=config)


def has_overlay(value: object) -> bool:
    return isinstance(value, OverlayProxy)


def get_overlay(value: object) -> Overlay[Any] | None:
    if isinstance(value, OverlayProxy):
        return value.__veneer__
    return None
