"""Dotted paths: splitting, matching, and deep get/set/delete on plain values.

Paths use "." as separator. A segment made of digits addresses a sequence
index; nothing else in a path says whether a container is a list or a dict, so
`set_path` guesses from the next segment when it has to create one.
"""

from __future__ import annotations

from collections.abc import Sequence

import re

from veneer.custom_types import MISSING, ChangeDescription, Key, PathPattern
from veneer.traverse import Kind, is_container, kind_of


__all__ = [
    "delete_key",
    "delete_path",
    "filter_changes",
    "get_key",
    "looks_like_index",
    "path_matches",
    "put_key",
    "set_path",
    "split_head",
    "split_path",
]

_INDEX = re.compile(r"\d+")
_BRACKET_INDEX = re.compile(r"\[(\d+)\]")


def looks_like_index(segment: Key) -> bool:
    if isinstance(segment, int):
        return segment >= 0
    return _INDEX.fullmatch(segment) is not None


def split_path(path: str) -> list[str]:
    """Split a dotted path, accepting `a[0].b` as a spelling of `a.0.b`."""
    path = _BRACKET_INDEX.sub(r".\1", path)
    if path.startswith("."):
        path = path[1:]
    return path.split(".")


def split_head(path: str) -> tuple[str, str | None]:
    """Split off the first segment: `"a.b.c"` -> `("a", "b.c")`, `"a"` -> `("a", None)`."""
    head, sep, rest = path.partition(".")
    return head, (rest if sep else None)


def path_matches(path: str, pattern: PathPattern) -> bool:
    """Check a path against a literal substring (str) or a regular expression."""
    if isinstance(pattern, str):
        return pattern in path
    return pattern.search(path) is not None


def filter_changes(changes: ChangeDescription, pattern: PathPattern) -> ChangeDescription:
    """Keep only the entries of `changes` whose path matches `pattern`.

    Args:
      changes: A change description.
      pattern: Literal substring or compiled regular expression.

    Returns:
      filtered: A new change description; empty groups are omitted.

    """
    filtered: ChangeDescription = {}
    assign = {p: v for p, v in changes.get("assign", {}).items() if path_matches(p, pattern)}
    remove = {p: v for p, v in changes.get("remove", {}).items() if path_matches(p, pattern)}
    if assign:
        filtered["assign"] = assign
    if remove:
        filtered["remove"] = remove
    return filtered


# -----------------------------------------------------------------------------
# Single-key access on plain containers
# -----------------------------------------------------------------------------


def get_key(container: object, key: Key) -> object:
    """Return `container[key]` / `container.key`, or MISSING."""
    kind = kind_of(container)
    if kind is Kind.MAPPING:
        return container.get(key, MISSING)  # pyright: ignore[reportAttributeAccessIssue]
    if kind is Kind.SEQUENCE:
        if not looks_like_index(key):
            return MISSING
        index = int(key)
        return container[index] if index < len(container) else MISSING  # pyright: ignore[reportIndexIssue, reportArgumentType]
    if kind is Kind.OBJECT:
        return getattr(container, str(key), MISSING)
    return MISSING


def put_key(container: object, key: Key, value: object) -> None:
    """Set one key. Sequences grow with None up to the index.

    Raises:
      TypeError: `container` is a leaf, or `key` is not an index of a sequence.

    """
    kind = kind_of(container)
    if kind is Kind.MAPPING:
        container[key] = value  # pyright: ignore[reportIndexIssue]
    elif kind is Kind.SEQUENCE:
        if not looks_like_index(key):
            raise TypeError(f"cannot set non-index key {key!r} on a sequence")
        index = int(key)
        while len(container) < index:  # pyright: ignore[reportArgumentType]
            container.append(None)  # pyright: ignore[reportAttributeAccessIssue]
        if index == len(container):  # pyright: ignore[reportArgumentType]
            container.append(value)  # pyright: ignore[reportAttributeAccessIssue]
        else:
            container[index] = value  # pyright: ignore[reportIndexIssue]
    elif kind is Kind.OBJECT:
        try:
            setattr(container, str(key), value)
        except AttributeError:
            # Frozen dataclasses and read-only properties.
            vars(container)[str(key)] = value
    else:
        raise TypeError(f"cannot set {key!r} on a {type(container).__name__!r} value")


def delete_key(container: object, key: Key) -> bool:
    """Delete one key, returning whether it was there."""
    kind = kind_of(container)
    if kind is Kind.MAPPING:
        if key not in container:  # pyright: ignore[reportOperatorIssue]
            return False
        del container[key]  # pyright: ignore[reportIndexIssue]
        return True
    if kind is Kind.SEQUENCE:
        if not looks_like_index(key) or int(key) >= len(container):  # pyright: ignore[reportArgumentType]
            return False
        del container[int(key)]  # pyright: ignore[reportIndexIssue]
        return True
    if kind is Kind.OBJECT:
        name = str(key)
        try:
            delattr(container, name)
        except AttributeError:
            instance_dict = getattr(container, "__dict__", None)
            if instance_dict is None or name not in instance_dict:
                return False
            del instance_dict[name]
        return True
    return False


# -----------------------------------------------------------------------------
# Deep access
# -----------------------------------------------------------------------------


def set_path(root: object, path: str | Sequence[str], value: object) -> object:
    """Set `value` at `path` under `root`, creating missing containers.

    A missing (or leaf) intermediate becomes a list when the next segment looks
    like an index, and a dict otherwise.

    Args:
      root: Container to modify in place. Leaves are returned untouched.
      path: Dotted path or list of segments.
      value: Value to store.

    Returns:
      root: The same `root`.

    """
    if not is_container(root):
        return root
    keys = split_path(path) if isinstance(path, str) else list(path)
    current = root
    for i, key in enumerate(keys[:-1]):
        nxt = get_key(current, key)
        if not is_container(nxt):
            nxt = [] if looks_like_index(keys[i + 1]) else {}
            put_key(current, key, nxt)
        current = nxt
    put_key(current, keys[-1], value)
    return root


def delete_path(root: object, path: str | Sequence[str]) -> bool:
    """Delete the value at `path` under `root`; missing paths are ignored.

    Returns:
      deleted: Whether something was removed.

    """
    keys = split_path(path) if isinstance(path, str) else list(path)
    current = root
    for key in keys[:-1]:
        current = get_key(current, key)
        if not is_container(current):
            return False
    return delete_key(current, keys[-1])
