"""Materialize the effective value of an overlay."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar, cast

import copy

from veneer.paths import delete_key, put_key
from veneer.proxy import OverlayProxy
from veneer.traverse import Kind


if TYPE_CHECKING:
    from veneer.custom_types import Key
    from veneer.overlay import Overlay


__all__ = ["unwrap"]

_T = TypeVar("_T")


def _concrete(value: object) -> object:
    if isinstance(value, OverlayProxy):
        return value.__veneer__.unwrap()
    return value


def unwrap(overlay: Overlay[_T], in_place: bool = False) -> _T:
    """Return the overlay's effective value as a plain object.

    Children are unwrapped first (bottom-up), so the result contains no
    proxies. Untracked changes are included.

    Args:
      overlay: Node to materialize.
      in_place: Apply the changes onto the target itself and return it. The
        overlay keeps its recorded changes either way.

    Returns:
      value: With `in_place`, the target itself; otherwise a shallow copy of
        the target (same class) with the changes applied.

    """
    target = overlay.get_target()
    assigned, removed = overlay._effective_diff()  # noqa: SLF001
    assign_set: dict[Key, object] = {k: _concrete(v) for k, v in assigned.items()}
    for key, child in overlay._children.items():  # noqa: SLF001
        assign_set[key] = unwrap(child, in_place=in_place)

    base: Any
    if in_place:
        base = target
    elif isinstance(target, OverlayProxy):
        # An overlay of an overlay starts from the inner effective value.
        base = target.__veneer__.unwrap()
    else:
        base = copy.copy(target)

    if overlay.kind is Kind.SEQUENCE:
        for key in sorted(assign_set, key=int):
            put_key(base, key, assign_set[key])
        # Highest first so earlier deletions do not shift later indices.
        for key in sorted(removed, key=int, reverse=True):
            delete_key(base, key)
    else:
        for key, value in assign_set.items():
            put_key(base, key, value)
        for key in removed:
            delete_key(base, key)
    return cast("_T", base)
