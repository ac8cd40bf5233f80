"""Replay a flattened change description onto a live overlay tree.

Top-level entries are applied to the node directly. Dotted entries are grouped
by their first segment and each group is resolved against whatever currently
lives under that key: a value already assigned on this node, a child node over
the target's own value, or (with a warning) nothing at all.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import copy
import dataclasses
import warnings

from veneer.custom_types import MISSING, ChangeDescription, Key
from veneer.errors import InvalidModifierError, OverlayWarning
from veneer.paths import delete_path, set_path, split_head, split_path
from veneer.proxy import OverlayProxy
from veneer.traverse import is_container


if TYPE_CHECKING:
    from veneer.overlay import Overlay


__all__ = ["merge_changes"]

# Paths below a value that is already assigned (not overlaid) are applied to
# that value directly, at most this many segments deep.
_MAX_ASSIGNED_DEPTH = 2


@dataclasses.dataclass
class _Bucket:
    """Entries sharing one head key, with the head stripped off."""

    assign: dict[str, object] = dataclasses.field(default_factory=dict)
    remove: dict[str, bool] = dataclasses.field(default_factory=dict)

    def changes(self) -> ChangeDescription:
        changes: ChangeDescription = {}
        if self.assign:
            changes["assign"] = dict(self.assign)
        if self.remove:
            changes["remove"] = dict(self.remove)
        return changes

    def paths(self) -> list[str]:
        return [*self.assign, *self.remove]


def merge_changes(
    overlay: Overlay[Any],
    changes: ChangeDescription,
    ignore_errors: bool = False,
) -> None:
    """Apply `changes` to `overlay` as if the writes had been made through it.

    Merging is last-writer-wins: incoming entries replace whatever the overlay
    recorded for the same paths. If a group raises, groups resolved before it
    stay applied and the remaining ones are skipped; the tree stays usable.

    Args:
      overlay: Node to merge into.
      changes: Description as produced by `Overlay.get_changes`.
      ignore_errors: Drop groups that cannot be resolved instead of raising.

    Raises:
      InvalidModifierError: A group cannot be resolved and `ignore_errors` is
        False.

    """
    assign = changes.get("assign") or {}
    remove = changes.get("remove") or {}
    if not assign and not remove:
        return

    buckets: dict[Key, _Bucket] = {}
    for path, value in assign.items():
        head, rest = split_head(path)
        key = overlay._coerce_key(head)  # noqa: SLF001
        if rest is None:
            overlay._trace("mrg", key, value)  # noqa: SLF001
            overlay._record(key, value)  # noqa: SLF001
        else:
            buckets.setdefault(key, _Bucket()).assign[rest] = value
    for path in remove:
        head, rest = split_head(path)
        key = overlay._coerce_key(head)  # noqa: SLF001
        if rest is None:
            overlay.remove(key)
        else:
            buckets.setdefault(key, _Bucket()).remove[rest] = True

    try:
        for key, bucket in buckets.items():
            _resolve(overlay, key, bucket, ignore_errors)
    finally:
        # Invalidate even when nothing changed in content.
        overlay._on_change()  # noqa: SLF001


def _resolve(
    overlay: Overlay[Any],
    key: Key,
    bucket: _Bucket,
    ignore_errors: bool,
) -> None:
    pending = overlay._pending(key)  # noqa: SLF001
    if isinstance(pending, OverlayProxy):
        # A proxy stored as a value is patched through its effective value.
        pending = pending.__veneer__.unwrap()
    if is_container(pending):
        _apply_to_assigned(overlay, key, pending, bucket, ignore_errors)
        return

    if pending is MISSING:
        original = overlay._original(key)  # noqa: SLF001
        if is_container(original):
            child = overlay._child(key, original)  # noqa: SLF001
            merge_changes(child, bucket.changes(), ignore_errors=ignore_errors)
            return

    warnings.warn(
        f"Merging changes below {overlay.path(key)!r}, which has no existing "
        "value to merge into.",
        OverlayWarning,
        stacklevel=3,
    )
    if bucket.remove or not bucket.assign or any("." in p for p in bucket.assign):
        if ignore_errors:
            return
        raise InvalidModifierError(
            f"{overlay.path(key)}.{bucket.paths()[0]}",
            "only a flat assignment can create a missing object",
        )
    overlay._record(key, dict(bucket.assign))  # noqa: SLF001


def _apply_to_assigned(
    overlay: Overlay[Any],
    key: Key,
    assigned: object,
    bucket: _Bucket,
    ignore_errors: bool,
) -> None:
    for path in bucket.paths():
        if len(split_path(path)) > _MAX_ASSIGNED_DEPTH:
            if ignore_errors:
                return
            raise InvalidModifierError(
                f"{overlay.path(key)}.{path}",
                f"more than {_MAX_ASSIGNED_DEPTH} levels below an assigned value",
            )
    # The assigned value may be shared with the overlay the changes came from.
    patched = copy.deepcopy(assigned)
    try:
        for path, value in bucket.assign.items():
            set_path(patched, path, value)
        for path in bucket.remove:
            delete_path(patched, path)
    except TypeError as e:
        if ignore_errors:
            return
        raise InvalidModifierError(overlay.path(key), str(e)) from e
    overlay._record(key, patched)  # noqa: SLF001
