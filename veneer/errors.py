"""Exceptions and warnings raised by overlays."""

from __future__ import annotations


__all__ = [
    "InvalidModifierError",
    "OverlayWarning",
]


class OverlayWarning(UserWarning):
    """Recoverable condition noticed while recording or merging changes."""


class InvalidModifierError(ValueError):
    """A change description could not be applied to an overlay.

    Attributes:
      path: Dotted path of the entry that could not be resolved.

    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"invalid modifier for {path!r}: {reason}")
        self.path = path
