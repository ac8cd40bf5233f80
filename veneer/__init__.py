"""Veneer: record changes to an object graph without mutating it."""

from __future__ import annotations

from veneer.config import OverlayConfig
from veneer.custom_types import ChangeDescription, Descriptor
from veneer.errors import InvalidModifierError, OverlayWarning
from veneer.overlay import RESERVED_KEY, Overlay, get_overlay, has_overlay, wrap
from veneer.paths import filter_changes
from veneer.proxy import MappingOverlayProxy, OverlayProxy, SequenceOverlayProxy


__all__ = [
    "RESERVED_KEY",
    "ChangeDescription",
    "Descriptor",
    "InvalidModifierError",
    "MappingOverlayProxy",
    "Overlay",
    "OverlayConfig",
    "OverlayProxy",
    "OverlayWarning",
    "SequenceOverlayProxy",
    "filter_changes",
    "get_overlay",
    "has_overlay",
    "wrap",
]
