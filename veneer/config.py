"""Construction-time options for overlays."""

from __future__ import annotations

import dataclasses


__all__ = ["DEFAULT_CONFIG", "OverlayConfig"]


@dataclasses.dataclass(frozen=True)
class OverlayConfig:
    """Options shared by every node of one overlay tree.

    Attributes:
      accessors: Resolve `property` getters/setters and bind methods to the
        overlay, so accessor logic observes overlaid state.
      production: Skip the check that warns when a proxy from another overlay
        tree is assigned as a value.
      debug: Print a trace line for every read, write, remove and merge.

    """

    accessors: bool = True
    production: bool = False
    debug: bool = False


DEFAULT_CONFIG = OverlayConfig()
