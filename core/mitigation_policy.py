"""
Decision function mapping capture state to the overlay that should be shown.
"""

from __future__ import annotations

from shared.mitigation_config import NO_OVERLAY, MitigationConfig, NoOverlay, OverlayKind


def decide(is_recording: bool, config: MitigationConfig) -> OverlayKind:
    """
    Return the overlay to show for the given capture state.

    Nothing is shown while the screen is not being recorded. While it is, the
    highest-precedence configured overlay wins; the others are never used.
    """
    if not is_recording:
        return NO_OVERLAY
    for kind in config.overlay_preference:
        if not isinstance(kind, NoOverlay):
            return kind
    return NO_OVERLAY
