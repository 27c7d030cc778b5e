"""Tests for the overlay decision function."""

from core.mitigation_policy import decide
from shared.mitigation_config import (
    NO_OVERLAY,
    BlurOverlay,
    BlurStyle,
    ColorOverlay,
    MitigationConfig,
)


def test_no_overlay_when_not_recording() -> None:
    config = MitigationConfig(overlay_preference=(BlurOverlay(), ColorOverlay()))
    assert decide(False, config) == NO_OVERLAY


def test_blur_wins_over_color_on_every_call() -> None:
    config = MitigationConfig(
        overlay_preference=(BlurOverlay(BlurStyle.DARK), ColorOverlay((255, 0, 0, 255)))
    )
    results = {decide(True, config) for _ in range(5)}
    assert results == {BlurOverlay(BlurStyle.DARK)}


def test_empty_entries_are_skipped() -> None:
    config = MitigationConfig(overlay_preference=(NO_OVERLAY, ColorOverlay((0, 0, 255, 255))))
    assert decide(True, config) == ColorOverlay((0, 0, 255, 255))


def test_no_overlay_when_nothing_configured() -> None:
    assert decide(True, MitigationConfig()) == NO_OVERLAY


def test_from_overlays_orders_blur_color_image() -> None:
    image = "shield.png"
    config = MitigationConfig.from_overlays(image=image, color="#ff0000", blur="dark")
    kinds = [type(kind).__name__ for kind in config.overlay_preference]
    assert kinds == ["BlurOverlay", "ColorOverlay", "ImageOverlay"]
    assert decide(True, config) == BlurOverlay(BlurStyle.DARK)
