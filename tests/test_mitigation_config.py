"""Tests for mitigation configuration parsing."""

import pytest

from shared.mitigation_config import (
    BlurStyle,
    ImageOverlay,
    MitigationConfig,
    MitigationConfigError,
    parse_blur_style,
    parse_rgba,
)


def test_parse_rgba_accepts_hex_and_tuples() -> None:
    assert parse_rgba("#FF0000") == (255, 0, 0, 255)
    assert parse_rgba("00ff0080") == (0, 255, 0, 128)
    assert parse_rgba((10, 20, 30)) == (10, 20, 30, 255)
    assert parse_rgba([1, 2, 3, 4]) == (1, 2, 3, 4)


@pytest.mark.parametrize("value", ["#12345", "#GGGGGG", (256, 0, 0), (1, 2), (True, 0, 0), 42])
def test_parse_rgba_rejects_malformed_values(value) -> None:
    with pytest.raises(MitigationConfigError):
        parse_rgba(value)


def test_parse_blur_style_normalises_names() -> None:
    assert parse_blur_style("Extra-Light") is BlurStyle.EXTRA_LIGHT
    assert parse_blur_style(BlurStyle.DARK) is BlurStyle.DARK
    with pytest.raises(MitigationConfigError):
        parse_blur_style("frosted")


def test_preference_rejects_non_overlay_entries() -> None:
    with pytest.raises(MitigationConfigError):
        MitigationConfig(overlay_preference=("blur",))


def test_image_overlay_equality_is_reference_identity() -> None:
    image = object()
    assert ImageOverlay(image) == ImageOverlay(image)
    assert ImageOverlay(image) != ImageOverlay(object())


def test_blur_styles_have_radius_and_tint() -> None:
    for style in BlurStyle:
        assert style.radius > 0
        assert len(style.tint) == 4
