"""
Shared representation of the mitigation overlays and controller configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, Union

from PySide6.QtGui import QImage, QPixmap


class MitigationConfigError(ValueError):
    """Raised when overlay or controller configuration values are malformed."""


class BlurStyle(Enum):
    EXTRA_LIGHT = "extra_light"
    LIGHT = "light"
    REGULAR = "regular"
    DARK = "dark"
    PROMINENT = "prominent"

    @property
    def radius(self) -> float:
        return _BLUR_RADIUS[self]

    @property
    def tint(self) -> Tuple[int, int, int, int]:
        return _BLUR_TINT[self]


_BLUR_RADIUS = {
    BlurStyle.EXTRA_LIGHT: 18.0,
    BlurStyle.LIGHT: 24.0,
    BlurStyle.REGULAR: 30.0,
    BlurStyle.DARK: 30.0,
    BlurStyle.PROMINENT: 40.0,
}

_BLUR_TINT = {
    BlurStyle.EXTRA_LIGHT: (255, 255, 255, 150),
    BlurStyle.LIGHT: (255, 255, 255, 90),
    BlurStyle.REGULAR: (242, 242, 247, 70),
    BlurStyle.DARK: (17, 24, 39, 150),
    BlurStyle.PROMINENT: (229, 229, 234, 170),
}


RGBA = Tuple[int, int, int, int]
ImageSource = Union[QPixmap, QImage, Path, str]


@dataclass(frozen=True)
class NoOverlay:
    """Absence of any mitigation overlay."""

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True)
class BlurOverlay:
    style: BlurStyle = BlurStyle.LIGHT


@dataclass(frozen=True)
class ColorOverlay:
    rgba: RGBA = (0, 0, 0, 255)


@dataclass(frozen=True, eq=False)
class ImageOverlay:
    """
    Image mitigation. The bitmap is an inert leaf, so equality is identity of
    the referenced image rather than a pixel comparison.
    """

    image: ImageSource

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ImageOverlay):
            return NotImplemented
        return self.image is other.image

    def __hash__(self) -> int:
        return id(self.image)

    def to_pixmap(self) -> QPixmap:
        if isinstance(self.image, QPixmap):
            return self.image
        if isinstance(self.image, QImage):
            return QPixmap.fromImage(self.image)
        return QPixmap(str(self.image))


OverlayKind = Union[NoOverlay, BlurOverlay, ColorOverlay, ImageOverlay]

NO_OVERLAY = NoOverlay()


@dataclass(frozen=True)
class MitigationConfig:
    """
    Immutable configuration for a capture mitigation controller.

    ``overlay_preference`` is ordered by precedence; only the first usable entry
    is ever shown while recording is in progress.
    """

    observe_recording: bool = False
    observe_screenshots: bool = False
    overlay_preference: Tuple[OverlayKind, ...] = ()
    on_recording_changed: Optional[Callable[[bool], None]] = None
    on_screenshot: Optional[Callable[[], None]] = None

    def __post_init__(self) -> None:
        preference = tuple(self.overlay_preference)
        for entry in preference:
            if not isinstance(entry, (NoOverlay, BlurOverlay, ColorOverlay, ImageOverlay)):
                raise MitigationConfigError(
                    f"overlay_preference entries must be overlay kinds, got {entry!r}."
                )
        object.__setattr__(self, "overlay_preference", preference)

    @classmethod
    def from_overlays(
        cls,
        *,
        observe_recording: bool = False,
        observe_screenshots: bool = False,
        blur: Optional[Union[BlurStyle, str]] = None,
        color: Optional[Union[RGBA, str]] = None,
        image: Optional[ImageSource] = None,
        on_recording_changed: Optional[Callable[[bool], None]] = None,
        on_screenshot: Optional[Callable[[], None]] = None,
    ) -> "MitigationConfig":
        """Build a config whose preference follows the blur, color, image precedence."""
        preference: list[OverlayKind] = []
        if blur is not None:
            preference.append(BlurOverlay(parse_blur_style(blur)))
        if color is not None:
            preference.append(ColorOverlay(parse_rgba(color)))
        if image is not None:
            preference.append(ImageOverlay(image))
        return cls(
            observe_recording=observe_recording,
            observe_screenshots=observe_screenshots,
            overlay_preference=tuple(preference),
            on_recording_changed=on_recording_changed,
            on_screenshot=on_screenshot,
        )


def parse_blur_style(value: Any) -> BlurStyle:
    if isinstance(value, BlurStyle):
        return value
    if not isinstance(value, str) or not value.strip():
        raise MitigationConfigError("blur style must be a non-empty string.")
    cleaned = value.strip().lower().replace("-", "_")
    try:
        return BlurStyle(cleaned)
    except ValueError as exc:
        allowed = ", ".join(style.value for style in BlurStyle)
        raise MitigationConfigError(f"blur style must be one of: {allowed}.") from exc


def parse_rgba(value: Any) -> RGBA:
    """
    Normalise a color to an RGBA tuple.

    Accepts ``(r, g, b)`` / ``(r, g, b, a)`` sequences of 0-255 integers and
    ``#RRGGBB`` / ``#RRGGBBAA`` hex strings.
    """
    if isinstance(value, str):
        return _parse_hex_color(value)

    if isinstance(value, (tuple, list)) and len(value) in (3, 4):
        channels = list(value)
        if len(channels) == 3:
            channels.append(255)
        for channel in channels:
            if isinstance(channel, bool) or not isinstance(channel, int) or not 0 <= channel <= 255:
                raise MitigationConfigError("color channels must be integers between 0 and 255.")
        return (channels[0], channels[1], channels[2], channels[3])

    raise MitigationConfigError("color must be an RGB(A) tuple or a #RRGGBB[AA] string.")


def _parse_hex_color(value: str) -> RGBA:
    cleaned = value.strip().lstrip("#")
    if len(cleaned) not in (6, 8):
        raise MitigationConfigError("color must be in #RRGGBB or #RRGGBBAA format.")
    try:
        channels = [int(cleaned[index:index + 2], 16) for index in range(0, len(cleaned), 2)]
    except ValueError as exc:
        raise MitigationConfigError(f"color '{value}' is not valid hexadecimal.") from exc
    if len(channels) == 3:
        channels.append(255)
    return (channels[0], channels[1], channels[2], channels[3])
