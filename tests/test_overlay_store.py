"""Tests for the overlay mitigation store."""

import shiboken6
from PySide6.QtCore import Qt
from PySide6.QtGui import QColor, QPixmap
from PySide6.QtWidgets import QWidget

from core.overlay_store import OverlayStore
from shared.mitigation_config import (
    NO_OVERLAY,
    BlurOverlay,
    BlurStyle,
    ColorOverlay,
    ImageOverlay,
)

RED = ColorOverlay((255, 0, 0, 255))


def _overlays(surface: QWidget) -> list[QWidget]:
    return [
        child
        for child in surface.findChildren(QWidget)
        if child.objectName() == "CaptureMitigationOverlay"
    ]


def test_apply_attaches_single_non_interactive_overlay(surface) -> None:
    store = OverlayStore(surface)
    store.apply(RED)

    overlays = _overlays(surface)
    assert store.active == RED
    assert store.overlay_count() == 1
    assert len(overlays) == 1
    assert overlays[0].testAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents)
    assert overlays[0].geometry() == surface.rect()


def test_applying_another_kind_replaces_previous(surface) -> None:
    store = OverlayStore(surface)
    store.apply(BlurOverlay(BlurStyle.LIGHT))
    store.apply(RED)

    assert store.active == RED
    assert store.overlay_count() == 1


def test_applying_same_kind_keeps_existing_widget(surface) -> None:
    store = OverlayStore(surface)
    store.apply(RED)
    first = _overlays(surface)[0]
    store.apply(ColorOverlay((255, 0, 0, 255)))

    assert _overlays(surface) == [first]


def test_clear_is_idempotent(surface) -> None:
    store = OverlayStore(surface)
    store.clear()
    store.apply(RED)
    store.clear()
    store.clear()

    assert store.active == NO_OVERLAY
    assert store.overlay_count() == 0


def test_no_overlay_kind_clears(surface) -> None:
    store = OverlayStore(surface)
    store.apply(BlurOverlay())
    store.apply(NO_OVERLAY)

    assert store.active == NO_OVERLAY
    assert store.overlay_count() == 0


def test_image_overlay_covers_surface(surface) -> None:
    pixmap = QPixmap(40, 20)
    pixmap.fill(QColor("navy"))
    kind = ImageOverlay(pixmap)
    store = OverlayStore(surface)
    store.apply(kind)

    assert store.active == kind
    assert store.overlay_count() == 1
    assert _overlays(surface)[0].size() == surface.size()


def test_overlay_follows_surface_resize(qapp, surface) -> None:
    store = OverlayStore(surface)
    store.apply(RED)
    surface.resize(500, 400)
    qapp.processEvents()

    assert _overlays(surface)[0].geometry() == surface.rect()


def test_apply_on_destroyed_surface_is_noop(qapp) -> None:
    window = QWidget()
    window.show()
    store = OverlayStore(window)
    store.apply(RED)
    shiboken6.delete(window)

    store.apply(BlurOverlay())
    store.clear()

    assert store.surface is None
    assert store.active == NO_OVERLAY
    assert store.overlay_count() == 0
