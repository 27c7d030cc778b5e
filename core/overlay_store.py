"""
Overlay mitigation store holding at most one overlay above a protected surface.
"""

from __future__ import annotations

import weakref
from typing import Optional

import shiboken6
from PySide6.QtCore import QEvent, QObject, Qt
from PySide6.QtGui import QColor, QPalette, QPixmap
from PySide6.QtWidgets import QGraphicsBlurEffect, QLabel, QWidget

from secure_screen.secure_screen import logger as app_logger
from shared.mitigation_config import (
    NO_OVERLAY,
    BlurOverlay,
    ColorOverlay,
    ImageOverlay,
    NoOverlay,
    OverlayKind,
)

_LOGGER = app_logger.get_logger()

OVERLAY_OBJECT_NAME = "CaptureMitigationOverlay"


class MitigationOverlay(QWidget):
    """Non-interactive overlay widget stretched over its parent surface."""

    def __init__(self, kind: OverlayKind, parent: QWidget) -> None:
        super().__init__(parent)
        self.kind = kind
        self.setObjectName(OVERLAY_OBJECT_NAME)
        self.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
        self.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self.setGeometry(parent.rect())

    def fit_to_parent(self) -> None:
        parent = self.parentWidget()
        if parent is not None:
            self.setGeometry(parent.rect())


class _BlurMitigation(MitigationOverlay):
    def __init__(self, kind: BlurOverlay, parent: QWidget) -> None:
        super().__init__(kind, parent)
        # Snapshot before the overlay itself is shown.
        snapshot = parent.grab()

        self._snapshot = QLabel(self)
        self._snapshot.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
        self._snapshot.setScaledContents(True)
        self._snapshot.setPixmap(snapshot)
        effect = QGraphicsBlurEffect(self._snapshot)
        effect.setBlurRadius(kind.style.radius)
        effect.setBlurHints(QGraphicsBlurEffect.BlurHint.QualityHint)
        self._snapshot.setGraphicsEffect(effect)

        self._tint = QWidget(self)
        self._tint.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
        _fill(self._tint, QColor(*kind.style.tint))
        self._layout_children()

    def fit_to_parent(self) -> None:
        super().fit_to_parent()
        self._layout_children()

    def _layout_children(self) -> None:
        self._snapshot.setGeometry(self.rect())
        self._tint.setGeometry(self.rect())


class _ColorMitigation(MitigationOverlay):
    def __init__(self, kind: ColorOverlay, parent: QWidget) -> None:
        super().__init__(kind, parent)
        _fill(self, QColor(*kind.rgba))


class _ImageMitigation(MitigationOverlay):
    def __init__(self, kind: ImageOverlay, parent: QWidget) -> None:
        super().__init__(kind, parent)
        self._source = kind.to_pixmap()
        self._label = QLabel(self)
        self._label.setAttribute(Qt.WidgetAttribute.WA_TransparentForMouseEvents, True)
        self._label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        if self._source.isNull():
            _LOGGER.warning("Overlay image could not be loaded; showing an opaque fill instead.")
            _fill(self, QColor(0, 0, 0, 255))
        self._layout_children()

    def fit_to_parent(self) -> None:
        super().fit_to_parent()
        self._layout_children()

    def _layout_children(self) -> None:
        self._label.setGeometry(self.rect())
        if self._source.isNull() or self.width() <= 0 or self.height() <= 0:
            return
        # Aspect fill: scale to cover, then crop the overflow around the center.
        scaled = self._source.scaled(
            self.size(),
            Qt.AspectRatioMode.KeepAspectRatioByExpanding,
            Qt.TransformationMode.SmoothTransformation,
        )
        x = max(0, (scaled.width() - self.width()) // 2)
        y = max(0, (scaled.height() - self.height()) // 2)
        self._label.setPixmap(scaled.copy(x, y, self.width(), self.height()))


def _fill(widget: QWidget, color: QColor) -> None:
    palette = widget.palette()
    palette.setColor(QPalette.ColorRole.Window, color)
    widget.setPalette(palette)
    widget.setAutoFillBackground(True)


def _build_overlay(kind: OverlayKind, surface: QWidget) -> MitigationOverlay:
    if isinstance(kind, BlurOverlay):
        return _BlurMitigation(kind, surface)
    if isinstance(kind, ColorOverlay):
        return _ColorMitigation(kind, surface)
    if isinstance(kind, ImageOverlay):
        return _ImageMitigation(kind, surface)
    raise TypeError(f"Unsupported overlay kind: {kind!r}")


class OverlayStore(QObject):
    """
    Applies mitigation overlays over one surface, never more than one at a time.

    The surface is held weakly; the store never closes or deletes it. Once the
    surface is destroyed, ``apply`` turns into a no-op.
    """

    def __init__(self, surface: Optional[QWidget] = None, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._surface_ref: Optional[weakref.ReferenceType[QWidget]] = None
        self._overlay: Optional[MitigationOverlay] = None
        self._active: OverlayKind = NO_OVERLAY
        if surface is not None:
            self.attach(surface)

    @property
    def active(self) -> OverlayKind:
        return self._active

    @property
    def surface(self) -> Optional[QWidget]:
        surface = self._surface_ref() if self._surface_ref is not None else None
        if surface is None or not shiboken6.isValid(surface):
            return None
        return surface

    def attach(self, surface: QWidget) -> None:
        """Point the store at ``surface``; an overlay on a previous surface is cleared."""
        current = self.surface
        if current is surface:
            return
        self.clear()
        if current is not None:
            current.removeEventFilter(self)
        self._surface_ref = weakref.ref(surface)
        surface.installEventFilter(self)

    def apply(self, kind: OverlayKind) -> None:
        if isinstance(kind, NoOverlay):
            self.clear()
            return
        if kind == self._active and self._overlay_alive():
            return

        surface = self.surface
        if surface is None:
            _LOGGER.debug("Overlay {} skipped; protected surface is gone.", type(kind).__name__)
            self.clear()
            return

        self.clear()
        overlay = _build_overlay(kind, surface)
        overlay.raise_()
        overlay.show()
        self._overlay = overlay
        self._active = kind
        _LOGGER.info("Applied {} mitigation overlay.", type(kind).__name__)

    def clear(self) -> None:
        overlay = self._overlay
        previous = self._active
        self._overlay = None
        self._active = NO_OVERLAY
        if overlay is None:
            return
        if shiboken6.isValid(overlay):
            overlay.hide()
            overlay.setParent(None)
            overlay.deleteLater()
        _LOGGER.info("Removed {} mitigation overlay.", type(previous).__name__)

    def overlay_count(self) -> int:
        """Number of mitigation overlays currently attached to the surface."""
        surface = self.surface
        if surface is None:
            return 0
        return len(
            surface.findChildren(
                QWidget,
                OVERLAY_OBJECT_NAME,
                Qt.FindChildOption.FindDirectChildrenOnly,
            )
        )

    def detach(self) -> None:
        self.clear()
        surface = self.surface
        if surface is not None:
            surface.removeEventFilter(self)
        self._surface_ref = None

    def eventFilter(self, watched: QObject, event: QEvent) -> bool:  # noqa: N802
        if (
            event.type() == QEvent.Type.Resize
            and self._overlay_alive()
            and watched is self._overlay.parentWidget()
        ):
            self._overlay.fit_to_parent()
        return super().eventFilter(watched, event)

    def _overlay_alive(self) -> bool:
        return self._overlay is not None and shiboken6.isValid(self._overlay)
