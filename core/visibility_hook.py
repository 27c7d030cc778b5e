"""
Visibility-driven protection: a widget's show/hide events enable and disable
its capture mitigation controller.
"""

from __future__ import annotations

from typing import Optional

from PySide6.QtCore import QEvent, QObject
from PySide6.QtWidgets import QWidget

from core.capture_signals import CaptureSignalBus
from core.controller import CaptureMitigationController, SurfaceUnavailable, widget_window_provider
from core.render_barrier import RenderBarrier
from secure_screen.secure_screen import logger as app_logger
from shared.mitigation_config import MitigationConfig

_LOGGER = app_logger.get_logger()


class ScreenProtectionHook(QObject):
    """
    Event filter mapping ``Show`` to ``enable`` and ``Hide``/``Close`` to
    ``disable``. A show that happens before the window has a surface is logged
    and retried on the next show.
    """

    def __init__(self, widget: QWidget, controller: CaptureMitigationController) -> None:
        super().__init__(widget)
        self._widget = widget
        self._controller = controller
        self._attached = True
        widget.installEventFilter(self)
        if widget.isVisible():
            self._enable()

    @property
    def controller(self) -> CaptureMitigationController:
        return self._controller

    def detach(self) -> None:
        if not self._attached:
            return
        self._attached = False
        self._widget.removeEventFilter(self)
        self._controller.disable()

    def eventFilter(self, watched: QObject, event: QEvent) -> bool:  # noqa: N802
        if self._attached and watched is self._widget:
            event_type = event.type()
            if event_type == QEvent.Type.Show:
                self._enable()
            elif event_type in (QEvent.Type.Hide, QEvent.Type.Close):
                self._controller.disable()
        return super().eventFilter(watched, event)

    def _enable(self) -> None:
        try:
            self._controller.enable()
        except SurfaceUnavailable:
            name = self._widget.objectName() or type(self._widget).__name__
            _LOGGER.warning("Window for {} not available yet; protection deferred to next show.", name)
        except OSError as exc:
            _LOGGER.warning("Capture observation unavailable ({}); window shown unprotected.", exc)


def protect_widget(
    widget: QWidget,
    config: Optional[MitigationConfig] = None,
    *,
    barrier: Optional[RenderBarrier] = None,
    bus: Optional[CaptureSignalBus] = None,
) -> ScreenProtectionHook:
    """Protect ``widget`` for as long as it is visible."""
    controller = CaptureMitigationController(
        config,
        widget_window_provider(widget),
        barrier=barrier,
        bus=bus,
        parent=widget,
    )
    return ScreenProtectionHook(widget, controller)
