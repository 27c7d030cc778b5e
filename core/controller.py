"""
Capture mitigation controller coordinating barrier, signals and overlays.
"""

from __future__ import annotations

import weakref
from enum import Enum
from typing import Callable, Optional

import shiboken6
from PySide6.QtCore import QObject, QThread, Signal
from PySide6.QtWidgets import QApplication, QWidget

from core.capture_signals import CaptureSignalBus, SignalKind
from core.mitigation_policy import decide
from core.overlay_store import OverlayStore
from core.render_barrier import BarrierState, RenderBarrier, default_barrier
from secure_screen.secure_screen import logger as app_logger
from shared.mitigation_config import MitigationConfig, OverlayKind

SurfaceProvider = Callable[[], Optional[QWidget]]


class SurfaceUnavailable(RuntimeError):
    """Raised by ``enable`` when no render surface can be resolved yet."""


class ControllerState(Enum):
    DISABLED = "Disabled"
    ENABLED = "Enabled"


def active_window_provider() -> Optional[QWidget]:
    """Return the application's active top-level window, if any."""
    return QApplication.activeWindow()


def widget_window_provider(widget: QWidget) -> SurfaceProvider:
    """Return a provider resolving the window of ``widget`` once it is shown."""
    widget_ref = weakref.ref(widget)

    def provider() -> Optional[QWidget]:
        target = widget_ref()
        if target is None or not shiboken6.isValid(target) or not target.isVisible():
            return None
        return target.window()

    return provider


class CaptureMitigationController(QObject):
    """
    Two-state (Disabled/Enabled) coordinator for screen capture protection.

    While enabled the protected window carries the render barrier, the
    configured capture signals are subscribed, and the overlay store mirrors the
    policy decision for the latest recording state. ``enable`` and ``disable``
    are idempotent and must be called from the thread that owns the controller.
    """

    recordingChanged = Signal(bool)
    screenshotTaken = Signal()
    stateChanged = Signal(str)

    def __init__(
        self,
        config: Optional[MitigationConfig] = None,
        surface_provider: Optional[SurfaceProvider] = None,
        *,
        barrier: Optional[RenderBarrier] = None,
        bus: Optional[CaptureSignalBus] = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._logger = app_logger.get_logger()
        self._config = config or MitigationConfig()
        self._surface_provider = surface_provider or active_window_provider
        self._barrier = barrier if barrier is not None else default_barrier()
        self._bus = bus if bus is not None else CaptureSignalBus(parent=self)
        self._store = OverlayStore(parent=self)
        self._state = ControllerState.DISABLED
        self._is_recording = False

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def is_enabled(self) -> bool:
        return self._state is ControllerState.ENABLED

    @property
    def is_recording(self) -> bool:
        return self._is_recording

    @property
    def config(self) -> MitigationConfig:
        return self._config

    @property
    def barrier(self) -> RenderBarrier:
        return self._barrier

    @property
    def bus(self) -> CaptureSignalBus:
        return self._bus

    @property
    def overlay_store(self) -> OverlayStore:
        return self._store

    @property
    def active_overlay(self) -> OverlayKind:
        return self._store.active

    def enable(self, config: Optional[MitigationConfig] = None) -> None:
        """
        Activate protection. Raises ``SurfaceUnavailable`` when no window can be
        resolved; the controller then stays disabled and may be retried.
        """
        if not self._on_owner_thread("enable"):
            return
        if self._state is ControllerState.ENABLED:
            self._logger.debug("Capture protection already enabled; ignoring enable().")
            return
        if config is not None:
            self._config = config

        surface = self._resolve_surface()
        if surface is None:
            self._logger.warning("No render surface available; capture protection not active yet.")
            raise SurfaceUnavailable("No render surface is attached to a display yet.")

        if not self._barrier.install(surface):
            self._logger.warning("Render barrier not installed; screenshots of this window are not blocked.")
        self._store.attach(surface)

        try:
            if self._config.observe_screenshots:
                self._bus.on_screenshot_taken(self._handle_screenshot)
            if self._config.observe_recording:
                self._bus.on_recording_state_changed(self._handle_recording_state)
                self._is_recording = self._bus.is_recording()
            else:
                self._is_recording = False
        except Exception:
            # Leave nothing subscribed so the controller is cleanly disabled.
            for kind in SignalKind:
                self._bus.unsubscribe(kind)
            self._store.clear()
            self._is_recording = False
            self._logger.exception("Capture observation could not start; capture protection not active.")
            raise

        self._state = ControllerState.ENABLED
        self._store.apply(decide(self._is_recording, self._config))
        self._logger.info(
            "Capture protection enabled (barrier={}, recording={}, screenshots={}, capturing={}).",
            self._barrier.state.value,
            self._config.observe_recording,
            self._config.observe_screenshots,
            self._is_recording,
        )
        self.stateChanged.emit(self._state.value)

    def disable(self, *, remove_barrier: bool = False) -> None:
        """Deactivate protection; no signal handler runs after this returns."""
        if not self._on_owner_thread("disable"):
            return
        if self._state is ControllerState.DISABLED:
            return

        for kind in SignalKind:
            self._bus.unsubscribe(kind)
        self._store.clear()
        self._is_recording = False
        if remove_barrier and self._barrier.state is BarrierState.INSTALLED:
            self._barrier.uninstall(self._store.surface)

        self._state = ControllerState.DISABLED
        self._logger.info("Capture protection disabled (barrier={}).", self._barrier.state.value)
        self.stateChanged.emit(self._state.value)

    def close(self) -> None:
        """Disable, remove the barrier and release the surface."""
        self.disable(remove_barrier=True)
        if self._barrier.state is BarrierState.INSTALLED:
            self._barrier.uninstall(self._store.surface)
        self._store.detach()

    def _handle_recording_state(self, is_recording: bool) -> None:
        if self._state is not ControllerState.ENABLED:
            return
        if is_recording == self._is_recording:
            return

        self._is_recording = is_recording
        self._logger.info("Screen recording {}.", "started" if is_recording else "stopped")
        self._store.apply(decide(is_recording, self._config))
        self.recordingChanged.emit(is_recording)
        if self._config.on_recording_changed is not None:
            self._config.on_recording_changed(is_recording)

    def _handle_screenshot(self) -> None:
        if self._state is not ControllerState.ENABLED:
            return
        self._logger.info("Screenshot detected while capture protection is enabled.")
        self.screenshotTaken.emit()
        if self._config.on_screenshot is not None:
            self._config.on_screenshot()

    def _resolve_surface(self) -> Optional[QWidget]:
        surface = self._surface_provider()
        if surface is None or not shiboken6.isValid(surface):
            return None
        return surface

    def _on_owner_thread(self, operation: str) -> bool:
        if QThread.currentThread() is self.thread():
            return True
        self._logger.error(
            "{}() called off the controller's thread; request ignored.",
            operation,
        )
        return False
