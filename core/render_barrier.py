"""
Opaque render barrier keeping protected windows out of OS screen capture.

On Windows the barrier is the window display affinity: a window marked with
``WDA_EXCLUDEFROMCAPTURE`` is skipped by screenshots, the Snipping Tool and
desktop duplication based recorders, while remaining visible on the monitor.
"""

from __future__ import annotations

import ctypes
import sys
from enum import Enum
from typing import Optional, Protocol

import shiboken6
from PySide6.QtWidgets import QWidget

from secure_screen.secure_screen import logger as app_logger

_LOGGER = app_logger.get_logger()

WDA_NONE = 0x00000000
WDA_MONITOR = 0x00000001
WDA_EXCLUDEFROMCAPTURE = 0x00000011


class BarrierState(Enum):
    NOT_INSTALLED = "NotInstalled"
    INSTALLED = "Installed"


class RenderBarrier(Protocol):
    """Capability installing/removing capture opacity on a render surface."""

    @property
    def state(self) -> BarrierState:
        """Current install state."""

    def install(self, surface: Optional[QWidget]) -> bool:
        """Protect ``surface``; return whether protection is active."""

    def uninstall(self, surface: Optional[QWidget]) -> bool:
        """Remove protection from ``surface``."""


def _load_user32():
    if sys.platform != "win32":
        return None
    from ctypes import wintypes

    user32 = ctypes.WinDLL("user32", use_last_error=True)
    user32.SetWindowDisplayAffinity.argtypes = [wintypes.HWND, wintypes.DWORD]
    user32.SetWindowDisplayAffinity.restype = wintypes.BOOL
    return user32


def _window_handle(surface: QWidget) -> Optional[int]:
    window = surface.window()
    try:
        handle = int(window.winId())
    except (TypeError, ValueError, RuntimeError):
        return None
    return handle or None


class DisplayAffinityBarrier:
    """Barrier backed by ``SetWindowDisplayAffinity``."""

    def __init__(self, *, user32=None) -> None:
        self._user32 = user32 if user32 is not None else _load_user32()
        self._state = BarrierState.NOT_INSTALLED
        self._hwnd: Optional[int] = None
        self._affinity = WDA_NONE

    @property
    def state(self) -> BarrierState:
        return self._state

    @property
    def affinity(self) -> int:
        return self._affinity

    def install(self, surface: Optional[QWidget]) -> bool:
        if surface is None or not shiboken6.isValid(surface):
            _LOGGER.debug("Render barrier install deferred; no surface attached yet.")
            return False
        if self._user32 is None:
            _LOGGER.warning("Display affinity is not available on {}; capture barrier inactive.", sys.platform)
            return False

        hwnd = _window_handle(surface)
        if hwnd is None:
            _LOGGER.debug("Render barrier install deferred; window has no native handle.")
            return False
        if self._state is BarrierState.INSTALLED and hwnd == self._hwnd:
            return True
        if self._state is BarrierState.INSTALLED:
            self._reset_previous()

        # WDA_EXCLUDEFROMCAPTURE needs Windows 10 2004; older builds only blank the window.
        for affinity in (WDA_EXCLUDEFROMCAPTURE, WDA_MONITOR):
            if self._set_affinity(hwnd, affinity):
                self._hwnd = hwnd
                self._affinity = affinity
                self._state = BarrierState.INSTALLED
                _LOGGER.info("Render barrier installed on window {:#x} (affinity={:#x}).", hwnd, affinity)
                return True

        _LOGGER.warning("SetWindowDisplayAffinity failed for window {:#x}; capture barrier inactive.", hwnd)
        return False

    def uninstall(self, surface: Optional[QWidget] = None) -> bool:
        if self._state is BarrierState.NOT_INSTALLED:
            return True
        hwnd = self._hwnd
        if surface is not None and shiboken6.isValid(surface):
            hwnd = _window_handle(surface) or hwnd
        removed = hwnd is not None and self._set_affinity(hwnd, WDA_NONE)
        if not removed:
            _LOGGER.debug("Render barrier removal skipped; window {} is gone.", hwnd)
        self._state = BarrierState.NOT_INSTALLED
        self._hwnd = None
        self._affinity = WDA_NONE
        return removed

    def _reset_previous(self) -> None:
        if self._hwnd is not None:
            self._set_affinity(self._hwnd, WDA_NONE)
        self._state = BarrierState.NOT_INSTALLED
        self._hwnd = None

    def _set_affinity(self, hwnd: int, affinity: int) -> bool:
        try:
            return bool(self._user32.SetWindowDisplayAffinity(hwnd, affinity))
        except OSError as exc:
            _LOGGER.debug("SetWindowDisplayAffinity({:#x}, {:#x}) raised {}", hwnd, affinity, exc)
            return False


class RecordingBarrier:
    """
    In-memory barrier that only tracks which surface it is attached to.

    Used where no platform mechanism exists so that the coordinator logic
    still runs, and as the barrier double in tests.
    """

    def __init__(self) -> None:
        self._state = BarrierState.NOT_INSTALLED
        self._surface: Optional[QWidget] = None
        self.install_count = 0
        self.uninstall_count = 0

    @property
    def state(self) -> BarrierState:
        return self._state

    @property
    def surface(self) -> Optional[QWidget]:
        return self._surface

    def install(self, surface: Optional[QWidget]) -> bool:
        if surface is None or not shiboken6.isValid(surface):
            return False
        if self._state is BarrierState.INSTALLED and surface is self._surface:
            return True
        self._surface = surface
        self._state = BarrierState.INSTALLED
        self.install_count += 1
        return True

    def uninstall(self, surface: Optional[QWidget] = None) -> bool:
        if self._state is BarrierState.NOT_INSTALLED:
            return True
        self._surface = None
        self._state = BarrierState.NOT_INSTALLED
        self.uninstall_count += 1
        return True


def default_barrier() -> RenderBarrier:
    """Return the strongest barrier available on this platform."""
    if sys.platform == "win32":
        return DisplayAffinityBarrier()
    _LOGGER.info("No capture barrier mechanism on {}; using in-memory barrier.", sys.platform)
    return RecordingBarrier()
