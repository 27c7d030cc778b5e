"""
Entry point for the secure_screen application.
"""

from __future__ import annotations

import sys
from typing import Iterable

from PySide6.QtWidgets import QApplication

from core.capture_signals import CaptureSignalBus
from core.capture_sources import ClipboardScreenshotSource, RecorderProcessSource
from core.settings import ProtectionSettings, ProtectionSettingsManager
from secure_screen.secure_screen import logger as app_logger
from secure_screen.secure_screen.demo_window import ProtectedWindow

_LOGGER = app_logger.get_logger()


def build_bus(settings: ProtectionSettings) -> CaptureSignalBus:
    """Create a signal bus whose recorder poller follows the persisted settings."""
    screenshot_source = ClipboardScreenshotSource()
    recording_source = RecorderProcessSource(
        settings.recorder_processes,
        poll_interval_ms=settings.poll_interval_ms,
    )
    bus = CaptureSignalBus(screenshot_source, recording_source)
    screenshot_source.setParent(bus)
    recording_source.setParent(bus)
    return bus


def run(argv: Iterable[str]) -> int:
    app = QApplication(list(argv))
    settings = ProtectionSettingsManager().read_settings()

    if settings.enabled:
        window = ProtectedWindow(settings.to_config(), bus=build_bus(settings))
    else:
        _LOGGER.info("Capture protection disabled via registry; showing window unprotected.")
        window = ProtectedWindow(None)

    window.show()
    exit_code = app.exec()
    window.release_protection()
    return exit_code


def main() -> int:
    try:
        return run(sys.argv)
    except Exception:  # pragma: no cover - defensive crash guard
        _LOGGER.exception("Secure screen app crashed.")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
