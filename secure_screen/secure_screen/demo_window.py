"""
Top-level window whose content is protected while it is visible.
"""

from __future__ import annotations

from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QLabel, QMainWindow, QVBoxLayout, QWidget

from core.capture_signals import CaptureSignalBus
from core.render_barrier import RenderBarrier
from core.visibility_hook import ScreenProtectionHook, protect_widget
from shared.mitigation_config import MitigationConfig

from . import logger


class ProtectedWindow(QMainWindow):
    """Demo window; passing no config shows the content unprotected."""

    def __init__(
        self,
        config: Optional[MitigationConfig],
        *,
        barrier: Optional[RenderBarrier] = None,
        bus: Optional[CaptureSignalBus] = None,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self.setObjectName("ProtectedWindow")
        self.setWindowTitle("Secure Screen")
        self.resize(520, 360)

        content = QWidget()
        layout = QVBoxLayout(content)
        layout.setContentsMargins(24, 24, 24, 24)
        title = QLabel("Confidential content")
        title.setStyleSheet("font-weight: bold; font-size: 18px;")
        body = QLabel(
            "This window is excluded from screenshots. While a screen recorder "
            "is running, its content is covered by the configured overlay."
        )
        body.setWordWrap(True)
        body.setAlignment(Qt.AlignmentFlag.AlignTop)
        layout.addWidget(title)
        layout.addWidget(body, 1)
        self.setCentralWidget(content)
        # Created up front so it stacks below any mitigation overlay.
        self.statusBar()

        self._hook: Optional[ScreenProtectionHook] = None
        if config is None:
            body.setText("Capture protection is disabled by policy.")
            return

        self._hook = protect_widget(self, config, barrier=barrier, bus=bus)
        controller = self._hook.controller
        controller.recordingChanged.connect(self._on_recording_changed)
        controller.screenshotTaken.connect(self._on_screenshot_taken)

    @property
    def protection(self) -> Optional[ScreenProtectionHook]:
        return self._hook

    def release_protection(self) -> None:
        if self._hook is None:
            return
        self._hook.detach()
        self._hook.controller.close()

    def _on_recording_changed(self, is_recording: bool) -> None:
        message = "Screen recording detected" if is_recording else "Screen recording stopped"
        logger.get_logger().info("{} while showing protected window.", message)
        self.statusBar().showMessage(message)

    def _on_screenshot_taken(self) -> None:
        self.statusBar().showMessage("Screenshot detected; protected content was excluded.", 5000)
