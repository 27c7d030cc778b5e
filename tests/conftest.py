"""Shared fixtures for capture mitigation tests."""

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("SECURE_SCREEN_LOG", "")

import pytest
from PySide6.QtWidgets import QApplication, QWidget

from core.capture_signals import CaptureSignalBus
from core.capture_sources import ManualCaptureSource
from core.controller import CaptureMitigationController
from core.render_barrier import RecordingBarrier


@pytest.fixture(scope="session")
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


@pytest.fixture
def surface(qapp):
    window = QWidget()
    window.setObjectName("ProtectedSurface")
    window.resize(320, 240)
    window.show()
    yield window
    window.close()
    window.deleteLater()
    qapp.processEvents()


@pytest.fixture
def screenshot_source() -> ManualCaptureSource:
    return ManualCaptureSource()


@pytest.fixture
def recording_source() -> ManualCaptureSource:
    return ManualCaptureSource()


@pytest.fixture
def bus(qapp, screenshot_source, recording_source) -> CaptureSignalBus:
    return CaptureSignalBus(screenshot_source, recording_source)


@pytest.fixture
def barrier() -> RecordingBarrier:
    return RecordingBarrier()


@pytest.fixture
def make_controller(surface, bus, barrier):
    def factory(config=None, provider=None) -> CaptureMitigationController:
        return CaptureMitigationController(
            config,
            provider or (lambda: surface),
            barrier=barrier,
            bus=bus,
        )

    return factory
