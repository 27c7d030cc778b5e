"""
Platform capture sources feeding the capture signal bus.

A source only observes the system and reports what it sees through the
``post`` callable handed to ``start``; marshaling, debouncing of handlers and
subscription bookkeeping live in the bus.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional, Protocol

import psutil
from PySide6.QtCore import QObject, QTimer
from PySide6.QtGui import QGuiApplication

from secure_screen.secure_screen import logger as app_logger

_LOGGER = app_logger.get_logger()

DEFAULT_POLL_INTERVAL_MS = 2000

# Lower-cased executable names of common screen recorders and streaming tools.
DEFAULT_RECORDER_PROCESSES = frozenset(
    {
        "obs64.exe",
        "obs32.exe",
        "obs",
        "sharex.exe",
        "bdcam.exe",
        "camtasiarecorder.exe",
        "camrec.exe",
        "snagit32.exe",
        "snagiteditor.exe",
        "gamebarpresencewriter.exe",
        "screenrec.exe",
        "action.exe",
        "xsplit.core.exe",
        "fraps.exe",
        "loom.exe",
        "simplescreenrecorder",
        "kazam",
        "vokoscreen",
        "vokoscreenng",
        "peek",
        "gpu-screen-recorder",
        "wf-recorder",
    }
)


class CaptureSource(Protocol):
    def start(self, post: Callable[..., None]) -> None:
        """Begin reporting events through ``post``."""

    def stop(self) -> None:
        """Stop reporting; must be idempotent."""


class RecordingStateSource(CaptureSource, Protocol):
    def is_recording(self) -> bool:
        """Synchronously query the current capture state."""


class ClipboardScreenshotSource(QObject):
    """
    Reports a screenshot whenever an image lands on the clipboard.

    PrintScreen, Alt+PrintScreen and the Snipping Tool all publish the captured
    bitmap on the clipboard, which is the only capture trace a foreground
    application can observe.
    """

    def __init__(self, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._post: Optional[Callable[[], None]] = None
        self._clipboard = None

    @property
    def active(self) -> bool:
        return self._post is not None

    def start(self, post: Callable[[], None]) -> None:
        if self._post is not None:
            self._post = post
            return
        clipboard = QGuiApplication.clipboard()
        if clipboard is None:
            _LOGGER.warning("Clipboard unavailable; screenshot detection inactive.")
            return
        self._post = post
        self._clipboard = clipboard
        clipboard.dataChanged.connect(self._on_clipboard_changed)

    def stop(self) -> None:
        if self._post is None:
            return
        if self._clipboard is not None:
            try:
                self._clipboard.dataChanged.disconnect(self._on_clipboard_changed)
            except (RuntimeError, TypeError):
                pass
        self._clipboard = None
        self._post = None

    def _on_clipboard_changed(self) -> None:
        if self._post is None or self._clipboard is None:
            return
        mime = self._clipboard.mimeData()
        if mime is not None and mime.hasImage():
            _LOGGER.debug("Image placed on clipboard; reporting screenshot.")
            self._post()


class RecorderProcessSource(QObject):
    """
    Polls the process table for running screen recorders and reports flips of
    the recording state. Polling halts while no subscriber is attached.
    """

    def __init__(
        self,
        process_names: Iterable[str] = DEFAULT_RECORDER_PROCESSES,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self.process_names = frozenset(name.lower() for name in process_names)
        self._timer = QTimer(self)
        self._timer.setInterval(poll_interval_ms)
        self._timer.timeout.connect(self._poll)  # type: ignore[arg-type]
        self._post: Optional[Callable[[bool], None]] = None
        self._last_state: Optional[bool] = None
        self._process_names_provider: Optional[Callable[[], Iterable[str]]] = None

    @property
    def active(self) -> bool:
        return self._post is not None

    @property
    def poll_interval_ms(self) -> int:
        return self._timer.interval()

    def set_process_names_provider(self, provider: Callable[[], Iterable[str]]) -> None:
        """
        Override process enumeration. Primarily used for testing.
        """
        self._process_names_provider = provider

    def start(self, post: Callable[[bool], None]) -> None:
        self._post = post
        if self._timer.isActive():
            return
        self._last_state = self.is_recording()
        self._timer.start()

    def stop(self) -> None:
        if self._post is None:
            return
        self._timer.stop()
        self._post = None
        self._last_state = None

    def is_recording(self) -> bool:
        return bool(self.running_recorders())

    def running_recorders(self) -> list[str]:
        try:
            running = self._process_names()
        except (OSError, psutil.Error) as exc:
            # Process table unreadable; report nothing rather than failing the caller.
            _LOGGER.warning("Could not enumerate processes ({}); assuming no recorder is running.", exc)
            return []
        return sorted({name for name in running if name in self.process_names})

    def _poll(self) -> None:
        if self._post is None:
            return
        recorders = self.running_recorders()
        state = bool(recorders)
        if state == self._last_state:
            return
        self._last_state = state
        if state:
            _LOGGER.info("Screen recorder detected: {}", ", ".join(recorders))
        self._post(state)

    def _process_names(self) -> list[str]:
        if self._process_names_provider is not None:
            return [name.lower() for name in self._process_names_provider()]

        names: list[str] = []
        for process in psutil.process_iter(["name"]):
            name = process.info.get("name")
            if name:
                names.append(name.lower())
        return names


class ManualCaptureSource:
    """Source driven by explicit calls, for simulations and tests."""

    def __init__(self, recording: bool = False) -> None:
        self._recording = recording
        self._post: Optional[Callable[..., None]] = None
        self.start_count = 0
        self.stop_count = 0

    @property
    def active(self) -> bool:
        return self._post is not None

    def start(self, post: Callable[..., None]) -> None:
        self._post = post
        self.start_count += 1

    def stop(self) -> None:
        if self._post is None:
            return
        self._post = None
        self.stop_count += 1

    def is_recording(self) -> bool:
        return self._recording

    def set_recording(self, recording: bool) -> None:
        """Update the simulated capture state and report it, repeats included."""
        self._recording = recording
        if self._post is not None:
            self._post(recording)

    def trigger(self) -> None:
        """Report one simulated screenshot."""
        if self._post is not None:
            self._post()
