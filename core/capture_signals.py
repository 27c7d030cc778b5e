"""
Capture signal bus normalising screenshot and recording notifications.

The bus owns at most one subscription per signal kind. Raw events posted by
capture sources, possibly from foreign threads, are marshaled onto the thread
that owns the bus through Qt signal connections before any handler runs.
"""

from __future__ import annotations

import itertools
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Deque, Dict, Optional, Tuple

from PySide6.QtCore import QObject, Signal

from core.capture_sources import (
    CaptureSource,
    ClipboardScreenshotSource,
    RecorderProcessSource,
    RecordingStateSource,
)
from secure_screen.secure_screen import logger as app_logger

_LOGGER = app_logger.get_logger()


class SignalKind(Enum):
    SCREENSHOT = "screenshot"
    RECORDING = "recording"


@dataclass(frozen=True)
class CaptureSubscription:
    """Handle for one active subscription; only the bus creates these."""

    kind: SignalKind
    callback: Callable[..., None]
    token: int


class CaptureSignalBus(QObject):
    _screenshotPosted = Signal(int)
    _recordingPosted = Signal(bool, int)

    def __init__(
        self,
        screenshot_source: Optional[CaptureSource] = None,
        recording_source: Optional[RecordingStateSource] = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._sources: Dict[SignalKind, Any] = {
            SignalKind.SCREENSHOT: screenshot_source or ClipboardScreenshotSource(self),
            SignalKind.RECORDING: recording_source or RecorderProcessSource(parent=self),
        }
        self._subscriptions: Dict[SignalKind, CaptureSubscription] = {}
        self._epochs: Dict[SignalKind, int] = {kind: 0 for kind in SignalKind}
        self._tokens = itertools.count(1)
        self._dispatching: set[SignalKind] = set()
        self._pending: Dict[SignalKind, Deque[Tuple[int, Tuple[Any, ...]]]] = {
            kind: deque() for kind in SignalKind
        }

        # AutoConnection: direct when posted from the owning thread, queued otherwise.
        self._screenshotPosted.connect(self._on_screenshot_posted)
        self._recordingPosted.connect(self._on_recording_posted)

    def subscribe(self, kind: SignalKind, callback: Callable[..., None]) -> CaptureSubscription:
        """Register ``callback`` for ``kind``, replacing any existing handler."""
        previous = self._subscriptions.get(kind)
        # Each subscription gets a fresh epoch; posts stamped earlier never reach it.
        self._retire(kind)
        subscription = CaptureSubscription(kind=kind, callback=callback, token=next(self._tokens))
        if previous is None:
            try:
                self._start_source(kind)
            except Exception:
                self._stop_source(kind)
                _LOGGER.exception("Could not start {} source; subscription not registered.", kind.value)
                raise
            self._subscriptions[kind] = subscription
            _LOGGER.debug("Subscribed to {} signal (token={}).", kind.value, subscription.token)
        else:
            self._subscriptions[kind] = subscription
            _LOGGER.debug(
                "Replaced {} handler (token {} -> {}).",
                kind.value,
                previous.token,
                subscription.token,
            )
        return subscription

    def on_screenshot_taken(self, callback: Callable[[], None]) -> CaptureSubscription:
        return self.subscribe(SignalKind.SCREENSHOT, callback)

    def on_recording_state_changed(self, callback: Callable[[bool], None]) -> CaptureSubscription:
        return self.subscribe(SignalKind.RECORDING, callback)

    def unsubscribe(self, kind: SignalKind) -> None:
        """Drop the handler for ``kind``; pending deliveries become inert."""
        if kind not in self._subscriptions:
            return
        self._retire(kind)
        del self._subscriptions[kind]
        self._stop_source(kind)
        _LOGGER.debug("Unsubscribed from {} signal.", kind.value)

    def unsubscribe_all(self) -> None:
        for kind in list(self._subscriptions):
            self.unsubscribe(kind)

    def subscription(self, kind: SignalKind) -> Optional[CaptureSubscription]:
        return self._subscriptions.get(kind)

    def active_kinds(self) -> frozenset[SignalKind]:
        return frozenset(self._subscriptions)

    def is_recording(self) -> bool:
        """Synchronous capture state query, used to seed controllers."""
        return bool(self._sources[SignalKind.RECORDING].is_recording())

    def post_screenshot(self) -> None:
        """Report a screenshot. Safe to call from any thread."""
        self._screenshotPosted.emit(self._epochs[SignalKind.SCREENSHOT])

    def post_recording_state(self, is_recording: bool) -> None:
        """Report the current recording state. Safe to call from any thread."""
        self._recordingPosted.emit(bool(is_recording), self._epochs[SignalKind.RECORDING])

    def _on_screenshot_posted(self, epoch: int) -> None:
        self._deliver(SignalKind.SCREENSHOT, epoch, ())

    def _on_recording_posted(self, is_recording: bool, epoch: int) -> None:
        self._deliver(SignalKind.RECORDING, epoch, (is_recording,))

    def _deliver(self, kind: SignalKind, epoch: int, args: Tuple[Any, ...]) -> None:
        if epoch != self._epochs[kind] or kind not in self._subscriptions:
            return
        if kind in self._dispatching:
            self._pending[kind].append((epoch, args))
            return

        self._dispatching.add(kind)
        try:
            self._invoke(self._subscriptions[kind], args)
            pending = self._pending[kind]
            while pending:
                queued_epoch, queued_args = pending.popleft()
                subscription = self._subscriptions.get(kind)
                if subscription is None or queued_epoch != self._epochs[kind]:
                    continue
                self._invoke(subscription, queued_args)
        finally:
            self._dispatching.discard(kind)

    def _invoke(self, subscription: CaptureSubscription, args: Tuple[Any, ...]) -> None:
        try:
            subscription.callback(*args)
        except Exception:  # noqa: BLE001
            _LOGGER.exception("Handler for {} signal raised; event dropped.", subscription.kind.value)

    def _retire(self, kind: SignalKind) -> None:
        self._epochs[kind] += 1
        self._pending[kind].clear()

    def _start_source(self, kind: SignalKind) -> None:
        source = self._sources[kind]
        if kind is SignalKind.SCREENSHOT:
            source.start(self.post_screenshot)
        else:
            source.start(self.post_recording_state)

    def _stop_source(self, kind: SignalKind) -> None:
        self._sources[kind].stop()
