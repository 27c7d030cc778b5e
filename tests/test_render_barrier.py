"""Tests for render barrier strategies."""

import sys

import pytest
from PySide6.QtWidgets import QWidget

from core.render_barrier import (
    WDA_EXCLUDEFROMCAPTURE,
    WDA_MONITOR,
    WDA_NONE,
    BarrierState,
    DisplayAffinityBarrier,
    RecordingBarrier,
)


class FakeUser32:
    def __init__(self, supported=(WDA_NONE, WDA_MONITOR, WDA_EXCLUDEFROMCAPTURE)) -> None:
        self.supported = set(supported)
        self.calls: list[tuple[int, int]] = []

    def SetWindowDisplayAffinity(self, hwnd, affinity):  # noqa: N802
        self.calls.append((hwnd, affinity))
        return 1 if affinity in self.supported else 0


def test_recording_barrier_install_is_idempotent(surface) -> None:
    barrier = RecordingBarrier()
    assert barrier.install(surface)
    assert barrier.install(surface)

    assert barrier.state is BarrierState.INSTALLED
    assert barrier.install_count == 1


def test_install_without_surface_is_deferred() -> None:
    barrier = RecordingBarrier()
    assert barrier.install(None) is False
    assert barrier.state is BarrierState.NOT_INSTALLED

    affinity_barrier = DisplayAffinityBarrier(user32=FakeUser32())
    assert affinity_barrier.install(None) is False
    assert affinity_barrier.state is BarrierState.NOT_INSTALLED


def test_display_affinity_excludes_window_once(surface) -> None:
    user32 = FakeUser32()
    barrier = DisplayAffinityBarrier(user32=user32)

    assert barrier.install(surface)
    assert barrier.install(surface)

    hwnd = int(surface.winId())
    assert user32.calls == [(hwnd, WDA_EXCLUDEFROMCAPTURE)]
    assert barrier.affinity == WDA_EXCLUDEFROMCAPTURE


def test_display_affinity_falls_back_to_monitor(surface) -> None:
    user32 = FakeUser32(supported=(WDA_NONE, WDA_MONITOR))
    barrier = DisplayAffinityBarrier(user32=user32)

    assert barrier.install(surface)
    assert [affinity for _, affinity in user32.calls] == [WDA_EXCLUDEFROMCAPTURE, WDA_MONITOR]
    assert barrier.affinity == WDA_MONITOR


def test_display_affinity_failure_leaves_barrier_uninstalled(surface) -> None:
    barrier = DisplayAffinityBarrier(user32=FakeUser32(supported=()))
    assert barrier.install(surface) is False
    assert barrier.state is BarrierState.NOT_INSTALLED


def test_uninstall_resets_affinity(surface) -> None:
    user32 = FakeUser32()
    barrier = DisplayAffinityBarrier(user32=user32)
    barrier.install(surface)

    assert barrier.uninstall(surface)
    assert user32.calls[-1] == (int(surface.winId()), WDA_NONE)
    assert barrier.state is BarrierState.NOT_INSTALLED
    assert barrier.uninstall(surface)


def test_install_on_new_window_moves_barrier(qapp, surface) -> None:
    user32 = FakeUser32()
    barrier = DisplayAffinityBarrier(user32=user32)
    other = QWidget()
    other.show()

    barrier.install(surface)
    barrier.install(other)

    assert user32.calls[1] == (int(surface.winId()), WDA_NONE)
    assert user32.calls[2] == (int(other.winId()), WDA_EXCLUDEFROMCAPTURE)
    other.close()


@pytest.mark.skipif(sys.platform == "win32", reason="display affinity exists on Windows")
def test_display_affinity_unavailable_off_windows(surface) -> None:
    barrier = DisplayAffinityBarrier()
    assert barrier.install(surface) is False
    assert barrier.state is BarrierState.NOT_INSTALLED
