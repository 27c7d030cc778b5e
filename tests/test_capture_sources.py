"""Tests for platform capture sources."""

from PySide6.QtGui import QColor, QGuiApplication, QImage

from core.capture_sources import ClipboardScreenshotSource, ManualCaptureSource, RecorderProcessSource


def test_recorder_source_posts_only_on_state_change(qapp) -> None:
    running = ["explorer.exe"]
    posted: list[bool] = []
    source = RecorderProcessSource(poll_interval_ms=500)
    source.set_process_names_provider(lambda: running)

    source.start(posted.append)
    source._poll()
    running.append("OBS64.EXE")
    source._poll()
    source._poll()
    running.remove("OBS64.EXE")
    source._poll()
    source.stop()

    assert posted == [True, False]
    assert source.poll_interval_ms == 500
    assert not source.active


def test_recorder_source_uses_configured_names(qapp) -> None:
    source = RecorderProcessSource(["MyRecorder.exe"])
    source.set_process_names_provider(lambda: ["myrecorder.exe", "obs64.exe"])

    assert source.is_recording()
    assert source.running_recorders() == ["myrecorder.exe"]


def test_recorder_source_ignores_polls_after_stop(qapp) -> None:
    posted: list[bool] = []
    source = RecorderProcessSource()
    source.set_process_names_provider(lambda: [])
    source.start(posted.append)
    source.stop()
    source.set_process_names_provider(lambda: ["obs64.exe"])
    source._poll()

    assert posted == []


def test_clipboard_image_is_reported_as_screenshot(qapp) -> None:
    posted: list[str] = []
    source = ClipboardScreenshotSource()
    source.start(lambda: posted.append("shot"))

    clipboard = QGuiApplication.clipboard()
    clipboard.setText("not a screenshot")
    image = QImage(16, 16, QImage.Format.Format_RGB32)
    image.fill(QColor("red"))
    clipboard.setImage(image)
    source.stop()
    clipboard.setImage(image)

    assert posted == ["shot"]


def test_manual_source_reports_only_while_started() -> None:
    posted: list[bool] = []
    source = ManualCaptureSource()
    source.set_recording(True)
    source.start(posted.append)
    source.set_recording(False)
    source.stop()
    source.set_recording(True)

    assert posted == [False]
    assert source.is_recording()


def test_unreadable_process_table_reads_as_not_recording(qapp) -> None:
    posted: list[bool] = []

    def unreadable():
        raise OSError("process table unavailable")

    source = RecorderProcessSource()
    source.set_process_names_provider(unreadable)
    source.start(posted.append)
    source._poll()

    assert source.running_recorders() == []
    assert not source.is_recording()
    assert posted == []
    source.stop()
