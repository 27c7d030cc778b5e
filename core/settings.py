"""
Registry-backed configuration for capture protection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional

from core.capture_sources import DEFAULT_POLL_INTERVAL_MS, DEFAULT_RECORDER_PROCESSES
from secure_screen.secure_screen import logger as app_logger
from shared.mitigation_config import (
    BlurStyle,
    MitigationConfig,
    MitigationConfigError,
    parse_blur_style,
    parse_rgba,
)

try:
    import winreg
except ModuleNotFoundError:  # pragma: no cover - non-Windows environments
    winreg = None

_LOGGER = app_logger.get_logger()

_BASE_SUBKEY = r"Software\SecureScreen\Protection"
_MIN_POLL_INTERVAL_MS = 250
_MAX_POLL_INTERVAL_MS = 10000
_OVERLAY_MODES = ("blur", "color", "image", "none")


@dataclass(eq=True)
class ProtectionSettings:
    enabled: bool = True
    detect_recording: bool = True
    detect_screenshots: bool = False
    overlay_mode: str = "blur"
    blur_style: BlurStyle = BlurStyle.DARK
    overlay_color: tuple = (0, 0, 0, 255)
    overlay_image: Optional[Path] = None
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    recorder_processes: FrozenSet[str] = field(default_factory=lambda: DEFAULT_RECORDER_PROCESSES)

    def to_config(self, **callbacks) -> MitigationConfig:
        """Build the controller configuration; callbacks are passed through."""
        blur = self.blur_style if self.overlay_mode == "blur" else None
        color = self.overlay_color if self.overlay_mode == "color" else None
        image = self.overlay_image if self.overlay_mode == "image" else None
        return MitigationConfig.from_overlays(
            observe_recording=self.detect_recording,
            observe_screenshots=self.detect_screenshots,
            blur=blur,
            color=color,
            image=image,
            **callbacks,
        )


class ProtectionSettingsManager:
    """Loads persisted settings from HKCU and falls back to defaults on bad data."""

    def __init__(self, *, hive: Optional[int] = None, winreg_module=winreg) -> None:
        self._winreg = winreg_module
        if hive is not None:
            self.hive = hive
        elif winreg_module is not None:
            self.hive = winreg_module.HKEY_CURRENT_USER
        else:
            self.hive = None

    def read_settings(self) -> ProtectionSettings:
        if self._winreg is None:
            return ProtectionSettings()
        key = self._open_key()
        if key is None:
            return ProtectionSettings()

        defaults = ProtectionSettings()
        try:
            return ProtectionSettings(
                enabled=self._read_bool(key, "IsEnabled", defaults.enabled),
                detect_recording=self._read_bool(key, "DetectRecording", defaults.detect_recording),
                detect_screenshots=self._read_bool(key, "DetectScreenshots", defaults.detect_screenshots),
                overlay_mode=self._read_overlay_mode(key, defaults.overlay_mode),
                blur_style=self._read_blur_style(key, defaults.blur_style),
                overlay_color=self._read_color(key, defaults.overlay_color),
                overlay_image=self._read_image(key),
                poll_interval_ms=self._read_poll_interval(key),
                recorder_processes=self._read_processes(key, defaults.recorder_processes),
            )
        finally:
            self._winreg.CloseKey(key)

    def _open_key(self):
        try:
            return self._winreg.OpenKey(self.hive, _BASE_SUBKEY, 0, self._winreg.KEY_READ)
        except FileNotFoundError:
            return None

    def _read_bool(self, key, name: str, default: bool) -> bool:
        raw = self._read_dword(key, name)
        if raw is None:
            return default
        return bool(raw)

    def _read_overlay_mode(self, key, default: str) -> str:
        raw = self._read_string(key, "OverlayMode")
        if raw is None:
            return default
        mode = raw.strip().lower()
        if mode not in _OVERLAY_MODES:
            _LOGGER.warning("Unknown overlay mode '{}' in registry. Using '{}'.", raw, default)
            return default
        return mode

    def _read_blur_style(self, key, default: BlurStyle) -> BlurStyle:
        raw = self._read_string(key, "BlurStyle")
        if raw is None:
            return default
        try:
            return parse_blur_style(raw)
        except MitigationConfigError as exc:
            _LOGGER.warning("Invalid BlurStyle in registry: {}", exc)
            return default

    def _read_color(self, key, default: tuple) -> tuple:
        raw = self._read_string(key, "OverlayColor")
        if raw is None:
            return default
        try:
            return parse_rgba(raw)
        except MitigationConfigError as exc:
            _LOGGER.warning("Invalid OverlayColor in registry: {}", exc)
            return default

    def _read_image(self, key) -> Optional[Path]:
        raw = self._read_string(key, "OverlayImage")
        if not raw or not raw.strip():
            return None
        return Path(raw.strip())

    def _read_poll_interval(self, key) -> int:
        raw = self._read_dword(key, "PollingIntervalMs")
        if raw is None:
            return DEFAULT_POLL_INTERVAL_MS
        if raw < _MIN_POLL_INTERVAL_MS or raw > _MAX_POLL_INTERVAL_MS:
            _LOGGER.warning(
                "Invalid polling interval {} found in registry. Clamping to safe bounds.",
                raw,
            )
        return max(_MIN_POLL_INTERVAL_MS, min(_MAX_POLL_INTERVAL_MS, raw))

    def _read_processes(self, key, default: FrozenSet[str]) -> FrozenSet[str]:
        raw = self._read_string(key, "RecorderProcesses")
        if raw is None:
            return default
        names = frozenset(part.strip().lower() for part in raw.split(",") if part.strip())
        return names or default

    def _read_dword(self, key, name: str) -> Optional[int]:
        value = self._query(key, name, self._winreg.REG_DWORD)
        return None if value is None else int(value)

    def _read_string(self, key, name: str) -> Optional[str]:
        return self._query(key, name, self._winreg.REG_SZ)

    def _query(self, key, name: str, expected_type: int):
        try:
            value, value_type = self._winreg.QueryValueEx(key, name)
        except FileNotFoundError:
            return None
        if value_type != expected_type:
            _LOGGER.warning("Registry value {} has unexpected type {}.", name, value_type)
            return None
        return value
