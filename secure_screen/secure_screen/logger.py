"""
Logging setup for the secure screen runtime.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger as _logger

_LOG_INITIALISED = False
LOG_DIR = Path.home() / "AppData" / "Local" / "Secure Screen"
DEFAULT_LOG_PATH = LOG_DIR / "secure_screen.log"


def configure(log_path: Optional[Path] = None) -> None:
    """
    Configure loguru for the application.

    Runs once per process. The target file may be overridden through the
    ``SECURE_SCREEN_LOG`` environment variable; an empty value disables the
    file sink.
    """
    global _LOG_INITIALISED
    if _LOG_INITIALISED:
        return

    env_target = os.environ.get("SECURE_SCREEN_LOG")
    if log_path is not None:
        target: Optional[Path] = Path(log_path)
    elif env_target is not None:
        target = Path(env_target) if env_target.strip() else None
    else:
        target = DEFAULT_LOG_PATH

    _logger.remove()
    if sys.stderr is not None:
        _logger.add(sys.stderr, level="INFO", enqueue=True)
    if target is not None:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            _logger.warning("Unable to create log directory {}; file logging disabled.", target.parent)
        else:
            _logger.add(
                target,
                level="DEBUG",
                rotation="10 MB",
                retention=5,
                encoding="utf-8",
                enqueue=True,
                backtrace=True,
                diagnose=False,
            )
    _LOG_INITIALISED = True


def get_logger():
    """Return the shared logger instance."""
    configure()
    return _logger
