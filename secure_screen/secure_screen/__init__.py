"""
secure_screen package.

Runtime pieces of the secure screen application: logging setup and the
protected demo window driven by the capture mitigation controller.
"""

__all__ = [
    "demo_window",
    "logger",
]
