"""
Core capture mitigation components shared across applications.
"""

from .controller import CaptureMitigationController, ControllerState, SurfaceUnavailable  # noqa: F401
from .visibility_hook import ScreenProtectionHook, protect_widget  # noqa: F401
