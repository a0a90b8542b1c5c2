"""Screen Capture module for ambientctx.

Provides desktop screenshots and foreground application lookup. The
abstract base classes allow alternative implementations (e.g., test
doubles or other capture libraries).

Public API:
    ScreenSource -- Abstract screenshot source
    WindowLookup -- Abstract foreground application lookup
    MssScreenCapture -- mss desktop capture implementation
    ForegroundWindowLookup -- Platform window lookup implementation
"""

from ambientctx.capture.base import CaptureError, ScreenSource, WindowLookup

__all__ = [
    "CaptureError",
    "ForegroundWindowLookup",
    "MssScreenCapture",
    "ScreenSource",
    "WindowLookup",
]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "MssScreenCapture":
        from ambientctx.capture.screen import MssScreenCapture
        return MssScreenCapture
    if name == "ForegroundWindowLookup":
        from ambientctx.capture.window import ForegroundWindowLookup
        return ForegroundWindowLookup
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
