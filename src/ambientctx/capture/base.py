"""Abstract base classes for screen capture and window lookup.

All capture implementations must conform to these interfaces, enabling
the scheduler to swap between a real desktop grab, a platform-specific
window lookup, or in-memory test doubles without changing the sampling
pipeline.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class ScreenSource(ABC):
    """Abstract interface for grabbing an image of the user's screen.

    Example usage::

        source = MssScreenCapture(monitor_index=1)
        png_bytes = await source.capture_screen()
    """

    @abstractmethod
    async def capture_screen(self) -> bytes:
        """Capture the screen as an encoded PNG payload.

        Returns:
            The PNG-encoded image bytes. Never empty on success.

        Raises:
            CaptureError: If the screen cannot be captured.
        """
        ...


class WindowLookup(ABC):
    """Abstract interface for resolving the foreground application."""

    @abstractmethod
    async def active_app_name(self) -> str:
        """Return the name of the application owning the focused window.

        Raises:
            CaptureError: If the foreground application cannot be resolved.
        """
        ...


class CaptureError(Exception):
    """Raised when a screen grab or window lookup fails."""
