"""Desktop screen capture implementation using mss.

Grabs a single monitor, converts it through OpenCV and downscales it so
the vision model receives a reasonably sized PNG.
"""

from __future__ import annotations

import asyncio
import logging

import cv2
import mss
import numpy as np

from ambientctx.capture.base import CaptureError, ScreenSource
from ambientctx.utils.imaging import numpy_to_png_bytes, resize_for_mllm

logger = logging.getLogger(__name__)


class MssScreenCapture(ScreenSource):
    """Captures the desktop using mss.

    Runs the blocking grab in a thread pool executor to avoid blocking
    the async event loop. A fresh mss handle is opened per grab because
    mss handles are bound to the thread that created them.
    """

    def __init__(self, monitor_index: int = 1, max_dimension: int = 1568) -> None:
        self._monitor_index = monitor_index
        self._max_dimension = max_dimension

    async def capture_screen(self) -> bytes:
        """Capture the configured monitor as PNG bytes."""
        loop = asyncio.get_running_loop()
        try:
            payload = await loop.run_in_executor(None, self._capture_sync)
        except CaptureError:
            raise
        except Exception as e:
            raise CaptureError(f"Screen capture failed: {e}") from e
        logger.debug("Captured monitor %d: %d bytes", self._monitor_index, len(payload))
        return payload

    def _capture_sync(self) -> bytes:
        """Synchronous screen grab (runs in thread pool)."""
        with mss.mss() as sct:
            monitors = sct.monitors
            if self._monitor_index >= len(monitors):
                raise CaptureError(
                    f"Monitor {self._monitor_index} not found ({len(monitors) - 1} available)"
                )
            shot = sct.grab(monitors[self._monitor_index])
        bgra = np.array(shot)
        if bgra.size == 0:
            raise CaptureError("Screen grab returned an empty image")
        bgr = cv2.cvtColor(bgra, cv2.COLOR_BGRA2BGR)
        return numpy_to_png_bytes(resize_for_mllm(bgr, self._max_dimension))
