"""Image processing utilities for ambientctx.

Shared image encoding, conversion, and validation functions used by the
screen capture source and the sampling pipeline.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/]+={0,2}$")


class ImagePayloadError(ValueError):
    """Raised when a screenshot payload is empty or not a decodable image."""


def numpy_to_png_bytes(image: np.ndarray) -> bytes:
    """Convert a numpy image array (BGR, OpenCV format) to PNG bytes."""
    success, buffer = cv2.imencode(".png", image)
    if not success:
        raise ImagePayloadError("Failed to encode image to PNG")
    return buffer.tobytes()


def resize_for_mllm(image: np.ndarray, max_dimension: int = 1568) -> np.ndarray:
    """Downscale an image so its largest side fits within ``max_dimension``.

    Preserves aspect ratio. Screens are already legible, so smaller images
    are returned unchanged.
    """
    h, w = image.shape[:2]
    largest = max(h, w)
    if largest <= max_dimension:
        return image

    scale = max_dimension / largest
    new_w = int(w * scale)
    new_h = int(h * scale)
    return cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)


def is_base64(text: str) -> bool:
    """Whether ``text`` is well-formed plain base64 (no ``data:`` prefix)."""
    if not text or len(text) % 4 != 0 or not _BASE64_RE.match(text):
        return False
    try:
        base64.b64decode(text, validate=True)
    except binascii.Error:
        return False
    return True


def encode_image_base64(payload: bytes | bytearray | str) -> str:
    """Encode a raw screenshot payload as plain base64.

    The payload must be non-empty and decodable as an image. A ``str``
    payload is treated as latin-1 binary data.

    Raises:
        ImagePayloadError: If the payload is empty, not an image, or the
            resulting encoding is malformed.
    """
    if isinstance(payload, str):
        logger.warning("Screenshot payload is a string, converting to bytes")
        payload = payload.encode("latin-1")
    if not payload:
        raise ImagePayloadError("Screenshot payload is empty")

    data = bytes(payload)
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ImagePayloadError(f"Screenshot payload is not a valid image: {e}") from e

    encoded = base64.b64encode(data).decode("ascii")
    if not is_base64(encoded):
        raise ImagePayloadError("Encoded screenshot is not valid base64")
    logger.debug("Encoded screenshot: %d bytes -> %d base64 chars", len(data), len(encoded))
    return encoded
