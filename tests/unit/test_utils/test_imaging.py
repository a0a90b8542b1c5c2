"""Tests for image encoding helpers."""

from __future__ import annotations

import base64

import numpy as np
import pytest

from ambientctx.utils.imaging import (
    ImagePayloadError,
    encode_image_base64,
    is_base64,
    numpy_to_png_bytes,
    resize_for_mllm,
)


class TestEncodeImageBase64:
    def test_encodes_png(self, sample_png: bytes) -> None:
        encoded = encode_image_base64(sample_png)
        assert base64.b64decode(encoded) == sample_png
        assert not encoded.startswith("data:")

    def test_accepts_latin1_string(self, sample_png: bytes) -> None:
        assert encode_image_base64(sample_png.decode("latin-1")) == encode_image_base64(sample_png)

    def test_accepts_bytearray(self, sample_png: bytes) -> None:
        assert encode_image_base64(bytearray(sample_png)) == encode_image_base64(sample_png)

    @pytest.mark.parametrize("payload", [b"", ""])
    def test_rejects_empty(self, payload) -> None:
        with pytest.raises(ImagePayloadError, match="empty"):
            encode_image_base64(payload)

    def test_rejects_non_image(self) -> None:
        with pytest.raises(ImagePayloadError, match="not a valid image"):
            encode_image_base64(b"plain text, not pixels")


class TestIsBase64:
    @pytest.mark.parametrize("text", ["AAAA", "aGVsbG8=", "aGk="])
    def test_valid(self, text: str) -> None:
        assert is_base64(text)

    @pytest.mark.parametrize("text", ["", "AAA", "data:image/png;base64,AAAA", "AA AA", "A===", "****"])
    def test_invalid(self, text: str) -> None:
        assert not is_base64(text)


class TestResize:
    def test_small_image_unchanged(self, sample_image: np.ndarray) -> None:
        assert resize_for_mllm(sample_image, max_dimension=100) is sample_image

    def test_large_image_keeps_aspect_ratio(self) -> None:
        image = np.zeros((1000, 2000, 3), dtype=np.uint8)
        assert resize_for_mllm(image, max_dimension=500).shape == (250, 500, 3)


def test_numpy_to_png_bytes(sample_image: np.ndarray) -> None:
    assert numpy_to_png_bytes(sample_image).startswith(b"\x89PNG\r\n\x1a\n")
