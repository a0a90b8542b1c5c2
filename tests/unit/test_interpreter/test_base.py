"""Tests for the VisionProvider interface and model text sanitization."""

from __future__ import annotations

import pytest

from ambientctx.interpreter.base import (
    MLLMError,
    MLLMTimeoutError,
    MLLMUnavailableError,
    VisionProvider,
    sanitize_model_text,
)


class TestVisionProviderInterface:
    def test_cannot_instantiate_abstract_class(self) -> None:
        with pytest.raises(TypeError):
            VisionProvider(model="test")  # type: ignore[abstract]

    def test_mllm_error_carries_metadata(self) -> None:
        error = MLLMError("test error", provider="ollama", raw_response='{"bad": "json"}')
        assert str(error) == "test error"
        assert error.provider == "ollama"
        assert error.raw_response == '{"bad": "json"}'

    def test_error_taxonomy(self) -> None:
        assert issubclass(MLLMTimeoutError, MLLMError)
        assert issubclass(MLLMUnavailableError, MLLMError)

    @pytest.mark.parametrize(
        ("image_b64", "instruction"),
        [
            ("", "Describe"),
            ("data:image/png;base64,AAAA", "Describe"),
            ("AAAA", "   "),
        ],
    )
    def test_validate_request_rejects_bad_input(self, image_b64: str, instruction: str) -> None:
        with pytest.raises(MLLMError):
            VisionProvider._validate_request(image_b64, instruction)

    def test_validate_request_skips_missing_image(self) -> None:
        VisionProvider._validate_request(None, "Hello")


class TestSanitizeModelText:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("  The user is coding.  ", "The user is coding."),
            ("<s>Reading mail</s>", "Reading mail"),
            ("<|im_start|>Browsing<|im_end|><|eot_id|>", "Browsing"),
            ("Line one\nLine two\x00\x1b", "Line oneLine two"),
            ("cafÃ© menu", "café menu"),
            ("résumé", "résumé"),
            ("</s>", ""),
        ],
    )
    def test_cleans_text(self, raw: str, expected: str) -> None:
        assert sanitize_model_text(raw) == expected

    def test_keep_newlines(self) -> None:
        assert sanitize_model_text("First\n\tSecond\x07\n", keep_newlines=True) == "First\n\tSecond"

    @pytest.mark.parametrize("value", [None, 42, {"text": "hi"}, b"bytes"])
    def test_non_text_is_empty(self, value: object) -> None:
        assert sanitize_model_text(value) == ""
