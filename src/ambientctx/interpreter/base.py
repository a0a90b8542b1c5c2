"""Abstract base class for vision / conversational model providers.

All provider implementations must conform to this interface, enabling
the system to swap between a local Ollama server and OpenAI-compatible
APIs without changing the scheduler or the assistant.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)

# Special tokens some local models leak into their completions
MODEL_CONTROL_TOKENS = (
    "<s>",
    "</s>",
    "<unk>",
    "<|im_start|>",
    "<|im_end|>",
    "<|eot_id|>",
    "<|endoftext|>",
)

_TOKEN_RE = re.compile("|".join(re.escape(t) for t in MODEL_CONTROL_TOKENS))
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_CONTROL_KEEP_NEWLINES_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f-\x9f]")
_LATIN1_HIGH_RE = re.compile(r"[\x80-\xff]")


def sanitize_model_text(text: object, keep_newlines: bool = False) -> str:
    """Clean a model completion for display and storage.

    Repairs UTF-8 text that was decoded as latin-1, removes special model
    tokens and control characters, and trims surrounding whitespace.
    Anything that is not a string is treated as an empty completion.
    """
    if not isinstance(text, str):
        if text is not None:
            logger.warning("Model returned non-text output (%s), discarding", type(text).__name__)
        return ""

    if _LATIN1_HIGH_RE.search(text):
        try:
            text = text.encode("latin-1").decode("utf-8")
            logger.debug("Re-decoded model output as UTF-8")
        except (UnicodeEncodeError, UnicodeDecodeError):
            pass

    text = _TOKEN_RE.sub("", text)
    pattern = _CONTROL_KEEP_NEWLINES_RE if keep_newlines else _CONTROL_RE
    return pattern.sub("", text).strip()


class VisionProvider(ABC):
    """Abstract interface for multimodal model providers.

    A provider describes screenshots and answers free-form prompts.
    Failures are raised as ``MLLMError`` so callers can report them
    without crashing.
    """

    def __init__(self, model: str, chat_model: str | None = None) -> None:
        self._model = model
        self._chat_model = chat_model or model

    @property
    def model(self) -> str:
        return self._model

    @property
    def chat_model(self) -> str:
        return self._chat_model

    @abstractmethod
    async def analyze_image(self, image_b64: str, instruction: str) -> str:
        """Describe a base64-encoded PNG according to ``instruction``.

        Returns:
            The raw (unsanitized) model text.

        Raises:
            MLLMError: If the request fails, times out, or the provider
                is unreachable.
        """
        ...

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Generate a conversational reply for an assembled prompt."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the provider is reachable and authenticated."""
        ...

    async def aclose(self) -> None:
        """Release any underlying client connections."""

    @staticmethod
    def _validate_request(image_b64: str | None, instruction: str | None) -> None:
        if image_b64 is not None and not image_b64.strip():
            raise MLLMError("Image payload is empty")
        if image_b64 is not None and image_b64.startswith("data:"):
            raise MLLMError("Image payload must be plain base64 without a data: prefix")
        if instruction is not None and not instruction.strip():
            raise MLLMError("Prompt is empty")


class MLLMError(Exception):
    """Raised when a model request fails."""

    def __init__(self, message: str, provider: str = "", raw_response: str = "") -> None:
        super().__init__(message)
        self.provider = provider
        self.raw_response = raw_response


class MLLMUnavailableError(MLLMError):
    """Raised when the provider cannot be reached at all."""


class MLLMTimeoutError(MLLMError):
    """Raised when the provider does not answer within its timeout."""
