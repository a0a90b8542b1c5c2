"""Model Interpreter module for ambientctx.

Provides a provider-agnostic interface for describing screenshots with
multimodal models and for generating conversational replies.

Public API:
    VisionProvider -- Abstract base class
    OllamaProvider -- Local Ollama server implementation
    OpenAIProvider -- OpenAI / OpenAI-compatible implementation
    sanitize_model_text -- Strip model tokens and control characters
"""

from ambientctx.interpreter.base import (
    MLLMError,
    MLLMTimeoutError,
    MLLMUnavailableError,
    VisionProvider,
    sanitize_model_text,
)

__all__ = [
    "MLLMError",
    "MLLMTimeoutError",
    "MLLMUnavailableError",
    "OllamaProvider",
    "OpenAIProvider",
    "VisionProvider",
    "sanitize_model_text",
]


def __getattr__(name: str) -> type:
    """Lazy import for concrete implementations that require external deps."""
    if name == "OllamaProvider":
        from ambientctx.interpreter.ollama import OllamaProvider
        return OllamaProvider
    if name == "OpenAIProvider":
        from ambientctx.interpreter.openai import OpenAIProvider
        return OpenAIProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
