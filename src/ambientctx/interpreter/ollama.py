"""Ollama provider implementation.

Talks to a local Ollama server over its HTTP API: ``/api/chat`` for
screenshot analysis, ``/api/generate`` for conversational replies and
``/api/tags`` for connectivity checks.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ambientctx.interpreter.base import (
    MLLMError,
    MLLMTimeoutError,
    MLLMUnavailableError,
    VisionProvider,
)

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_URL = "http://localhost:11434"


class OllamaProvider(VisionProvider):
    """Vision and chat provider backed by a local Ollama server.

    Example usage::

        provider = OllamaProvider(model="llama3.2-vision")
        text = await provider.analyze_image(b64_png, "Describe this screen.")
        await provider.aclose()

    Vision models can take minutes per image on consumer hardware, hence
    the generous default timeout.
    """

    def __init__(
        self,
        model: str = "llama3.2-vision",
        base_url: str | None = None,
        chat_model: str | None = None,
        timeout: float = 180.0,
        temperature: float = 0.7,
        max_tokens: int = 200,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(model=model, chat_model=chat_model)
        self._base_url = (base_url or DEFAULT_OLLAMA_URL).rstrip("/")
        self._timeout = timeout
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Lazily initialize the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
            logger.info("Initialized Ollama client (model=%s, base_url=%s)", self._model, self._base_url)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def analyze_image(self, image_b64: str, instruction: str) -> str:
        """Describe a screenshot with the configured vision model."""
        self._validate_request(image_b64, instruction)
        payload = {
            "model": self._model,
            "messages": [
                {
                    "role": "user",
                    "content": instruction,
                    "images": [image_b64],
                }
            ],
            "stream": False,
            "options": {
                "temperature": self._temperature,
                "num_predict": self._max_tokens,
            },
        }
        logger.debug(
            "Sending %d base64 chars to %s with prompt %r",
            len(image_b64), self._model, instruction[:50],
        )
        data = await self._post("/api/chat", payload, model=self._model)
        return self._extract_text(data)

    async def complete(self, prompt: str) -> str:
        """Generate a reply for an assembled conversation prompt."""
        self._validate_request(None, prompt)
        payload = {
            "model": self._chat_model,
            "prompt": prompt,
            "stream": False,
        }
        data = await self._post("/api/generate", payload, model=self._chat_model)
        return self._extract_text(data)

    async def list_models(self) -> list[str]:
        """Return the names of the models installed on the server."""
        client = self._ensure_client()
        try:
            resp = await client.get("/api/tags")
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise self._wrap_error(e, model=self._model) from e
        return [m.get("name", "") for m in resp.json().get("models", [])]

    async def health_check(self) -> bool:
        """Check that the server answers and warn if the model is missing."""
        try:
            models = await self.list_models()
        except MLLMError as e:
            logger.warning("Health check failed: %s", e)
            return False
        if not any(self._model in name for name in models):
            logger.warning("Model '%s' not found. Available models: %s", self._model, models)
        return True

    async def _post(self, path: str, payload: dict[str, Any], model: str) -> dict[str, Any]:
        client = self._ensure_client()
        try:
            resp = await client.post(path, json=payload)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise self._wrap_error(e, model=model) from e
        try:
            data = resp.json()
        except ValueError as e:
            raise MLLMError(
                f"Ollama returned a non-JSON response: {e}",
                provider="ollama",
                raw_response=resp.text[:500],
            ) from e
        logger.debug("Ollama raw response: %s", str(data)[:300])
        return data

    @staticmethod
    def _extract_text(data: Any) -> str:
        """Pull the completion text out of a chat or generate response."""
        if isinstance(data, str):
            return data
        if not isinstance(data, dict):
            return ""
        message = data.get("message")
        if isinstance(message, dict) and message.get("content"):
            return message["content"]
        if isinstance(message, str):
            return message
        if data.get("response"):
            return data["response"]
        logger.warning("Unknown Ollama response format: %s", str(data)[:200])
        return ""

    def _wrap_error(self, error: httpx.HTTPError, model: str) -> MLLMError:
        if isinstance(error, httpx.TimeoutException):
            return MLLMTimeoutError(
                f"Ollama request timed out after {self._timeout:.0f}s", provider="ollama"
            )
        if isinstance(error, httpx.ConnectError):
            return MLLMUnavailableError(
                f"Could not connect to Ollama. Is it running at {self._base_url}?",
                provider="ollama",
            )
        if isinstance(error, httpx.HTTPStatusError) and error.response.status_code == 404:
            return MLLMError(
                f"Model '{model}' not found. Pull it with 'ollama pull {model}'.",
                provider="ollama",
                raw_response=error.response.text[:500],
            )
        return MLLMError(f"Ollama request failed: {error}", provider="ollama")
