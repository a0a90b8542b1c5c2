"""OpenAI-compatible provider implementation.

Works with OpenAI, OpenRouter, and any OpenAI-compatible API (including
Ollama's ``/v1`` endpoint) by setting a custom base_url.
"""

from __future__ import annotations

import logging

from ambientctx.interpreter.base import (
    MLLMError,
    MLLMTimeoutError,
    MLLMUnavailableError,
    VisionProvider,
)

logger = logging.getLogger(__name__)


class OpenAIProvider(VisionProvider):
    """Provider using OpenAI's chat completions API."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        chat_model: str | None = None,
        timeout: float = 180.0,
        temperature: float = 0.7,
        max_tokens: int = 200,
    ) -> None:
        super().__init__(model=model, chat_model=chat_model)
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._client = None

    async def _ensure_client(self) -> None:
        """Lazily initialize the OpenAI async client."""
        if self._client is not None:
            return
        from openai import AsyncOpenAI
        kwargs = {"api_key": self._api_key, "timeout": self._timeout}
        if self._base_url:
            kwargs["base_url"] = self._base_url
        self._client = AsyncOpenAI(**kwargs)
        logger.info("Initialized OpenAI client (model=%s, base_url=%s)", self._model, self._base_url)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def analyze_image(self, image_b64: str, instruction: str) -> str:
        """Describe a screenshot using the vision API."""
        self._validate_request(image_b64, instruction)
        messages = [
            {
                "role": "user",
                "content": [
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:image/png;base64,{image_b64}"},
                    },
                    {"type": "text", "text": instruction},
                ],
            },
        ]
        return await self._create(self._model, messages)

    async def complete(self, prompt: str) -> str:
        self._validate_request(None, prompt)
        return await self._create(self._chat_model, [{"role": "user", "content": prompt}])

    async def health_check(self) -> bool:
        """Check if the API is reachable."""
        try:
            await self._ensure_client()
            await self._client.models.list()
            return True
        except Exception as e:
            logger.warning("Health check failed: %s", e)
            return False

    async def _create(self, model: str, messages: list[dict]) -> str:
        import openai

        await self._ensure_client()
        try:
            response = await self._client.chat.completions.create(
                model=model,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
                messages=messages,
            )
        except openai.APITimeoutError as e:
            raise MLLMTimeoutError(
                f"OpenAI request timed out after {self._timeout:.0f}s", provider="openai"
            ) from e
        except openai.APIConnectionError as e:
            raise MLLMUnavailableError(f"OpenAI API is unreachable: {e}", provider="openai") from e
        except openai.OpenAIError as e:
            raise MLLMError(f"OpenAI API call failed: {e}", provider="openai") from e

        raw_text = response.choices[0].message.content or ""
        logger.debug("OpenAI raw response: %s", raw_text[:200])
        return raw_text
