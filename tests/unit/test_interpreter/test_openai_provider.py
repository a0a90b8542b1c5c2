"""Tests for the OpenAIProvider with a mocked client."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from ambientctx.interpreter.base import MLLMError, MLLMTimeoutError, MLLMUnavailableError
from ambientctx.interpreter.openai import OpenAIProvider

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def provider() -> OpenAIProvider:
    provider = OpenAIProvider(api_key="sk-test", model="gpt-4o-mini", chat_model="gpt-4o")
    provider._client = MagicMock()
    provider._client.chat.completions.create = AsyncMock(return_value=completion("A reply."))
    provider._client.models.list = AsyncMock(return_value=[])
    return provider


class TestOpenAIProvider:
    @pytest.mark.asyncio
    async def test_analyze_image_sends_data_url(self, provider: OpenAIProvider) -> None:
        assert await provider.analyze_image("AAAA", "Describe.") == "A reply."

        kwargs = provider._client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        image_part, text_part = kwargs["messages"][0]["content"]
        assert image_part["image_url"]["url"] == "data:image/png;base64,AAAA"
        assert text_part == {"type": "text", "text": "Describe."}

    @pytest.mark.asyncio
    async def test_complete_uses_chat_model(self, provider: OpenAIProvider) -> None:
        await provider.complete("User: hi\n\nAssistant:")
        kwargs = provider._client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o"
        assert kwargs["messages"] == [{"role": "user", "content": "User: hi\n\nAssistant:"}]

    @pytest.mark.asyncio
    async def test_missing_content_is_empty(self, provider: OpenAIProvider) -> None:
        provider._client.chat.completions.create.return_value = completion(None)
        assert await provider.complete("hello") == ""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (openai.APITimeoutError(request=REQUEST), MLLMTimeoutError),
            (openai.APIConnectionError(request=REQUEST), MLLMUnavailableError),
            (openai.OpenAIError("bad key"), MLLMError),
        ],
    )
    async def test_errors_are_wrapped(
        self, provider: OpenAIProvider, error: Exception, expected: type
    ) -> None:
        provider._client.chat.completions.create.side_effect = error
        with pytest.raises(expected) as exc_info:
            await provider.complete("hello")
        assert exc_info.value.provider == "openai"

    @pytest.mark.asyncio
    async def test_health_check(self, provider: OpenAIProvider) -> None:
        assert await provider.health_check() is True
        provider._client.models.list.side_effect = openai.APIConnectionError(request=REQUEST)
        assert await provider.health_check() is False
