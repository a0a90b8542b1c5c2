"""Tests for the AmbientAssistant facade."""

from __future__ import annotations

import pytest

from ambientctx.assistant import AmbientAssistant
from ambientctx.domain.models import ChatRole
from ambientctx.interpreter.base import MLLMUnavailableError
from ambientctx.watcher.loop import CaptureScheduler
from ambientctx.watcher.memory import ContextStore


@pytest.fixture
def assistant(scheduler: CaptureScheduler, store: ContextStore, mock_provider) -> AmbientAssistant:
    return AmbientAssistant(scheduler, store, mock_provider)


class TestAmbientAssistant:
    @pytest.mark.asyncio
    async def test_captures_flow_into_store(
        self, assistant: AmbientAssistant, scheduler: CaptureScheduler, store: ContextStore
    ) -> None:
        scheduler.start()
        await scheduler.wait_idle()
        await scheduler.aclose()

        history = store.get_capture_history()
        assert len(history) == 1
        assert history[0].app_name == "VSCode"
        assert history[0].analysis_text == "The user is editing a for loop."

    @pytest.mark.asyncio
    async def test_send_message_uses_context(
        self, assistant: AmbientAssistant, scheduler: CaptureScheduler, store: ContextStore, mock_provider
    ) -> None:
        scheduler.start()
        await scheduler.wait_idle()
        await scheduler.aclose()

        reply = await assistant.send_message("What was I doing with that for loop?")

        assert reply.success
        assert reply.text == "You were editing a for loop in VSCode."
        prompt = mock_provider.complete.await_args.args[0]
        assert prompt.startswith("Recent user activity context:\n")
        assert "VSCode:\n   The user is editing a for loop." in prompt
        assert prompt.count("What was I doing with that for loop?") == 1
        assert prompt.endswith("User: What was I doing with that for loop?\n\nAssistant:")

        roles = [m.role for m in store.get_chat_history()]
        assert roles == [ChatRole.USER, ChatRole.ASSISTANT]

    @pytest.mark.asyncio
    async def test_previous_turns_appear_in_next_prompt(
        self, assistant: AmbientAssistant, mock_provider
    ) -> None:
        await assistant.send_message("hi")
        await assistant.send_message("again")

        prompt = mock_provider.complete.await_args.args[0]
        assert "Recent conversation history:\nUser: hi\n" in prompt
        assert "Assistant: You were editing a for loop in VSCode.\n" in prompt

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", None])
    async def test_empty_message_is_rejected(
        self, assistant: AmbientAssistant, store: ContextStore, mock_provider, text
    ) -> None:
        reply = await assistant.send_message(text)
        assert not reply.success
        assert reply.error == "Message is empty"
        mock_provider.complete.assert_not_awaited()
        assert store.get_chat_history() == []

    @pytest.mark.asyncio
    async def test_provider_failure_keeps_user_turn(
        self, assistant: AmbientAssistant, store: ContextStore, mock_provider
    ) -> None:
        mock_provider.complete.side_effect = MLLMUnavailableError("Could not connect to Ollama")

        reply = await assistant.send_message("hello")

        assert not reply.success
        assert "Could not connect" in reply.error
        assert [m.role for m in store.get_chat_history()] == [ChatRole.USER]

    @pytest.mark.asyncio
    async def test_reply_is_sanitized(self, assistant: AmbientAssistant, mock_provider) -> None:
        mock_provider.complete.return_value = "<s>Line one\nLine two\x07</s>"
        reply = await assistant.send_message("hello")
        assert reply.text == "Line one\nLine two"

    @pytest.mark.asyncio
    async def test_blank_reply_is_an_error(
        self, assistant: AmbientAssistant, store: ContextStore, mock_provider
    ) -> None:
        mock_provider.complete.return_value = "<|eot_id|>"
        reply = await assistant.send_message("hello")
        assert not reply.success
        assert len(store.get_chat_history()) == 1

    @pytest.mark.asyncio
    async def test_close_stops_feeding_store(
        self, assistant: AmbientAssistant, scheduler: CaptureScheduler, store: ContextStore
    ) -> None:
        assistant.close()
        scheduler.start()
        await scheduler.wait_idle()
        await scheduler.aclose()
        assert store.get_capture_history() == []
