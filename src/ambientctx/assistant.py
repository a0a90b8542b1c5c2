"""Assistant facade tying the scheduler, the context store and the model.

Feeds every completed capture into the context store and turns user
questions into context-enriched prompts for the conversational model.
"""

from __future__ import annotations

import logging

from ambientctx.domain.models import ChatReply, ChatRole
from ambientctx.interpreter.base import MLLMError, VisionProvider, sanitize_model_text
from ambientctx.watcher.events import CaptureCompleteEvent, SchedulerEvent
from ambientctx.watcher.loop import CaptureScheduler
from ambientctx.watcher.memory import ContextStore

logger = logging.getLogger(__name__)


class AmbientAssistant:
    """Conversational front end over the ambient context.

    Example usage::

        assistant = AmbientAssistant(scheduler, store, provider)
        scheduler.start()
        reply = await assistant.send_message("What was I reading?")
    """

    def __init__(
        self,
        scheduler: CaptureScheduler,
        store: ContextStore,
        provider: VisionProvider,
    ) -> None:
        self._scheduler = scheduler
        self._store = store
        self._provider = provider
        self._unsubscribe = scheduler.events.subscribe(self._on_event)

    @property
    def scheduler(self) -> CaptureScheduler:
        return self._scheduler

    @property
    def store(self) -> ContextStore:
        return self._store

    def _on_event(self, event: SchedulerEvent) -> None:
        if isinstance(event, CaptureCompleteEvent):
            self._store.add_capture(event.observation)

    async def send_message(self, text: str) -> ChatReply:
        """Answer ``text`` using the recent screen activity and conversation.

        The prompt is built before the new turn is recorded so that the
        turn appears once, as the current question. The user turn stays
        in the history even when the model call fails.
        """
        if not isinstance(text, str) or not text.strip():
            logger.warning("Empty message rejected")
            return ChatReply(success=False, error="Message is empty")

        prompt = self._store.build_prompt_with_context(text)
        self._store.add_message(ChatRole.USER, text)

        try:
            raw_reply = await self._provider.complete(prompt)
        except MLLMError as e:
            logger.error("Chat completion failed: %s", e)
            return ChatReply(success=False, error=str(e))

        reply = sanitize_model_text(raw_reply, keep_newlines=True)
        if not reply:
            logger.warning("Model returned an empty reply")
            return ChatReply(success=False, error="Model returned an empty reply")

        self._store.add_message(ChatRole.ASSISTANT, reply)
        return ChatReply(success=True, text=reply)

    def close(self) -> None:
        """Stop feeding captures into the store."""
        self._unsubscribe()
