"""Bounded, memory-only context store for observations and conversation.

Keeps the most recent screen observations (newest first) and chat turns
(chronological), picks the observations most relevant to a new question,
and assembles the prompt sent to the conversational model. Nothing is
persisted; a restart starts from an empty store.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter, deque
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable

from pydantic import ValidationError

from ambientctx.domain.models import ChatMessage, ChatRole, ContextLimits, Observation
from ambientctx.watcher.models import (
    ActivitySummary,
    CollectionStats,
    StoreStats,
    TimeRange,
)

logger = logging.getLogger(__name__)

RELEVANT_LIMIT = 3
PROMPT_CHAT_TURNS = 5
MIN_KEYWORD_LENGTH = 3

ACTIVITY_HEADER = "Recent user activity context:"
CONVERSATION_HEADER = "Recent conversation history:"
SECTION_SEPARATOR = "\n---\n\n"


def extract_keywords(query: str) -> list[str]:
    """Lowercase whitespace-separated words of at least three characters."""
    return [word for word in query.lower().split() if len(word) >= MIN_KEYWORD_LENGTH]


def format_time_ago(timestamp: datetime, now: datetime) -> str:
    """Render how long ago ``timestamp`` was, e.g. ``"5 minutes ago"``."""
    elapsed = (now - timestamp).total_seconds()
    minutes = int(elapsed // 60)
    hours = int(elapsed // 3600)

    if minutes < 1:
        return "a few seconds ago"
    if minutes == 1:
        return "1 minute ago"
    if minutes < 60:
        return f"{minutes} minutes ago"
    if hours == 1:
        return "1 hour ago"
    return f"{hours} hours ago"


class ContextStore:
    """Holds recent observations and chat turns for prompt assembly.

    Each collection is guarded by its own lock. Operations that read or
    clear both take the capture lock first, then the chat lock.
    """

    def __init__(
        self,
        limits: ContextLimits | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._limits = limits or ContextLimits()
        self._clock = clock
        self._captures: deque[Observation] = deque(maxlen=self._limits.capture_limit)
        self._chat: deque[ChatMessage] = deque(maxlen=self._limits.chat_limit)
        self._capture_lock = threading.RLock()
        self._chat_lock = threading.RLock()
        logger.info(
            "Context store initialized (limits: %d captures, %d messages)",
            self._limits.capture_limit, self._limits.chat_limit,
        )

    @property
    def limits(self) -> ContextLimits:
        return self._limits

    # ------------------------------------------------------------------
    # Writers
    # ------------------------------------------------------------------

    def add_capture(self, observation: Observation | Mapping[str, Any] | None) -> Observation | None:
        """Insert an observation at the front of the history.

        Returns:
            The stored observation, or None if the input was rejected.
        """
        if isinstance(observation, Mapping):
            try:
                observation = Observation.model_validate(dict(observation))
            except ValidationError as e:
                logger.warning("Invalid capture rejected: %s", e)
                return None
        if (
            not isinstance(observation, Observation)
            or not observation.app_name.strip()
            or not observation.analysis_text.strip()
        ):
            logger.warning("Invalid capture rejected, app name and analysis text are required")
            return None

        with self._capture_lock:
            evicting = len(self._captures) == self._captures.maxlen
            self._captures.appendleft(observation)
            size = len(self._captures)
        if evicting:
            logger.debug("Evicted oldest capture")
        logger.info("Capture added (%s), total: %d", observation.app_name, size)
        return observation

    def add_message(self, role: ChatRole | str, content: str) -> ChatMessage | None:
        """Append a chat turn.

        Returns:
            The stored message, or None if the role or content was invalid.
        """
        try:
            role = ChatRole(role)
        except ValueError:
            logger.warning("Invalid message role %r, must be 'user' or 'assistant'", role)
            return None
        if not isinstance(content, str) or not content.strip():
            logger.warning("Empty %s message rejected", role.value)
            return None

        message = ChatMessage(role=role, content=content, timestamp=self._clock())
        with self._chat_lock:
            self._chat.append(message)
            size = len(self._chat)
        logger.info("Message added (%s), total: %d", role.value, size)
        return message

    def clear(self) -> None:
        """Discard every observation and chat turn."""
        with self._capture_lock, self._chat_lock:
            captures_removed = len(self._captures)
            messages_removed = len(self._chat)
            self._captures.clear()
            self._chat.clear()
        logger.info(
            "Context cleared: %d captures, %d messages", captures_removed, messages_removed
        )

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------

    def get_relevant_context(self, query: str | None) -> list[Observation]:
        """Pick up to three observations that best match ``query``.

        Observations are scored by how many query keywords appear in their
        analysis text or app name. Ties go to the more recent observation.
        With no query, no keywords or no match, the three most recent
        observations are returned instead.
        """
        with self._capture_lock:
            captures = list(self._captures)

        recent = captures[:RELEVANT_LIMIT]
        if not query or not captures:
            return recent

        keywords = extract_keywords(query)
        if not keywords:
            return recent
        logger.debug("Keywords for relevance ranking: %s", ", ".join(keywords))

        scored = []
        for obs in captures:
            analysis = obs.analysis_text.lower()
            app = obs.app_name.lower()
            matches = sum(1 for kw in keywords if kw in analysis or kw in app)
            if matches:
                scored.append((matches, obs))

        if not scored:
            logger.debug("No keyword matches, using most recent captures")
            return recent

        scored.sort(key=lambda item: (item[0], item[1].timestamp), reverse=True)
        return [obs for _, obs in scored[:RELEVANT_LIMIT]]

    def build_prompt_with_context(self, user_message: str) -> str:
        """Assemble a prompt from relevant activity, recent chat and the new turn."""
        with self._capture_lock, self._chat_lock:
            relevant = self.get_relevant_context(user_message)
            recent_chat = list(self._chat)[-PROMPT_CHAT_TURNS:]

        now = self._clock()
        parts: list[str] = []

        if relevant:
            parts.append(f"{ACTIVITY_HEADER}\n")
            for index, obs in enumerate(relevant, start=1):
                time_ago = format_time_ago(obs.timestamp, now)
                parts.append(f"\n[{index}] {time_ago} - {obs.app_name}:\n")
                parts.append(f"   {obs.analysis_text}\n")
            parts.append(SECTION_SEPARATOR)

        if recent_chat:
            parts.append(f"{CONVERSATION_HEADER}\n")
            for message in recent_chat:
                parts.append(f"{message.render()}\n")
            parts.append(SECTION_SEPARATOR)

        parts.append(f"{ChatRole.USER.speaker}: {user_message}\n\n")
        parts.append(f"{ChatRole.ASSISTANT.speaker}:")

        prompt = "".join(parts)
        logger.debug("Prompt built (%d chars)", len(prompt))
        return prompt

    def get_capture_history(self, limit: int = 10) -> list[Observation]:
        """Up to ``limit`` observations, newest first."""
        with self._capture_lock:
            count = max(0, min(limit, len(self._captures)))
            return list(self._captures)[:count]

    def get_chat_history(self, limit: int = 20) -> list[ChatMessage]:
        """The last ``limit`` chat turns, in chronological order."""
        with self._chat_lock:
            count = max(0, min(limit, len(self._chat)))
            if count == 0:
                return []
            return list(self._chat)[-count:]

    def summarize_activity(self) -> ActivitySummary:
        """Count captures per app and report the covered time span."""
        with self._capture_lock:
            captures = list(self._captures)

        if not captures:
            return ActivitySummary()

        # Counter keeps first-insertion order, so ties resolve to the app
        # that appears first in the newest-first history
        app_counts = Counter(obs.app_name for obs in captures)
        most_used_app = None
        max_count = 0
        for app, count in app_counts.items():
            if count > max_count:
                most_used_app, max_count = app, count

        timestamps = [obs.timestamp for obs in captures]
        return ActivitySummary(
            total_captures=len(captures),
            apps_used=list(app_counts),
            most_used_app=most_used_app,
            time_range=TimeRange(start=min(timestamps), end=max(timestamps)),
        )

    def get_stats(self) -> StoreStats:
        with self._capture_lock, self._chat_lock:
            return StoreStats(
                captures=CollectionStats(
                    count=len(self._captures), limit=self._limits.capture_limit
                ),
                chat=CollectionStats(count=len(self._chat), limit=self._limits.chat_limit),
                activity=self.summarize_activity(),
            )
