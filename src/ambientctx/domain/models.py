"""Core domain models for the ambientctx system.

These models represent the data flowing between the capture scheduler
and the context store: the capture configuration, the observations
produced by each sampling tick, and the conversation turns exchanged
with the assistant.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

MIN_INTERVAL_SECONDS = 1
MAX_INTERVAL_SECONDS = 60
DEFAULT_INTERVAL_SECONDS = 3


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class LifecycleState(str, enum.Enum):
    """Lifecycle of the capture scheduler.

    Never stored on its own: always derived from whether the timer is
    running and whether capturing is enabled.
    """

    STOPPED = "stopped"  # Timer not running
    ACTIVE = "active"  # Timer running, capturing enabled
    PAUSED = "paused"  # Timer running, capturing disabled

    @classmethod
    def derive(cls, timer_running: bool, enabled: bool) -> LifecycleState:
        if not timer_running:
            return cls.STOPPED
        return cls.ACTIVE if enabled else cls.PAUSED


class ChatRole(str, enum.Enum):
    """Who authored a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"

    @property
    def speaker(self) -> str:
        """Label used when rendering the turn into a prompt."""
        return "User" if self is ChatRole.USER else "Assistant"


# ---------------------------------------------------------------------------
# Capture configuration
# ---------------------------------------------------------------------------


def is_valid_interval(value: object) -> bool:
    """Whether ``value`` is an integer number of seconds within [1, 60]."""
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return MIN_INTERVAL_SECONDS <= value <= MAX_INTERVAL_SECONDS


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware timestamp to naive local time; naive values pass through.

    Everything the store compares against comes from ``datetime.now()``,
    so timestamps parsed from ISO strings with an offset or from epoch
    numbers must share that form.
    """
    if value.tzinfo is None or value.utcoffset() is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class CaptureConfig(BaseModel):
    """Runtime configuration of the capture scheduler.

    ``interval_seconds`` is clamped into [1, 60] on construction. Runtime
    updates go through ``CaptureScheduler.update_config``, which rejects
    out-of-range values instead of clamping them.
    """

    model_config = ConfigDict(validate_assignment=True)

    interval_seconds: int = Field(
        default=DEFAULT_INTERVAL_SECONDS,
        description="Seconds between sampling ticks (1-60)",
    )
    excluded_apps: set[str] = Field(
        default_factory=set,
        description="Application names for which no capture is taken",
    )
    enabled: bool = Field(default=True, description="Whether ticks sample the screen")

    @field_validator("interval_seconds", mode="before")
    @classmethod
    def _clamp_interval(cls, value: object) -> int:
        interval = int(value)  # type: ignore[arg-type]
        clamped = max(MIN_INTERVAL_SECONDS, min(MAX_INTERVAL_SECONDS, interval))
        if clamped != interval:
            logger.warning(
                "Capture interval %ss out of range (%d-%d), clamped to %ss",
                interval, MIN_INTERVAL_SECONDS, MAX_INTERVAL_SECONDS, clamped,
            )
        return clamped


class CaptureConfigUpdate(BaseModel):
    """A partial capture configuration. Unset fields are left unchanged."""

    model_config = ConfigDict(extra="ignore")

    interval_seconds: int | None = None
    excluded_apps: list[str] | None = None
    enabled: bool | None = None


# ---------------------------------------------------------------------------
# Observations and conversation
# ---------------------------------------------------------------------------


class Observation(BaseModel):
    """One completed sample of the user's screen activity.

    Produced by a successful sampling tick and never modified afterwards.
    The raw PNG payload is kept for consumers that want it but is left out
    of ``repr`` and of emitted events.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=datetime.now, description="When the tick started")
    app_name: str = Field(description="Foreground application at capture time")
    analysis_text: str = Field(description="Sanitized one-sentence description of the screen")
    image_png: bytes | None = Field(default=None, repr=False, description="Raw PNG screenshot")
    sequence_number: int = Field(default=0, ge=0, description="Monotonic success counter value")

    @field_validator("timestamp")
    @classmethod
    def _local_timestamp(cls, value: datetime) -> datetime:
        return to_local_naive(value)


class ChatMessage(BaseModel):
    """A single conversation turn."""

    model_config = ConfigDict(frozen=True)

    role: ChatRole
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)

    @field_validator("timestamp")
    @classmethod
    def _local_timestamp(cls, value: datetime) -> datetime:
        return to_local_naive(value)

    def render(self) -> str:
        return f"{self.role.speaker}: {self.content}"


class ContextLimits(BaseModel):
    """Maximum number of entries retained by the context store."""

    model_config = ConfigDict(frozen=True)

    capture_limit: int = Field(default=10, gt=0)
    chat_limit: int = Field(default=20, gt=0)


class ChatReply(BaseModel):
    """Outcome of one round trip to the conversational model."""

    model_config = ConfigDict(frozen=True)

    success: bool
    text: str | None = None
    error: str | None = None
