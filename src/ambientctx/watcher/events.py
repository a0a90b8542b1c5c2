"""Scheduler events and the observer bus that delivers them.

Events are tagged pydantic models discriminated on ``event_type``, so a
presentation layer can serialize them with ``model_dump()`` and switch on
the tag.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated, Callable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from ambientctx.domain.models import LifecycleState, Observation

logger = logging.getLogger(__name__)


class StatusChangeEvent(BaseModel):
    """The scheduler's lifecycle state changed."""

    model_config = ConfigDict(frozen=True)

    event_type: Literal["status-change"] = "status-change"
    state: LifecycleState


class CaptureStartEvent(BaseModel):
    """A tick is about to grab the screen."""

    model_config = ConfigDict(frozen=True)

    event_type: Literal["capture-start"] = "capture-start"


class CaptureCompleteEvent(BaseModel):
    """A tick produced an observation.

    The full observation, screenshot included, rides along for in-process
    consumers but is left out of the serialized event.
    """

    model_config = ConfigDict(frozen=True)

    event_type: Literal["capture-complete"] = "capture-complete"
    timestamp: datetime
    app_name: str
    analysis_text: str
    sequence_number: int
    observation: Observation = Field(exclude=True, repr=False)

    @classmethod
    def from_observation(cls, observation: Observation) -> CaptureCompleteEvent:
        return cls(
            timestamp=observation.timestamp,
            app_name=observation.app_name,
            analysis_text=observation.analysis_text,
            sequence_number=observation.sequence_number,
            observation=observation,
        )


class CaptureErrorEvent(BaseModel):
    """A tick failed. The scheduler keeps running."""

    model_config = ConfigDict(frozen=True)

    event_type: Literal["capture-error"] = "capture-error"
    error: str
    timestamp: datetime


# Discriminated union for scheduler events
SchedulerEvent = Annotated[
    Union[StatusChangeEvent, CaptureStartEvent, CaptureCompleteEvent, CaptureErrorEvent],
    Field(discriminator="event_type"),
]

EventListener = Callable[[SchedulerEvent], None]


class EventBus:
    """Fans scheduler events out to subscribed listeners.

    Listeners are called synchronously in subscription order. A listener
    that raises is logged and skipped; it never interrupts the emitter or
    the remaining listeners.
    """

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: SchedulerEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener %r failed on %s event", listener, event.event_type)
