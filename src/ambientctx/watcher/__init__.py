"""Ambient watcher module for ambientctx.

Contains the capture scheduler that samples the screen on a timer and
the context store that keeps recent observations and conversation turns
for prompt assembly.

Public API:
    CaptureScheduler -- Timer-driven sampling with a lifecycle state machine
    ContextStore -- Bounded observation and chat history
    EventBus -- Observer bus for scheduler events
"""

from ambientctx.watcher.events import (
    CaptureCompleteEvent,
    CaptureErrorEvent,
    CaptureStartEvent,
    EventBus,
    SchedulerEvent,
    StatusChangeEvent,
)
from ambientctx.watcher.loop import CaptureScheduler
from ambientctx.watcher.memory import ContextStore
from ambientctx.watcher.models import ActivitySummary, SchedulerStats, StoreStats

__all__ = [
    "ActivitySummary",
    "CaptureCompleteEvent",
    "CaptureErrorEvent",
    "CaptureScheduler",
    "CaptureStartEvent",
    "ContextStore",
    "EventBus",
    "SchedulerEvent",
    "SchedulerStats",
    "StatusChangeEvent",
    "StoreStats",
]
