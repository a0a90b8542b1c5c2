"""Tests for scheduler events and the EventBus."""

from __future__ import annotations

from datetime import datetime

import pytest
from pydantic import TypeAdapter

from ambientctx.domain.models import LifecycleState, Observation
from ambientctx.watcher.events import (
    CaptureCompleteEvent,
    CaptureErrorEvent,
    CaptureStartEvent,
    EventBus,
    SchedulerEvent,
    StatusChangeEvent,
)


class TestEventBus:
    def test_delivers_in_subscription_order(self) -> None:
        bus = EventBus()
        calls: list[str] = []
        bus.subscribe(lambda e: calls.append("first"))
        bus.subscribe(lambda e: calls.append("second"))

        bus.emit(CaptureStartEvent())
        assert calls == ["first", "second"]

    def test_unsubscribe(self) -> None:
        bus = EventBus()
        received: list = []
        unsubscribe = bus.subscribe(received.append)
        assert bus.listener_count == 1

        unsubscribe()
        unsubscribe()
        bus.emit(CaptureStartEvent())

        assert received == []
        assert bus.listener_count == 0

    def test_failing_listener_is_isolated(self, caplog: pytest.LogCaptureFixture) -> None:
        bus = EventBus()
        received: list = []

        def broken(event) -> None:
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(received.append)
        bus.emit(StatusChangeEvent(state=LifecycleState.ACTIVE))

        assert len(received) == 1
        assert "boom" in caplog.text

    def test_emit_without_listeners(self) -> None:
        EventBus().emit(CaptureStartEvent())


class TestEvents:
    def test_complete_event_hides_observation(self) -> None:
        observation = Observation(
            timestamp=datetime(2025, 1, 1, 9, 30),
            app_name="VSCode",
            analysis_text="Editing code",
            image_png=b"\x89PNG",
            sequence_number=4,
        )
        event = CaptureCompleteEvent.from_observation(observation)

        assert event.observation is observation
        assert event.model_dump() == {
            "event_type": "capture-complete",
            "timestamp": datetime(2025, 1, 1, 9, 30),
            "app_name": "VSCode",
            "analysis_text": "Editing code",
            "sequence_number": 4,
        }
        assert "image_png" not in repr(event)

    @pytest.mark.parametrize(
        ("payload", "expected"),
        [
            ({"event_type": "status-change", "state": "paused"}, StatusChangeEvent),
            ({"event_type": "capture-start"}, CaptureStartEvent),
            (
                {"event_type": "capture-error", "error": "oops", "timestamp": "2025-01-01T12:00:00"},
                CaptureErrorEvent,
            ),
        ],
    )
    def test_discriminated_union(self, payload: dict, expected: type) -> None:
        event = TypeAdapter(SchedulerEvent).validate_python(payload)
        assert isinstance(event, expected)

    def test_status_serializes_state_value(self) -> None:
        event = StatusChangeEvent(state=LifecycleState.STOPPED)
        assert event.model_dump(mode="json") == {"event_type": "status-change", "state": "stopped"}
