"""Shared test fixtures for the ambientctx test suite.

Provides common fixtures used across unit tests: sample screenshots,
observations, a context store on a fixed clock, and mock collaborators
for the capture scheduler.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import numpy as np
import pytest

from ambientctx.domain.models import CaptureConfig, ContextLimits, Observation
from ambientctx.utils.imaging import numpy_to_png_bytes
from ambientctx.watcher.events import EventBus
from ambientctx.watcher.loop import CaptureScheduler
from ambientctx.watcher.memory import ContextStore

NOW = datetime(2025, 1, 1, 12, 0, 0)


# ---------------------------------------------------------------------------
# Image Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_image() -> np.ndarray:
    """A minimal 40x60 black BGR image."""
    return np.zeros((40, 60, 3), dtype=np.uint8)


@pytest.fixture
def sample_png(sample_image: np.ndarray) -> bytes:
    """The sample image encoded as PNG bytes."""
    return numpy_to_png_bytes(sample_image)


# ---------------------------------------------------------------------------
# Context Store Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def now() -> datetime:
    """The frozen time used by the store fixtures."""
    return NOW


def make_observation(
    app_name: str = "VSCode",
    analysis_text: str = "The user is editing a Python file.",
    minutes_ago: float = 0.0,
    sequence_number: int = 0,
) -> Observation:
    return Observation(
        timestamp=NOW - timedelta(minutes=minutes_ago),
        app_name=app_name,
        analysis_text=analysis_text,
        sequence_number=sequence_number,
    )


@pytest.fixture
def observation_factory():
    """Build observations relative to the fixed test clock."""
    return make_observation


@pytest.fixture
def store() -> ContextStore:
    """A context store with default limits and a frozen clock."""
    return ContextStore(clock=lambda: NOW)


@pytest.fixture
def small_store() -> ContextStore:
    """A context store that keeps only 3 captures and 4 messages."""
    return ContextStore(ContextLimits(capture_limit=3, chat_limit=4), clock=lambda: NOW)


# ---------------------------------------------------------------------------
# Scheduler Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_screen(sample_png: bytes) -> AsyncMock:
    """A ScreenSource double returning the sample PNG."""
    mock = AsyncMock()
    mock.capture_screen.return_value = sample_png
    return mock


@pytest.fixture
def mock_windows() -> AsyncMock:
    """A WindowLookup double reporting VSCode as the foreground app."""
    mock = AsyncMock()
    mock.active_app_name.return_value = "VSCode"
    return mock


@pytest.fixture
def mock_provider() -> AsyncMock:
    """A VisionProvider double with canned answers."""
    mock = AsyncMock()
    mock.model = "mock-model"
    mock.analyze_image.return_value = "The user is editing a for loop."
    mock.complete.return_value = "You were editing a for loop in VSCode."
    return mock


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def received(event_bus: EventBus) -> list:
    """Every event emitted on ``event_bus``, in order."""
    events: list = []
    event_bus.subscribe(events.append)
    return events


@pytest.fixture
def scheduler(
    mock_screen: AsyncMock,
    mock_windows: AsyncMock,
    mock_provider: AsyncMock,
    event_bus: EventBus,
) -> CaptureScheduler:
    """A scheduler with a long interval so only explicit ticks run."""
    return CaptureScheduler(
        screen=mock_screen,
        windows=mock_windows,
        provider=mock_provider,
        config=CaptureConfig(interval_seconds=60),
        events=event_bus,
    )
