"""Read models returned by the scheduler and the context store."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from ambientctx.domain.models import CaptureConfig, LifecycleState


class SchedulerStats(BaseModel):
    """Snapshot of the capture scheduler."""

    state: LifecycleState
    is_running: bool
    capture_count: int = Field(ge=0, description="Successful captures since creation")
    skipped_ticks: int = Field(
        default=0, ge=0, description="Ticks skipped because the previous one was still running"
    )
    config: CaptureConfig


class TimeRange(BaseModel):
    start: datetime | None = None
    end: datetime | None = None


class ActivitySummary(BaseModel):
    """Aggregate view of the retained observations."""

    total_captures: int = 0
    apps_used: list[str] = Field(default_factory=list)
    most_used_app: str | None = None
    time_range: TimeRange = Field(default_factory=TimeRange)


class CollectionStats(BaseModel):
    count: int
    limit: int


class StoreStats(BaseModel):
    """Sizes and limits of the context store plus its activity summary."""

    captures: CollectionStats
    chat: CollectionStats
    activity: ActivitySummary
