"""Capture scheduler: periodic screen sampling with a lifecycle state machine."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from ambientctx.capture.base import CaptureError, ScreenSource, WindowLookup
from ambientctx.domain.models import (
    CaptureConfig,
    CaptureConfigUpdate,
    LifecycleState,
    Observation,
    is_valid_interval,
)
from ambientctx.interpreter.base import MLLMError, VisionProvider, sanitize_model_text
from ambientctx.utils.imaging import ImagePayloadError, encode_image_base64
from ambientctx.watcher.events import (
    CaptureCompleteEvent,
    CaptureErrorEvent,
    CaptureStartEvent,
    EventBus,
    StatusChangeEvent,
)
from ambientctx.watcher.models import SchedulerStats

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = "Describe what the user is doing on this screen in one sentence."
UNKNOWN_APP = "Unknown"


@dataclass
class SchedulerState:
    """Mutable bookkeeping shared between the scheduler and its ticks."""

    timer_task: asyncio.Task | None = None
    tick_task: asyncio.Task | None = None
    capture_count: int = 0
    skipped_ticks: int = 0

    @property
    def timer_running(self) -> bool:
        return self.timer_task is not None

    @property
    def tick_in_flight(self) -> bool:
        return self.tick_task is not None and not self.tick_task.done()


class CaptureScheduler:
    """Samples the active screen on a timer and reports what it saw.

    Each tick resolves the foreground app, grabs the screen, asks the
    vision provider for a one-sentence description and emits the result
    on the event bus. Ticks never raise: every failure becomes a
    ``capture-error`` event and the timer keeps going.

    At most one tick runs at a time. When the timer fires while the
    previous tick is still waiting on the provider, the new tick is
    skipped and counted in ``skipped_ticks``.

    Example usage::

        scheduler = CaptureScheduler(screen, windows, provider)
        scheduler.events.subscribe(print)
        scheduler.start()
        ...
        await scheduler.aclose()
    """

    def __init__(
        self,
        screen: ScreenSource,
        windows: WindowLookup,
        provider: VisionProvider,
        config: CaptureConfig | None = None,
        events: EventBus | None = None,
    ) -> None:
        self._screen = screen
        self._windows = windows
        self._provider = provider
        self._config = config.model_copy(deep=True) if config else CaptureConfig()
        self._events = events or EventBus()
        self._state = SchedulerState()
        logger.info(
            "Capture scheduler initialized (interval=%ss, enabled=%s)",
            self._config.interval_seconds, self._config.enabled,
        )

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def config(self) -> CaptureConfig:
        """A copy of the active configuration."""
        return self._config.model_copy(deep=True)

    @property
    def state(self) -> LifecycleState:
        return LifecycleState.derive(self._state.timer_running, self._config.enabled)

    @property
    def is_running(self) -> bool:
        return self._state.timer_running

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the timer. Must be called from a running event loop."""
        if self._state.timer_running:
            logger.warning("Capture scheduler is already running")
            return

        interval = self._config.interval_seconds
        loop = asyncio.get_running_loop()
        self._state.timer_task = loop.create_task(self._run_timer(interval))
        logger.info("Starting captures every %ss", interval)
        self._emit_status()

        if self._config.enabled:
            self._launch_tick()

    def stop(self) -> None:
        """Cancel the timer. A tick already in flight is left to finish."""
        if not self._state.timer_running:
            logger.warning("Capture scheduler is not running, nothing to stop")
            return

        logger.info("Stopping captures")
        self._state.timer_task.cancel()
        self._state.timer_task = None
        self._emit_status()

    def pause(self) -> None:
        """Disable sampling while keeping the timer alive."""
        if not self._state.timer_running:
            logger.warning("Capture scheduler is not running, nothing to pause")
            return
        if not self._config.enabled:
            logger.warning("Captures are already paused")
            return

        logger.info("Pausing captures")
        self._config.enabled = False
        self._emit_status()

    def resume(self) -> None:
        """Re-enable sampling and take one capture immediately."""
        if not self._state.timer_running:
            logger.warning("Capture scheduler is not running, nothing to resume")
            return
        if self._config.enabled:
            logger.warning("Captures are already active")
            return

        logger.info("Resuming captures")
        self._config.enabled = True
        self._emit_status()
        self._launch_tick()

    def update_config(self, update: CaptureConfigUpdate | Mapping[str, Any]) -> CaptureConfig:
        """Merge a partial configuration into the active one.

        An out-of-range interval is rejected and the previous one kept.
        Changing the interval of a running scheduler restarts its timer.

        Returns:
            A copy of the resulting configuration.
        """
        if not isinstance(update, CaptureConfigUpdate):
            try:
                update = CaptureConfigUpdate.model_validate(dict(update))
            except (TypeError, ValueError, ValidationError) as e:
                logger.warning("Rejected capture config update %r: %s", update, e)
                return self.config

        logger.info("Updating capture config: %s", update.model_dump(exclude_none=True))
        was_running = self._state.timer_running
        interval_changed = False

        if update.interval_seconds is not None:
            if is_valid_interval(update.interval_seconds):
                interval_changed = update.interval_seconds != self._config.interval_seconds
                self._config.interval_seconds = update.interval_seconds
            else:
                logger.warning(
                    "Capture interval %ss out of range (1-60), keeping %ss",
                    update.interval_seconds, self._config.interval_seconds,
                )

        if update.excluded_apps is not None:
            self._config.excluded_apps = set(update.excluded_apps)

        if update.enabled is not None and update.enabled != self._config.enabled:
            self._config.enabled = update.enabled
            if was_running:
                self._emit_status()

        if interval_changed and was_running:
            logger.info("Restarting with new interval: %ss", self._config.interval_seconds)
            self.stop()
            self.start()

        return self.config

    def get_stats(self) -> SchedulerStats:
        return SchedulerStats(
            state=self.state,
            is_running=self._state.timer_running,
            capture_count=self._state.capture_count,
            skipped_ticks=self._state.skipped_ticks,
            config=self.config,
        )

    async def wait_idle(self) -> None:
        """Wait for the tick in flight, if any, to finish."""
        task = self._state.tick_task
        if task is not None and not task.done():
            await asyncio.gather(task, return_exceptions=True)

    async def aclose(self) -> None:
        """Stop the timer and let the last tick finish."""
        timer = self._state.timer_task
        if timer is not None:
            self.stop()
            await asyncio.gather(timer, return_exceptions=True)
        await self.wait_idle()

    # ------------------------------------------------------------------
    # Timer and ticks
    # ------------------------------------------------------------------

    async def _run_timer(self, interval: int) -> None:
        while True:
            await asyncio.sleep(interval)
            if self._config.enabled:
                self._launch_tick()

    def _launch_tick(self) -> None:
        if self._state.tick_in_flight:
            self._state.skipped_ticks += 1
            logger.info(
                "Previous capture still in progress, skipping tick (%d skipped so far)",
                self._state.skipped_ticks,
            )
            return
        # Ticks work on a snapshot so config updates never reach a running tick
        config = self._config.model_copy(deep=True)
        loop = asyncio.get_running_loop()
        self._state.tick_task = loop.create_task(self._tick(self._state, config))

    async def _tick(self, state: SchedulerState, config: CaptureConfig) -> Observation | None:
        timestamp = datetime.now()
        try:
            return await self._sample(state, config, timestamp)
        except Exception as e:
            logger.exception("Unexpected error during capture")
            self._emit_error(f"Unexpected capture error: {e}", timestamp)
            return None

    async def _sample(
        self,
        state: SchedulerState,
        config: CaptureConfig,
        timestamp: datetime,
    ) -> Observation | None:
        """Run one pass of the sampling pipeline."""
        try:
            app_name = await self._windows.active_app_name()
        except Exception as e:
            logger.warning("Could not resolve active window: %s", e)
            app_name = ""
        app_name = app_name or UNKNOWN_APP
        logger.debug("Active window: %s", app_name)

        if app_name in config.excluded_apps:
            logger.info("App '%s' is excluded, skipping capture", app_name)
            return None

        self._events.emit(CaptureStartEvent())

        try:
            payload = await self._screen.capture_screen()
            if not payload:
                raise CaptureError("Screenshot payload is empty")
            if isinstance(payload, str):
                payload = payload.encode("latin-1")
            png = bytes(payload)
            image_b64 = encode_image_base64(png)
        except (CaptureError, ImagePayloadError) as e:
            return self._emit_error(f"Screen capture failed: {e}", timestamp)
        logger.debug("Screenshot captured: %d bytes", len(png))

        try:
            raw_text = await self._provider.analyze_image(image_b64, ANALYSIS_PROMPT)
        except MLLMError as e:
            return self._emit_error(f"Analysis failed: {e}", timestamp)

        analysis_text = sanitize_model_text(raw_text)
        if not analysis_text:
            return self._emit_error("Analysis returned no text", timestamp)

        state.capture_count += 1
        observation = Observation(
            timestamp=timestamp,
            app_name=app_name,
            analysis_text=analysis_text,
            image_png=png,
            sequence_number=state.capture_count,
        )
        self._events.emit(CaptureCompleteEvent.from_observation(observation))
        logger.info("Capture #%d completed (%s)", state.capture_count, app_name)
        return observation

    def _emit_status(self) -> None:
        self._events.emit(StatusChangeEvent(state=self.state))

    def _emit_error(self, message: str, timestamp: datetime) -> None:
        logger.error("Capture failed: %s", message)
        self._events.emit(CaptureErrorEvent(error=message, timestamp=timestamp))
