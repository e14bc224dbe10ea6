"""
Fixed-interval sweep scheduler with an injectable clock.

The clock owns both "what time is it" and "wait this long", so tests can drive
the loop without real sleeps.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Protocol

import structlog

from bedwatch.domain.models import SweepReport
from bedwatch.services.posture_evaluation import PostureEvaluationService

logger = structlog.get_logger(__name__)


class Clock(Protocol):
    def now(self) -> datetime: ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Wall clock backed by asyncio.sleep."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class SweepScheduler:
    """
    Runs ``PostureEvaluationService.run_sweep`` on a fixed cadence.

    This is the only autonomous execution path; on-demand evaluations go through
    the service directly.
    """

    def __init__(
        self,
        service: PostureEvaluationService,
        interval_seconds: float | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.service = service
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else service.config.scheduler.sweep_interval_seconds
        )
        if self.interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.clock = clock or SystemClock()
        self.logger = logger.bind(component="sweep_scheduler")
        self._is_running = False

    @property
    def is_running(self) -> bool:
        return self._is_running

    @asynccontextmanager
    async def session(self) -> AsyncIterator["SweepScheduler"]:
        """Mark the scheduler running for the duration of the block."""
        self.logger.info("sweep_scheduler_started", interval_seconds=self.interval_seconds)
        self._is_running = True
        try:
            yield self
        finally:
            self._is_running = False
            self.logger.info("sweep_scheduler_stopped")

    def stop(self) -> None:
        """Finish the current iteration and leave ``run_forever``."""
        self._is_running = False

    async def run_once(self) -> SweepReport:
        return await self.service.run_sweep()

    async def run_forever(self) -> AsyncIterator[SweepReport]:
        """
        Yield one report per sweep until stopped.

        A sweep that fails outright (for example the roster cannot be read) is
        logged and the loop waits for the next tick.
        """
        if not self._is_running:
            raise RuntimeError("Scheduler not running - use session()")

        while self._is_running:
            tick_started = self.clock.now()

            try:
                report = await self.run_once()
            except Exception as e:
                self.logger.exception("sweep_failed", error=str(e))
            else:
                yield report

            if not self._is_running:
                break

            elapsed = (self.clock.now() - tick_started).total_seconds()
            sleep_time = max(0.0, self.interval_seconds - elapsed)
            if sleep_time > 0:
                await self.clock.sleep(sleep_time)
            else:
                self.logger.warning(
                    "sweep_slower_than_interval",
                    elapsed_seconds=round(elapsed, 3),
                    interval_seconds=self.interval_seconds,
                )
