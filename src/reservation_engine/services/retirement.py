"""Reservation Retirement Scheduler.

Background job that marks reservations whose window has elapsed as
completed. Runs as an asyncio task on a fixed interval.

Features:
- Configurable interval and eligible statuses
- Non-reentrant ticks (overlapping ticks are skipped and counted)
- Bounded batch timeout
- Graceful shutdown
- Metrics collection
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from reservation_engine.core.clock import Clock, SystemClock
from reservation_engine.core.log import get_logger
from reservation_engine.db.models.reservation import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    ReservationStatus,
)
from reservation_engine.db.repositories.reservations import ReservationRepository
from reservation_engine.db.session import Database

log = get_logger(__name__)


class SchedulerState(str, Enum):
    """Scheduler states."""

    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass
class RetirementMetrics:
    """Retirement scheduler metrics."""

    started_at: datetime | None = None
    ticks: int = 0
    skipped_ticks: int = 0
    completed_total: int = 0
    errors: int = 0
    last_run_at: datetime | None = None
    last_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ticks": self.ticks,
            "skipped_ticks": self.skipped_ticks,
            "completed_total": self.completed_total,
            "errors": self.errors,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_error": self.last_error,
        }


def parse_eligible_statuses(statuses: Iterable[str | ReservationStatus]) -> frozenset[ReservationStatus]:
    """Validate the statuses a sweep may move to completed.

    Raises:
        ValueError: Unknown status, or a terminal status
    """
    parsed = frozenset(ReservationStatus(s) for s in statuses)
    terminal = parsed & TERMINAL_STATUSES
    if terminal:
        raise ValueError(
            "Terminal statuses cannot be retired: "
            + ", ".join(sorted(s.value for s in terminal))
        )
    return parsed


class RetirementScheduler:
    """Periodically completes reservations whose end time has passed.

    Usage:
        scheduler = RetirementScheduler(database, interval_minutes=15)

        # In application lifespan
        await scheduler.start()

        # When shutting down
        await scheduler.stop()
    """

    def __init__(
        self,
        database: Database,
        clock: Clock | None = None,
        *,
        interval_minutes: float = 15,
        eligible_statuses: Iterable[str | ReservationStatus] = ACTIVE_STATUSES,
        batch_timeout_seconds: float = 30.0,
    ) -> None:
        """Initialize scheduler.

        Args:
            database: Database to sweep
            clock: Time source
            interval_minutes: Delay between ticks
            eligible_statuses: Statuses moved to completed once elapsed
            batch_timeout_seconds: Upper bound for one batch UPDATE
        """
        self._database = database
        self._clock = clock or SystemClock()
        self.interval_seconds = interval_minutes * 60
        self.eligible_statuses = parse_eligible_statuses(eligible_statuses)
        self.batch_timeout_seconds = batch_timeout_seconds

        self._state = SchedulerState.STOPPED
        self._task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()
        self._batch_lock = asyncio.Lock()
        self._metrics = RetirementMetrics()

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def metrics(self) -> RetirementMetrics:
        return self._metrics

    @property
    def is_running(self) -> bool:
        return self._state == SchedulerState.RUNNING

    async def start(self) -> None:
        """Start the scheduler background task."""
        if self._state != SchedulerState.STOPPED:
            log.warning("Retirement scheduler already active", state=self._state.value)
            return

        self._stop_event.clear()
        self._metrics.started_at = self._clock.now()
        self._task = asyncio.create_task(self._run_loop())
        self._state = SchedulerState.RUNNING

        log.info(
            "Retirement scheduler started",
            interval_seconds=self.interval_seconds,
            statuses=sorted(s.value for s in self.eligible_statuses),
        )

    async def stop(self, timeout: float = 30.0) -> None:
        """Stop the scheduler, letting a running batch finish.

        Args:
            timeout: Maximum time to wait for the current batch
        """
        if self._state == SchedulerState.STOPPED:
            return

        self._state = SchedulerState.STOPPING
        self._stop_event.set()

        if self._task:
            try:
                await asyncio.wait_for(self._task, timeout=timeout)
            except asyncio.TimeoutError:
                log.warning("Retirement scheduler stop timed out, cancelling task")
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
            self._task = None

        self._state = SchedulerState.STOPPED
        log.info("Retirement scheduler stopped")

    async def run_once(self) -> int | None:
        """Run one tick now.

        Returns:
            Number of reservations completed, or None when the tick was
            skipped or failed
        """
        if self._batch_lock.locked():
            self._metrics.skipped_ticks += 1
            log.warning("Retirement tick skipped, previous batch still running")
            return None

        async with self._batch_lock:
            self._metrics.ticks += 1
            try:
                completed = await asyncio.wait_for(
                    self._complete_elapsed(),
                    timeout=self.batch_timeout_seconds,
                )
            except asyncio.TimeoutError:
                self._metrics.errors += 1
                self._metrics.last_error = (
                    f"Batch exceeded {self.batch_timeout_seconds}s timeout"
                )
                log.error("Retirement batch timed out", timeout=self.batch_timeout_seconds)
                return None
            except Exception as e:
                self._metrics.errors += 1
                self._metrics.last_error = str(e)
                log.error("Retirement batch failed", error=str(e))
                return None

        self._metrics.completed_total += completed
        self._metrics.last_run_at = self._clock.now()
        if completed:
            log.info("Elapsed reservations completed", count=completed)
        return completed

    async def _complete_elapsed(self) -> int:
        async with self._database.session() as session:
            repo = ReservationRepository(session)
            return await repo.complete_elapsed(self._clock.now(), self.eligible_statuses)

    async def _run_loop(self) -> None:
        """Main scheduler loop."""
        while not self._stop_event.is_set():
            await self.run_once()

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self.interval_seconds,
                )
            except asyncio.TimeoutError:
                pass  # Normal timeout, continue loop
