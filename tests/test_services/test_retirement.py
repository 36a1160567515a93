"""Tests for the elapsed-reservation retirement scheduler."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from reservation_engine.core.exceptions import InvalidStatusTransitionError
from reservation_engine.db.models import ReservationStatus
from reservation_engine.services.retirement import (
    RetirementScheduler,
    SchedulerState,
    parse_eligible_statuses,
)


def utc(hour: int, minute: int = 0, day: int = 2) -> datetime:
    return datetime(2026, 6, day, hour, minute, tzinfo=timezone.utc)


class SlowRetirementScheduler(RetirementScheduler):
    """Scheduler whose batch never finishes in time."""

    async def _complete_elapsed(self) -> int:
        await asyncio.sleep(1)
        return 0


class FailingRetirementScheduler(RetirementScheduler):
    """Scheduler whose batch always raises."""

    async def _complete_elapsed(self) -> int:
        raise RuntimeError("database gone")


@pytest.fixture
def scheduler(database, clock):
    return RetirementScheduler(database, clock, interval_minutes=15)


# ============================================================================
# Status Configuration
# ============================================================================

class TestEligibleStatuses:
    """Tests for parse_eligible_statuses."""

    def test_defaults(self):
        """Test the active statuses."""
        parsed = parse_eligible_statuses(["pending", "confirmed", "seated"])

        assert parsed == {
            ReservationStatus.PENDING,
            ReservationStatus.CONFIRMED,
            ReservationStatus.SEATED,
        }

    def test_terminal_status_rejected(self):
        """Test that completed and cancelled cannot be retired again."""
        with pytest.raises(ValueError, match="completed"):
            parse_eligible_statuses(["confirmed", "completed"])
        with pytest.raises(ValueError, match="cancelled"):
            parse_eligible_statuses(["cancelled"])

    def test_unknown_status_rejected(self):
        """Test an unknown status name."""
        with pytest.raises(ValueError):
            parse_eligible_statuses(["eaten"])

    def test_scheduler_validates_statuses(self, database):
        """Test that the scheduler refuses terminal statuses."""
        with pytest.raises(ValueError):
            RetirementScheduler(database, eligible_statuses=["cancelled"])


# ============================================================================
# Batches
# ============================================================================

class TestRunOnce:
    """Tests for a single retirement tick."""

    @pytest.mark.asyncio
    async def test_completes_elapsed_reservations(self, scheduler, service, book, clock):
        """Test that only elapsed active reservations are completed."""
        lunch = await book(utc(12))
        dinner = await book(utc(19))
        await book(utc(12), party_size=2)
        await book(utc(12), party_size=2)
        waiting = await book(utc(12), party_size=2, allow_waitlist=True)
        cancelled = await book(utc(15))
        await service.cancel_reservation(cancelled.id)

        clock.set(utc(14))
        completed = await scheduler.run_once()

        assert completed == 3
        assert (await service.get_reservation(lunch.id)).status == ReservationStatus.COMPLETED
        assert (await service.get_reservation(dinner.id)).status == ReservationStatus.CONFIRMED
        assert (await service.get_reservation(waiting.id)).status == ReservationStatus.WAITLIST
        assert (await service.get_reservation(cancelled.id)).status == ReservationStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_end_time_must_be_in_the_past(self, scheduler, service, book, clock):
        """Test that a reservation ending exactly now is not completed yet."""
        reservation = await book(utc(12))

        clock.set(utc(13))
        assert await scheduler.run_once() == 0

        clock.set(utc(13, 1))
        assert await scheduler.run_once() == 1
        assert (await service.get_reservation(reservation.id)).status == ReservationStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_rerun_is_noop(self, scheduler, book, clock):
        """Test that completed reservations are not processed again."""
        await book(utc(12))
        clock.set(utc(14))

        assert await scheduler.run_once() == 1
        assert await scheduler.run_once() == 0
        assert scheduler.metrics.completed_total == 1
        assert scheduler.metrics.ticks == 2
        assert scheduler.metrics.last_run_at == utc(14)

    @pytest.mark.asyncio
    async def test_restricted_statuses(self, database, service, book, clock):
        """Test that only configured statuses are retired."""
        seated = await book(utc(12))
        confirmed = await book(utc(12))
        await service.update_reservation(seated.id, status=ReservationStatus.SEATED)
        scheduler = RetirementScheduler(database, clock, eligible_statuses=["seated"])

        clock.set(utc(14))

        assert await scheduler.run_once() == 1
        assert (await service.get_reservation(confirmed.id)).status == ReservationStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_overlapping_tick_skipped(self, scheduler):
        """Test that a tick is skipped while a batch is running."""
        async with scheduler._batch_lock:
            assert await scheduler.run_once() is None

        assert scheduler.metrics.skipped_ticks == 1
        assert scheduler.metrics.ticks == 0

    @pytest.mark.asyncio
    async def test_batch_timeout(self, database, clock):
        """Test that a slow batch is abandoned and counted."""
        scheduler = SlowRetirementScheduler(database, clock, batch_timeout_seconds=0.01)

        assert await scheduler.run_once() is None
        assert scheduler.metrics.errors == 1
        assert "timeout" in scheduler.metrics.last_error

    @pytest.mark.asyncio
    async def test_batch_failure_counted(self, database, clock):
        """Test that a failing batch is logged and counted, not raised."""
        scheduler = FailingRetirementScheduler(database, clock)

        assert await scheduler.run_once() is None
        assert scheduler.metrics.errors == 1
        assert scheduler.metrics.last_error == "database gone"

    @pytest.mark.asyncio
    async def test_completed_reservation_is_frozen(self, scheduler, service, book, clock):
        """Test that a retired reservation can no longer be edited or cancelled."""
        reservation = await book(utc(12))
        clock.set(utc(14))
        await scheduler.run_once()

        with pytest.raises(InvalidStatusTransitionError):
            await service.update_reservation(reservation.id, party_size=3)
        with pytest.raises(InvalidStatusTransitionError):
            await service.cancel_reservation(reservation.id)


# ============================================================================
# Lifecycle
# ============================================================================

class TestSchedulerLifecycle:
    """Tests for start and stop."""

    @pytest.mark.asyncio
    async def test_start_runs_ticks_until_stopped(self, database, clock):
        """Test the background loop."""
        scheduler = RetirementScheduler(database, clock, interval_minutes=0.001)

        await scheduler.start()
        assert scheduler.is_running
        assert scheduler.metrics.started_at == clock.now()

        for _ in range(100):
            if scheduler.metrics.ticks >= 2:
                break
            await asyncio.sleep(0.02)

        await scheduler.stop()

        assert scheduler.metrics.ticks >= 2
        assert scheduler.state == SchedulerState.STOPPED

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, scheduler):
        """Test that a second start keeps the running task."""
        await scheduler.start()
        task = scheduler._task

        await scheduler.start()

        assert scheduler._task is task
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_stop_when_stopped(self, scheduler):
        """Test stopping a scheduler that never started."""
        await scheduler.stop()

        assert scheduler.state == SchedulerState.STOPPED

    def test_metrics_to_dict(self, scheduler):
        """Test the metrics payload."""
        data = scheduler.metrics.to_dict()

        assert data["ticks"] == 0
        assert data["started_at"] is None
        assert set(data) >= {"skipped_ticks", "completed_total", "errors", "last_error"}
