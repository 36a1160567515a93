"""Tests for cancellation, waitlisting and promotion."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from reservation_engine.core.exceptions import InvalidStatusTransitionError
from reservation_engine.db.models import ReservationStatus
from reservation_engine.db.repositories import TableRepository


def utc(hour: int, minute: int = 0, day: int = 2) -> datetime:
    return datetime(2026, 6, day, hour, minute, tzinfo=timezone.utc)


class TestWaitlistEntry:
    """Tests for joining the waitlist."""

    @pytest.mark.asyncio
    async def test_waitlist_when_full(self, book, tables):
        """Test that a full slot yields a waitlist entry on a placeholder table."""
        await book(utc(12), party_size=2)
        await book(utc(12), party_size=2)
        await book(utc(12), party_size=2)

        waiting = await book(utc(12), party_size=2, allow_waitlist=True)

        assert waiting.status == ReservationStatus.WAITLIST
        assert waiting.table_id == tables[1].id

    @pytest.mark.asyncio
    async def test_allow_waitlist_books_when_free(self, book):
        """Test that a free slot is booked normally even with waitlist allowed."""
        reservation = await book(utc(12), party_size=2, allow_waitlist=True)

        assert reservation.status == ReservationStatus.CONFIRMED


class TestCancellation:
    """Tests for cancelling reservations."""

    @pytest.mark.asyncio
    async def test_cancel(self, service, book, clock):
        """Test the cancelled status and modification time."""
        reservation = await book(utc(12))
        clock.advance(minutes=5)

        cancelled = await service.cancel_reservation(reservation.id)

        assert cancelled.status == ReservationStatus.CANCELLED
        assert cancelled.last_modified == clock.now()

    @pytest.mark.asyncio
    async def test_cancel_twice(self, service, book):
        """Test that terminal reservations cannot be cancelled again."""
        reservation = await book(utc(12))
        await service.cancel_reservation(reservation.id)

        with pytest.raises(InvalidStatusTransitionError):
            await service.cancel_reservation(reservation.id)

    @pytest.mark.asyncio
    async def test_cancel_waitlist_entry_promotes_nothing(self, service, book):
        """Test that leaving the waitlist frees nothing."""
        await book(utc(19), party_size=5)
        first_waiting = await book(utc(19), party_size=5, allow_waitlist=True)
        second_waiting = await book(utc(19), party_size=5, allow_waitlist=True)

        await service.cancel_reservation(first_waiting.id)

        assert (await service.get_reservation(second_waiting.id)).status == ReservationStatus.WAITLIST

    @pytest.mark.asyncio
    async def test_cancel_locks_vacated_table(self, service, book, tables, monkeypatch):
        """Test that the freed table row is locked inside the cancel transaction."""
        reservation = await book(utc(19), party_size=5)
        lookups = []
        get_or_raise = TableRepository.get_or_raise

        async def recording_get_or_raise(repo, id, *, lock=False):
            lookups.append((id, lock))
            return await get_or_raise(repo, id, lock=lock)

        monkeypatch.setattr(TableRepository, "get_or_raise", recording_get_or_raise)
        await service.cancel_reservation(reservation.id)

        assert lookups == [(tables[3].id, True)]

    @pytest.mark.asyncio
    async def test_cancel_waitlist_entry_takes_no_table_lock(self, service, book, monkeypatch):
        """Test that leaving the waitlist does not touch the placeholder table."""
        await book(utc(19), party_size=5)
        waiting = await book(utc(19), party_size=5, allow_waitlist=True)
        lookups = []

        async def recording_get_or_raise(repo, id, *, lock=False):
            lookups.append((id, lock))

        monkeypatch.setattr(TableRepository, "get_or_raise", recording_get_or_raise)
        await service.cancel_reservation(waiting.id)

        assert lookups == []


class TestPromotion:
    """Tests for promotion after a cancellation."""

    @pytest.mark.asyncio
    async def test_promotes_waiting_party(self, service, book, tables):
        """Test that the freed table goes to the waitlist entry."""
        booked = await book(utc(19), party_size=5)
        waiting = await book(utc(19), party_size=5, allow_waitlist=True)

        await service.cancel_reservation(booked.id)

        promoted = await service.get_reservation(waiting.id)
        assert promoted.status == ReservationStatus.CONFIRMED
        assert promoted.table_id == tables[3].id

    @pytest.mark.asyncio
    async def test_first_come_first_served(self, service, book, clock):
        """Test that the earliest entry is promoted and only one."""
        booked = await book(utc(19), party_size=5)
        early = await book(utc(19), party_size=5, allow_waitlist=True)
        clock.advance(minutes=1)
        late = await book(utc(19), party_size=5, allow_waitlist=True)

        await service.cancel_reservation(booked.id)

        assert (await service.get_reservation(early.id)).status == ReservationStatus.CONFIRMED
        assert (await service.get_reservation(late.id)).status == ReservationStatus.WAITLIST

    @pytest.mark.asyncio
    async def test_skips_party_too_large_for_table(self, service, book, tables, clock):
        """Test that an earlier entry that does not fit is passed over."""
        couple = await book(utc(12), party_size=2)
        await book(utc(12), party_size=2)
        await book(utc(12), party_size=2)

        big = await book(utc(12), party_size=3, allow_waitlist=True)
        clock.advance(minutes=1)
        small = await book(utc(12), party_size=2, allow_waitlist=True)

        await service.cancel_reservation(couple.id)

        promoted = await service.get_reservation(small.id)
        assert promoted.status == ReservationStatus.CONFIRMED
        assert promoted.table_id == tables[1].id
        assert (await service.get_reservation(big.id)).status == ReservationStatus.WAITLIST

    @pytest.mark.asyncio
    async def test_skips_entry_whose_window_is_still_blocked(self, service, book, clock):
        """Test that an entry overlapping another booking on the table waits."""
        booked = await book(utc(19), party_size=5)
        await book(utc(20), party_size=5)

        # Overlaps both the cancelled booking and the 20:00 one
        blocked = await book(utc(19, 30), party_size=5, allow_waitlist=True)
        clock.advance(minutes=1)
        fitting = await book(utc(19), party_size=5, allow_waitlist=True)

        await service.cancel_reservation(booked.id)

        assert (await service.get_reservation(blocked.id)).status == ReservationStatus.WAITLIST
        assert (await service.get_reservation(fitting.id)).status == ReservationStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_non_overlapping_entry_not_promoted(self, service, book):
        """Test that waitlist entries for other times stay put."""
        booked = await book(utc(19), party_size=5)
        await book(utc(12), party_size=5)
        other_time = await book(utc(12), party_size=5, allow_waitlist=True)

        await service.cancel_reservation(booked.id)

        assert (await service.get_reservation(other_time.id)).status == ReservationStatus.WAITLIST


class TestNotificationsOnBooking:
    """Tests for customer notifications sent by the service."""

    @pytest.mark.asyncio
    async def test_confirmation_message(self, book, notifier, sender):
        """Test the confirmation text."""
        await book(utc(19), phone="+4917111111", name="Anna")
        await notifier.drain()

        [body] = sender.bodies_for("+4917111111")
        assert "CONFIRMED" in body
        assert "2026-06-02 19:00" in body
        assert "Trattoria Roma" in body

    @pytest.mark.asyncio
    async def test_waitlist_and_promotion_messages(self, service, book, notifier, sender):
        """Test the full waitlist message sequence."""
        booked = await book(utc(19), party_size=5, phone="+4917111111")
        await book(utc(19), party_size=5, phone="+4917122222", allow_waitlist=True)

        await service.cancel_reservation(booked.id)
        await notifier.drain()

        first = sender.bodies_for("+4917111111")
        second = sender.bodies_for("+4917122222")
        assert "CONFIRMED" in first[0]
        assert "CANCELLED" in first[1]
        assert "WAITLIST" in second[0]
        assert "upgraded" in second[1]

    @pytest.mark.asyncio
    async def test_failing_channel_never_fails_booking(self, book, notifier, sender):
        """Test that notification failures are contained."""
        sender.fail = True

        reservation = await book(utc(12))
        await notifier.drain()

        assert reservation.status == ReservationStatus.CONFIRMED
        assert notifier.failed == 1
        assert notifier.sent == 0
