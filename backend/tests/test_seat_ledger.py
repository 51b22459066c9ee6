"""
Tests for the seat ledger: snapshot resolution and conditional writes.
"""

from datetime import timedelta

import pytest

from ticketing.core.exceptions import InputValidationError, TripNotFoundError
from ticketing.models.booking import Booking
from ticketing.models.seat_slot import SeatSlot
from ticketing.services import seat_ledger
from ticketing.services.seat_ledger import ImplicitlyAvailable


@pytest.mark.asyncio
async def test_fresh_trip_is_all_available(db_session, test_trip):
    snapshot = await seat_ledger.get_seat_status(db_session, test_trip.id)

    assert sorted(snapshot) == [1, 2, 3, 4]
    assert all(isinstance(view, ImplicitlyAvailable) for view in snapshot.values())
    assert all(view.stale_slot is None for view in snapshot.values())


@pytest.mark.asyncio
async def test_snapshot_unknown_trip(db_session):
    with pytest.raises(TripNotFoundError):
        await seat_ledger.get_seat_status(db_session, 99999)


@pytest.mark.asyncio
async def test_insert_if_absent(db_session, test_trip):
    """Without an expected version, only the first write for a seat lands."""
    first = await seat_ledger.upsert_slot(db_session, test_trip.id, 1, "reserved", "agent-1")
    await db_session.commit()
    assert first is not None
    assert first.version == 1

    second = await seat_ledger.upsert_slot(db_session, test_trip.id, 1, "reserved", "agent-2")
    await db_session.commit()
    assert second is None

    stored = await seat_ledger.get_slot(db_session, test_trip.id, 1)
    assert stored.holder_id == "agent-1"


@pytest.mark.asyncio
async def test_overwrite_guarded_by_version(db_session, test_trip):
    slot = await seat_ledger.upsert_slot(db_session, test_trip.id, 2, "reserved", "agent-1")
    await db_session.commit()

    stale = await seat_ledger.upsert_slot(
        db_session, test_trip.id, 2, "disabled", "admin-1", expected_version=slot.version + 5
    )
    assert stale is None

    written = await seat_ledger.upsert_slot(
        db_session, test_trip.id, 2, "disabled", "admin-1", expected_version=slot.version
    )
    await db_session.commit()
    assert written.status == "disabled"
    assert written.version == 2


@pytest.mark.asyncio
async def test_delete_requires_expected_status(db_session, test_trip):
    await seat_ledger.upsert_slot(db_session, test_trip.id, 3, "disabled", "admin-1")
    await db_session.commit()

    assert await seat_ledger.delete_slot(db_session, test_trip.id, 3, "reserved") == 0
    assert await seat_ledger.delete_slot(db_session, test_trip.id, 3, "disabled", expected_version=9) == 0
    assert await seat_ledger.delete_slot(db_session, test_trip.id, 3, "disabled", expected_version=1) == 1
    await db_session.commit()

    assert await seat_ledger.get_slot(db_session, test_trip.id, 3) is None


@pytest.mark.asyncio
async def test_expired_reservation_reads_as_available(db_session, test_trip):
    now = seat_ledger.utcnow()
    await seat_ledger.upsert_slot(
        db_session, test_trip.id, 1, "reserved", "agent-1", expires_at=now + timedelta(minutes=5)
    )
    await db_session.commit()

    before = await seat_ledger.get_seat(db_session, test_trip.id, 1, now=now)
    assert isinstance(before, SeatSlot)
    assert before.status == "reserved"

    after = await seat_ledger.get_seat(db_session, test_trip.id, 1, now=now + timedelta(minutes=6))
    assert isinstance(after, ImplicitlyAvailable)
    assert after.stale_slot is not None
    assert after.stale_slot.holder_id == "agent-1"

    # Lazy expiry leaves the row in place
    assert await seat_ledger.get_slot(db_session, test_trip.id, 1) is not None


@pytest.mark.asyncio
async def test_reservation_without_expiry_never_lapses(db_session, test_trip):
    await seat_ledger.upsert_slot(db_session, test_trip.id, 1, "reserved", "agent-1")
    await db_session.commit()

    far_future = seat_ledger.utcnow() + timedelta(days=365)
    view = await seat_ledger.get_seat(db_session, test_trip.id, 1, now=far_future)
    assert view.status == "reserved"


@pytest.mark.asyncio
async def test_sweep_expired(db_session, test_trip):
    now = seat_ledger.utcnow()
    await seat_ledger.upsert_slot(
        db_session, test_trip.id, 1, "reserved", "agent-1", expires_at=now + timedelta(minutes=1)
    )
    await seat_ledger.upsert_slot(db_session, test_trip.id, 2, "reserved", "agent-1")
    await db_session.commit()

    freed = await seat_ledger.sweep_expired(db_session, now=now + timedelta(minutes=2))
    await db_session.commit()

    assert freed == [(test_trip.id, 1)]
    assert await seat_ledger.get_slot(db_session, test_trip.id, 1) is None
    assert await seat_ledger.get_slot(db_session, test_trip.id, 2) is not None


def test_active_booking_wins_over_slot():
    now = seat_ledger.utcnow()
    booking = Booking(id=7, trip_id=1, seat_number=2, status="booked", created_by="agent-1")

    view = seat_ledger.resolve_seat(2, None, booking, now)

    assert isinstance(view, SeatSlot)
    assert view.status == "booked"
    assert view.booking_id == 7


def test_orphaned_booked_slot_is_available():
    now = seat_ledger.utcnow()
    orphan = SeatSlot(trip_id=1, seat_number=2, status="booked", booking_id=7, version=3)

    view = seat_ledger.resolve_seat(2, orphan, None, now)

    assert isinstance(view, ImplicitlyAvailable)
    assert view.stale_slot is orphan


def test_disabled_slot_is_not_available():
    now = seat_ledger.utcnow()
    slot = SeatSlot(trip_id=1, seat_number=2, status="disabled", version=1)

    assert not seat_ledger.is_available(seat_ledger.resolve_seat(2, slot, None, now))


@pytest.mark.parametrize("seat_number", [0, -1, 5, 100])
def test_seat_number_outside_capacity(seat_number):
    with pytest.raises(InputValidationError):
        seat_ledger.validate_seat_number(seat_number, 4)
