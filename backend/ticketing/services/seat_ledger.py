"""
Seat ledger: durable per-trip seat state.

A seat is available unless it has a `seat_slots` row, so a snapshot is built
from the rows that exist plus the trip's capacity. Reads hand back either the
stored SeatSlot or an ImplicitlyAvailable marker, never a bare status string,
so callers can't confuse "no row" with "row says available".

Effective status of a seat, in order:
  1. an active booking exists            -> booked (booking table wins)
  2. no row                              -> available
  3. reserved and expires_at has passed  -> available (lazy expiry, row kept)
  4. booked but the booking isn't active -> available (orphaned slot)
  5. otherwise                           -> the stored row

CONCURRENCY
===========

Writes never read-modify-write in Python. `upsert_slot` is a single
INSERT ... ON CONFLICT (trip_id, seat_number) DO UPDATE ... WHERE version = :v
statement, so of N callers that observed the same version exactly one
succeeds; the rest get None back. `delete_slot` is a DELETE filtered on the
expected status (and optionally version / booking), reporting rows affected.
Both work across processes because the database does the comparison.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.exceptions import InputValidationError
from ticketing.models.booking import ACTIVE_BOOKING_STATUSES, Booking
from ticketing.models.seat_slot import SeatSlot
from ticketing.services.trip_service import get_trip_capacity

_CONFLICT_TARGET = ["trip_id", "seat_number"]


@dataclass(frozen=True)
class ImplicitlyAvailable:
    """A seat with no effective ledger entry.

    `stale_slot` is the expired reservation or orphaned booked row still stored
    for the seat, if any. Writers must use its version as their guard.
    """

    seat_number: int
    stale_slot: Optional[SeatSlot] = None
    status: str = "available"


SeatView = Union[SeatSlot, ImplicitlyAvailable]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands timestamps back naive; everything is stored in UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def is_expired(slot: SeatSlot, now: datetime) -> bool:
    return (
        slot.status == "reserved"
        and slot.expires_at is not None
        and as_utc(slot.expires_at) <= now
    )


def is_available(view: SeatView) -> bool:
    return isinstance(view, ImplicitlyAvailable)


def validate_seat_number(seat_number: int, capacity: int) -> None:
    if not 1 <= seat_number <= capacity:
        raise InputValidationError(f"Seat number must be between 1 and {capacity}")


def resolve_seat(
    seat_number: int,
    slot: Optional[SeatSlot],
    active_booking: Optional[Booking],
    now: datetime,
) -> SeatView:
    if active_booking is not None:
        if slot is not None and slot.status == "booked" and slot.booking_id == active_booking.id:
            return slot
        # Transient, never added to the session
        return SeatSlot(
            trip_id=active_booking.trip_id,
            seat_number=seat_number,
            status="booked",
            holder_id=active_booking.created_by,
            booking_id=active_booking.id,
            version=slot.version if slot is not None else 0,
        )

    if slot is None:
        return ImplicitlyAvailable(seat_number)
    if is_expired(slot, now) or slot.status == "booked":
        return ImplicitlyAvailable(seat_number, stale_slot=slot)
    return slot


async def get_slot(db: AsyncSession, trip_id: int, seat_number: int) -> Optional[SeatSlot]:
    """Stored row for a seat, freshly read (bypasses the identity map)."""
    result = await db.execute(
        select(SeatSlot)
        .where(SeatSlot.trip_id == trip_id, SeatSlot.seat_number == seat_number)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def find_active_booking(db: AsyncSession, trip_id: int, seat_number: int) -> Optional[Booking]:
    result = await db.execute(
        select(Booking)
        .where(
            Booking.trip_id == trip_id,
            Booking.seat_number == seat_number,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_seat(
    db: AsyncSession,
    trip_id: int,
    seat_number: int,
    now: Optional[datetime] = None,
) -> SeatView:
    slot = await get_slot(db, trip_id, seat_number)
    booking = await find_active_booking(db, trip_id, seat_number)
    return resolve_seat(seat_number, slot, booking, now or utcnow())


async def get_seat_status(
    db: AsyncSession,
    trip_id: int,
    now: Optional[datetime] = None,
) -> dict[int, SeatView]:
    """Snapshot of every seat 1..capacity for a trip."""
    capacity = await get_trip_capacity(db, trip_id)
    now = now or utcnow()

    slot_rows = await db.execute(
        select(SeatSlot)
        .where(SeatSlot.trip_id == trip_id)
        .execution_options(populate_existing=True)
    )
    slots = {slot.seat_number: slot for slot in slot_rows.scalars().all()}

    booking_rows = await db.execute(
        select(Booking).where(
            Booking.trip_id == trip_id,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        )
    )
    bookings = {booking.seat_number: booking for booking in booking_rows.scalars().all()}

    return {
        seat_number: resolve_seat(seat_number, slots.get(seat_number), bookings.get(seat_number), now)
        for seat_number in range(1, capacity + 1)
    }


def _insert_for(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"Seat ledger upserts are not supported on {dialect}")


async def upsert_slot(
    db: AsyncSession,
    trip_id: int,
    seat_number: int,
    status: str,
    holder_id: str,
    *,
    expires_at: Optional[datetime] = None,
    booking_id: Optional[int] = None,
    expected_version: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Optional[SeatSlot]:
    """
    Write a seat's ledger row in one statement.

    expected_version=None: insert only if the seat has no row.
    expected_version=v:    overwrite only if the stored row is still at version v.

    Returns the written row, or None if the guard rejected the write.
    """
    now = now or utcnow()
    insert = _insert_for(db)
    stmt = insert(SeatSlot).values(
        trip_id=trip_id,
        seat_number=seat_number,
        status=status,
        holder_id=holder_id,
        reserved_at=now,
        expires_at=expires_at,
        booking_id=booking_id,
        version=1,
    )

    if expected_version is None:
        stmt = stmt.on_conflict_do_nothing(index_elements=_CONFLICT_TARGET)
    else:
        stmt = stmt.on_conflict_do_update(
            index_elements=_CONFLICT_TARGET,
            set_={
                "status": status,
                "holder_id": holder_id,
                "reserved_at": now,
                "expires_at": expires_at,
                "booking_id": booking_id,
                "version": SeatSlot.version + 1,
                "updated_at": now,
            },
            where=SeatSlot.version == expected_version,
        )

    result = await db.execute(stmt.returning(SeatSlot.id))
    slot_id = result.scalar_one_or_none()
    if slot_id is None:
        return None
    return await db.get(SeatSlot, slot_id, populate_existing=True)


async def delete_slot(
    db: AsyncSession,
    trip_id: int,
    seat_number: int,
    expected_status: str,
    *,
    expected_version: Optional[int] = None,
    booking_id: Optional[int] = None,
) -> int:
    """Delete a seat's row only if it still has `expected_status`. Returns rows affected."""
    stmt = delete(SeatSlot).where(
        SeatSlot.trip_id == trip_id,
        SeatSlot.seat_number == seat_number,
        SeatSlot.status == expected_status,
    )
    if expected_version is not None:
        stmt = stmt.where(SeatSlot.version == expected_version)
    if booking_id is not None:
        stmt = stmt.where(SeatSlot.booking_id == booking_id)

    result = await db.execute(stmt.execution_options(synchronize_session=False))
    return result.rowcount


async def sweep_expired(
    db: AsyncSession,
    now: Optional[datetime] = None,
    trip_id: Optional[int] = None,
) -> list[tuple[int, int]]:
    """Delete expired reservations. Returns the (trip_id, seat_number) pairs freed."""
    stmt = delete(SeatSlot).where(
        SeatSlot.status == "reserved",
        SeatSlot.expires_at.is_not(None),
        SeatSlot.expires_at <= (now or utcnow()),
    )
    if trip_id is not None:
        stmt = stmt.where(SeatSlot.trip_id == trip_id)

    result = await db.execute(
        stmt.returning(SeatSlot.trip_id, SeatSlot.seat_number).execution_options(
            synchronize_session=False
        )
    )
    return [(row.trip_id, row.seat_number) for row in result.all()]
