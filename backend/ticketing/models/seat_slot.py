"""
SeatSlot: one ledger row per (trip, seat) that is not available.

Key design decisions:
- Absence of a row means the seat is available; there is no "available" row
- Unique constraint on (trip_id, seat_number) is what makes concurrent
  reserve/book/disable calls collide at the database instead of in memory
- `version` is bumped on every write and used as the compare-and-swap token
- `booking_id` is set only while status = 'booked'
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ticketing.db.base import Base, TimestampMixin

SLOT_STATUSES = ("reserved", "booked", "disabled")


class SeatSlot(Base, TimestampMixin):
    __tablename__ = "seat_slots"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True)
    seat_number = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False)
    holder_id = Column(String(64), nullable=True)
    reserved_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="SET NULL"), nullable=True)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    trip = relationship("Trip", back_populates="seat_slots")

    __table_args__ = (
        UniqueConstraint("trip_id", "seat_number", name="uq_seat_slot_trip_seat"),
        CheckConstraint("seat_number > 0", name="check_seat_slot_number_positive"),
        CheckConstraint("status IN ('reserved', 'booked', 'disabled')", name="check_seat_slot_status"),
    )

    def __repr__(self) -> str:
        return f"<SeatSlot(trip={self.trip_id}, seat={self.seat_number}, status={self.status}, v={self.version})>"
