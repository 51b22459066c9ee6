"""
ActivityLog: append-only audit trail of inventory mutations.

Rows are never updated or deleted. `booking_id` is not a foreign key; entries
outlive a purged booking.
"""

from sqlalchemy import JSON, Column, DateTime, Index, Integer, Numeric, String, func

from ticketing.db.base import Base


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    action = Column(String(64), nullable=False)
    details = Column(JSON, nullable=False, default=dict)
    trip_id = Column(Integer, nullable=True)
    booking_id = Column(Integer, nullable=True)
    amount = Column(Numeric(10, 2), nullable=True)
    actor_id = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        # Poll cursor: "entries for trip T after id N"
        Index("ix_activity_logs_trip_id_id", "trip_id", "id"),
    )

    def __repr__(self) -> str:
        return f"<ActivityLog(id={self.id}, action={self.action}, trip={self.trip_id})>"
