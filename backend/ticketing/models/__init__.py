from ticketing.models.trip import Trip
from ticketing.models.seat_slot import SeatSlot
from ticketing.models.booking import Booking
from ticketing.models.activity_log import ActivityLog

__all__ = ["Trip", "SeatSlot", "Booking", "ActivityLog"]
