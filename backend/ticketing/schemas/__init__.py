from ticketing.schemas.booking import (
    BookingCancelResponse,
    BookingCreate,
    BookingPurgeResponse,
    BookingResponse,
    PassengerInfo,
)
from ticketing.schemas.seat import (
    AvailableSeatResponse,
    ReleaseSeatRequest,
    ReserveSeatRequest,
    SeatReleaseResponse,
    SeatSlotResponse,
    SeatStatusResponse,
    SeatSummary,
    SweepResponse,
)
from ticketing.schemas.activity import ActivityEntryResponse, ActivityFeedResponse

__all__ = [
    "BookingCancelResponse", "BookingCreate", "BookingPurgeResponse", "BookingResponse", "PassengerInfo",
    "AvailableSeatResponse", "ReleaseSeatRequest", "ReserveSeatRequest", "SeatReleaseResponse",
    "SeatSlotResponse", "SeatStatusResponse", "SeatSummary", "SweepResponse",
    "ActivityEntryResponse", "ActivityFeedResponse",
]
