"""
Typed errors raised by the seat inventory engines.

Each error carries the HTTP status it maps to and a stable `code` the UI can
switch on ("this seat was just booked by someone else, please choose another").
Messages never include storage-level error text.
"""


class SeatInventoryError(Exception):
    status_code = 400
    code = "error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class SeatUnavailableError(SeatInventoryError):
    """Seat is not in the status the transition requires. Re-read and pick again."""

    status_code = 409
    code = "seat_unavailable"


class SeatAlreadyBookedError(SeatInventoryError):
    """Another booking won the race for this seat."""

    status_code = 409
    code = "seat_already_booked"


class ConcurrentModificationError(SeatInventoryError):
    """The row changed between read and write. Re-read, then retry or abandon."""

    status_code = 409
    code = "concurrent_modification"


class TripClosedError(SeatInventoryError):
    status_code = 409
    code = "trip_closed"


class NotFoundError(SeatInventoryError):
    status_code = 404
    code = "not_found"


class TripNotFoundError(NotFoundError):
    def __init__(self, trip_id: int) -> None:
        super().__init__(f"Trip {trip_id} not found")


class BookingNotFoundError(NotFoundError):
    def __init__(self, booking_id: int) -> None:
        super().__init__(f"Booking {booking_id} not found")


class BookingAlreadyCancelledError(SeatInventoryError):
    status_code = 400
    code = "booking_already_cancelled"


class InputValidationError(SeatInventoryError):
    status_code = 422
    code = "validation_error"


class UnauthorizedError(SeatInventoryError):
    status_code = 401
    code = "unauthorized"


class ForbiddenError(SeatInventoryError):
    status_code = 403
    code = "forbidden"
