"""
Structured errors raised by the booking core.

Every error carries a ``kind``, a human readable message and an optional
payload. The HTTP layer turns them into JSON responses in
:mod:`campus_booking.error_handlers`.
"""
from typing import Any, Dict, List, Optional


class BookingError(Exception):
    """Base error type for booking domain errors."""

    kind = "booking_error"
    status_code = 400

    def __init__(self, message: str, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.payload = payload or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "detail": self.message, **self.payload}


class ValidationError(BookingError):
    """Malformed input, or a rule such as capacity or past-date was broken."""

    kind = "validation_error"
    status_code = 400


class NotFoundError(BookingError):
    """Facility or reservation does not exist (or is deactivated)."""

    kind = "not_found"
    status_code = 404


class AuthorizationError(BookingError):
    """Actor may not perform this operation on this reservation."""

    kind = "not_authorized"
    status_code = 403


class ConflictError(BookingError):
    """Requested window overlaps active reservations."""

    kind = "conflict"
    status_code = 409

    def __init__(self, message: str, conflicts: List[Any]):
        self.conflicts = list(conflicts)
        super().__init__(
            message,
            payload={"conflicts": [conflict_summary(b) for b in self.conflicts]},
        )


class StorageError(BookingError):
    """Backing store unreachable or a write failed. Not retried here."""

    kind = "storage_error"
    status_code = 503


def conflict_summary(booking) -> Dict[str, Any]:
    return {
        "id": booking.id,
        "date": booking.date.isoformat(),
        "start_time": booking.start_time.strftime("%H:%M"),
        "end_time": booking.end_time.strftime("%H:%M"),
        "status": booking.status,
        "booked_by": booking.user.name if booking.user is not None else None,
    }
