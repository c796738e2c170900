from datetime import date, time
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import errors, models


def overlaps(start1, end1, start2, end2) -> bool:
    """
    Check if two time intervals overlap.

    Returns True if the interval [start1, end1) overlaps with [start2, end2).
    Windows that only touch (one ends exactly when the other starts) do not
    overlap.
    """
    return start1 < end2 and start2 < end1


def _active_query(db: Session, facility_id: int, on_date: date):
    return db.query(models.Booking).filter(
        models.Booking.facility_id == facility_id,
        models.Booking.date == on_date,
        models.Booking.status.in_(models.ACTIVE_STATUSES),
    )


def find_conflicts(
    db: Session,
    facility_id: int,
    on_date: date,
    start: time,
    end: time,
    exclude_id: Optional[int] = None,
) -> List[models.Booking]:
    """
    Return active bookings on a facility/date whose window overlaps
    ``[start, end)``.

    Only pending and confirmed bookings are considered. ``exclude_id`` drops a
    booking from consideration so an edited booking does not conflict with
    itself. Results are ordered by start time, then id.
    """
    query = _active_query(db, facility_id, on_date).filter(
        models.Booking.start_time < end,
        models.Booking.end_time > start,
    )
    if exclude_id is not None:
        query = query.filter(models.Booking.id != exclude_id)

    try:
        return query.order_by(models.Booking.start_time, models.Booking.id).all()
    except SQLAlchemyError as exc:
        raise errors.StorageError("Could not read bookings from storage") from exc


def active_bookings_for_day(db: Session, facility_id: int, on_date: date) -> List[models.Booking]:
    """All pending/confirmed bookings for a facility on one day, by start time."""
    try:
        return (
            _active_query(db, facility_id, on_date)
            .order_by(models.Booking.start_time, models.Booking.id)
            .all()
        )
    except SQLAlchemyError as exc:
        raise errors.StorageError("Could not read bookings from storage") from exc
