"""
Booking lifecycle: creation, modification, approval and cancellation.

Every write runs the conflict check and the commit while holding the
facility/day lock (see :mod:`campus_booking.locks`) and a row lock on the
facility, so two writers for the same day are serialized. Events are handed
to ``publish`` only after the commit succeeded.
"""
import logging
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from pybreaker import CircuitBreakerError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import errors, events, models, policy, schemas
from ..circuit_breaker import storage_circuit_breaker
from ..config import settings
from ..locks import booking_locks
from ..models import BookingStatus
from .conflicts import find_conflicts
from .facilities import get_active_facility
from .slots import format_hhmm, parse_hhmm

logger = logging.getLogger(__name__)

Publisher = Callable[[List[events.ReservationEvent]], None]

TRANSITIONS: Dict[BookingStatus, frozenset] = {
    BookingStatus.PENDING: frozenset(
        {BookingStatus.CONFIRMED, BookingStatus.REJECTED, BookingStatus.CANCELLED}
    ),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.REJECTED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

# nullable columns a PATCH may clear with an explicit null
CLEARABLE_FIELDS = ("purpose", "admin_notes")


def ensure_transition(current, target) -> None:
    current, target = BookingStatus(current), BookingStatus(target)
    if target not in TRANSITIONS[current]:
        raise errors.ValidationError(
            f"Cannot change booking status from '{current.value}' to '{target.value}'"
        )


def initial_status(facility: models.Facility) -> BookingStatus:
    return BookingStatus.PENDING if facility.requires_approval else BookingStatus.CONFIRMED


# ----- validation helpers -----
def validate_window(start: time, end: time) -> None:
    if end <= start:
        raise errors.ValidationError("End time must be after start time")
    duration = datetime.combine(date.min, end) - datetime.combine(date.min, start)
    if duration > timedelta(hours=settings.max_booking_hours):
        raise errors.ValidationError(
            f"Booking duration cannot exceed {settings.max_booking_hours} hours"
        )


def _validate_attendees(attendees: int) -> None:
    if attendees is None or attendees < 1:
        raise errors.ValidationError("Attendees must be a positive integer")


def _validate_not_past(on_date: date, start: time, now: datetime) -> None:
    if datetime.combine(on_date, start) < now:
        raise errors.ValidationError("Cannot book a time slot in the past")


def _validate_capacity(attendees: int, facility: models.Facility) -> None:
    if attendees > facility.capacity:
        raise errors.ValidationError(
            f"Attendees ({attendees}) exceed facility capacity ({facility.capacity})"
        )


# ----- storage helpers -----
@contextmanager
def _write_scope(db: Session, *keys):
    """Hold the facility/day locks; roll back whatever is left open on error."""
    with booking_locks.hold(*keys):
        try:
            yield
        except Exception:
            db.rollback()
            raise


def _save(db: Session, booking: models.Booking) -> models.Booking:
    @storage_circuit_breaker
    def _commit():
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    try:
        return _commit()
    except CircuitBreakerError as exc:
        raise errors.StorageError(
            "Booking storage temporarily unavailable. Please try again later."
        ) from exc
    except SQLAlchemyError as exc:
        raise errors.StorageError("Could not save booking") from exc


def _get_booking(db: Session, booking_id: int) -> models.Booking:
    try:
        booking = db.query(models.Booking).filter(models.Booking.id == booking_id).first()
    except SQLAlchemyError as exc:
        raise errors.StorageError("Could not read booking from storage") from exc
    if booking is None:
        raise errors.NotFoundError(f"Booking not found: {booking_id}")
    return booking


def _reload(db: Session, booking: models.Booking) -> None:
    try:
        db.refresh(booking, with_for_update=True)
    except SQLAlchemyError as exc:
        raise errors.StorageError("Could not read booking from storage") from exc


@contextmanager
def _booking_scope(db: Session, booking_id: int, *other_days: date):
    """
    Lock the booking's facility/day (plus ``other_days`` for the same
    facility) and yield the booking re-read from storage.

    Ownership, policy and transition checks belong inside this scope so they
    see whatever other sessions committed while we waited for the lock.
    """
    booking = _get_booking(db, booking_id)
    while True:
        locked_day = booking.date
        keys = [(booking.facility_id, locked_day)]
        keys += [(booking.facility_id, day) for day in other_days]
        with _write_scope(db, *keys):
            _reload(db, booking)
            if booking.date == locked_day:
                yield booking
                return
        # moved to another day while we waited
        logger.debug("Booking %s moved to %s, relocking", booking.id, booking.date)


def _check_conflicts(
    db: Session, facility_id: int, on_date: date, start: time, end: time, exclude_id=None
) -> None:
    conflicts = find_conflicts(db, facility_id, on_date, start, end, exclude_id=exclude_id)
    if conflicts:
        logger.info(
            "Rejected %s-%s on %s for facility %s: overlaps bookings %s",
            format_hhmm(start),
            format_hhmm(end),
            on_date.isoformat(),
            facility_id,
            [c.id for c in conflicts],
        )
        raise errors.ConflictError(
            "This time slot overlaps with an existing booking.", conflicts
        )


def _emit(publish: Optional[Publisher], items: Iterable[events.ReservationEvent]) -> None:
    if publish is not None:
        publish(list(items))


# ----- operations -----
def create_reservation(
    db: Session,
    *,
    actor: models.User,
    data: schemas.BookingCreate,
    now: Optional[datetime] = None,
    publish: Optional[Publisher] = None,
) -> models.Booking:
    """
    Create a booking for ``actor``.

    Checks, in order: well-formed window and attendee count, facility exists
    and is active, start not in the past, attendees within capacity, and no
    overlap with an active booking. The booking starts as ``pending`` when
    the facility requires approval, ``confirmed`` otherwise.
    """
    now = now or datetime.now()
    start, end = parse_hhmm(data.start_time), parse_hhmm(data.end_time)
    validate_window(start, end)
    _validate_attendees(data.attendees)

    facility = get_active_facility(db, data.facility_id)
    _validate_not_past(data.date, start, now)
    _validate_capacity(data.attendees, facility)

    with _write_scope(db, (facility.id, data.date)):
        facility = get_active_facility(db, facility.id, for_update=True)
        _check_conflicts(db, facility.id, data.date, start, end)

        booking = models.Booking(
            user_id=actor.id,
            facility_id=facility.id,
            date=data.date,
            start_time=start,
            end_time=end,
            status=initial_status(facility).value,
            purpose=data.purpose,
            attendees=data.attendees,
        )
        _save(db, booking)

    logger.info(
        "Booking %s created for facility %s on %s %s-%s (%s)",
        booking.id,
        facility.id,
        booking.date.isoformat(),
        format_hhmm(booking.start_time),
        format_hhmm(booking.end_time),
        booking.status,
    )
    _emit(publish, [events.ReservationCreated.from_booking(booking)])
    return booking


def update_reservation(
    db: Session,
    booking_id: int,
    patch: schemas.BookingUpdate,
    *,
    actor: models.User,
    now: Optional[datetime] = None,
    publish: Optional[Publisher] = None,
) -> models.Booking:
    """
    Apply a partial update.

    Owners may edit their own bookings while they await approval; admins may
    edit any booking and are the only ones allowed to touch ``status`` and
    ``admin_notes``. A changed window is re-checked for conflicts, ignoring
    the booking itself. ``purpose`` and ``admin_notes`` may be cleared with
    an explicit null.
    """
    now = now or datetime.now()
    changes = {
        k: v
        for k, v in patch.model_dump(exclude_unset=True).items()
        if v is not None or k in CLEARABLE_FIELDS
    }
    parsed_start = parse_hhmm(changes["start_time"]) if "start_time" in changes else None
    parsed_end = parse_hhmm(changes["end_time"]) if "end_time" in changes else None
    other_days = [changes["date"]] if "date" in changes else []

    with _booking_scope(db, booking_id, *other_days) as booking:
        if not policy.can_modify(actor, booking):
            raise errors.AuthorizationError("Not allowed to modify this booking")
        if not policy.is_admin(actor) and {"status", "admin_notes"} & changes.keys():
            raise errors.AuthorizationError("Only admins may change status or admin notes")

        new_date = changes.get("date", booking.date)
        new_start = parsed_start or booking.start_time
        new_end = parsed_end or booking.end_time
        window_changed = (new_date, new_start, new_end) != (
            booking.date,
            booking.start_time,
            booking.end_time,
        )
        if window_changed:
            validate_window(new_start, new_end)
            _validate_not_past(new_date, new_start, now)

        if "attendees" in changes:
            _validate_attendees(changes["attendees"])
            _validate_capacity(changes["attendees"], booking.facility)

        previous_status = booking.status
        new_status = changes.get("status")
        if new_status is not None and new_status.value != previous_status:
            ensure_transition(previous_status, new_status)

        if window_changed:
            get_active_facility(db, booking.facility_id, for_update=True)
            _check_conflicts(
                db, booking.facility_id, new_date, new_start, new_end, exclude_id=booking.id
            )
            booking.date, booking.start_time, booking.end_time = new_date, new_start, new_end

        for field in CLEARABLE_FIELDS + ("attendees",):
            if field in changes:
                setattr(booking, field, changes[field])
        if new_status is not None:
            booking.status = new_status.value

        _save(db, booking)

    if booking.status != previous_status:
        logger.info(
            "Booking %s status %s -> %s by user %s",
            booking.id,
            previous_status,
            booking.status,
            actor.id,
        )
        event = events.ReservationStatusChanged.from_booking(
            booking, previous_status=previous_status
        )
    else:
        event = events.ReservationUpdated.from_booking(booking)
    _emit(publish, [event])
    return booking


def _review(
    db: Session,
    booking_id: int,
    target: BookingStatus,
    *,
    actor: models.User,
    notes: Optional[str],
    publish: Optional[Publisher],
) -> models.Booking:
    if not policy.is_admin(actor):
        raise errors.AuthorizationError("Only admins may approve or reject bookings")

    with _booking_scope(db, booking_id) as booking:
        previous_status = booking.status
        ensure_transition(previous_status, target)
        booking.status = target.value
        if notes:
            booking.admin_notes = notes
        _save(db, booking)

    logger.info("Booking %s %s by admin %s", booking.id, target.value, actor.id)
    _emit(
        publish,
        [events.ReservationStatusChanged.from_booking(booking, previous_status=previous_status)],
    )
    return booking


def approve_reservation(
    db: Session,
    booking_id: int,
    *,
    actor: models.User,
    notes: Optional[str] = None,
    publish: Optional[Publisher] = None,
) -> models.Booking:
    return _review(
        db, booking_id, BookingStatus.CONFIRMED, actor=actor, notes=notes, publish=publish
    )


def reject_reservation(
    db: Session,
    booking_id: int,
    *,
    actor: models.User,
    notes: Optional[str] = None,
    publish: Optional[Publisher] = None,
) -> models.Booking:
    return _review(
        db, booking_id, BookingStatus.REJECTED, actor=actor, notes=notes, publish=publish
    )


def cancel_reservation(
    db: Session,
    booking_id: int,
    *,
    actor: models.User,
    publish: Optional[Publisher] = None,
) -> models.Booking:
    """
    Cancel a booking (owner or admin). The row is kept with status
    ``cancelled``; cancelling it again is rejected.
    """
    with _booking_scope(db, booking_id) as booking:
        if not policy.can_cancel(actor, booking):
            raise errors.AuthorizationError("Not allowed to cancel this booking")
        ensure_transition(booking.status, BookingStatus.CANCELLED)
        booking.status = BookingStatus.CANCELLED.value
        _save(db, booking)

    logger.info("Booking %s cancelled by user %s", booking.id, actor.id)
    _emit(publish, [events.ReservationCancelled.from_booking(booking)])
    return booking


def get_reservation(db: Session, booking_id: int, *, actor: models.User) -> models.Booking:
    booking = _get_booking(db, booking_id)
    if not policy.can_view(actor, booking):
        raise errors.AuthorizationError("Not allowed to view this booking")
    return booking


def _scoped_query(db: Session, actor: models.User, user_id: Optional[int]):
    query = db.query(models.Booking)
    # non-admins only ever see their own bookings
    scope = user_id if policy.is_admin(actor) else actor.id
    if scope is not None:
        query = query.filter(models.Booking.user_id == scope)
    return query


def list_reservations(
    db: Session,
    *,
    actor: models.User,
    facility_id: Optional[int] = None,
    status: Optional[BookingStatus] = None,
    on_date: Optional[date] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    user_id: Optional[int] = None,
) -> List[models.Booking]:
    query = _scoped_query(db, actor, user_id)
    if facility_id is not None:
        query = query.filter(models.Booking.facility_id == facility_id)
    if status is not None:
        query = query.filter(models.Booking.status == BookingStatus(status).value)
    if on_date is not None:
        query = query.filter(models.Booking.date == on_date)
    if start_date is not None:
        query = query.filter(models.Booking.date >= start_date)
    if end_date is not None:
        query = query.filter(models.Booking.date <= end_date)
    try:
        return query.order_by(
            models.Booking.date, models.Booking.start_time, models.Booking.id
        ).all()
    except SQLAlchemyError as exc:
        raise errors.StorageError("Could not read bookings from storage") from exc


def reservation_stats(
    db: Session, *, actor: models.User, today: Optional[date] = None
) -> Dict[str, int]:
    """Counts for the dashboard, scoped like :func:`list_reservations`."""
    today = today or date.today()
    try:
        rows = (
            _scoped_query(db, actor, None)
            .with_entities(models.Booking.status, models.Booking.date)
            .all()
        )
    except SQLAlchemyError as exc:
        raise errors.StorageError("Could not read bookings from storage") from exc

    stats = {"total": len(rows), "confirmed": 0, "pending": 0, "cancelled": 0, "upcoming": 0}
    for status, on_date in rows:
        if status in stats:
            stats[status] += 1
        if status in models.ACTIVE_STATUSES and on_date >= today:
            stats["upcoming"] += 1
    return stats
