from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import models, policy, schemas
from ..errors import conflict_summary
from ..deps import get_db, get_current_user, get_publisher
from ..models import BookingStatus
from ..services import bookings as booking_service
from ..services.conflicts import find_conflicts
from ..services.facilities import get_active_facility
from ..services.slots import parse_hhmm

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("/check", response_model=schemas.ConflictCheckResponse)
def check_conflicts(
    facility_id: int,
    date: date,
    start_time: str,
    end_time: str,
    exclude_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Check a time window against existing bookings without creating one.

    Returns every active booking that overlaps ``[start_time, end_time)``.
    ``exclude_id`` leaves one booking out (useful when editing it). Bookings
    the caller may not view are reduced to their time window and owner name.
    """
    start, end = parse_hhmm(start_time), parse_hhmm(end_time)
    booking_service.validate_window(start, end)
    facility = get_active_facility(db, facility_id)
    conflicts = find_conflicts(db, facility.id, date, start, end, exclude_id=exclude_id)
    return schemas.ConflictCheckResponse(
        facility_id=facility.id,
        date=date,
        start_time=start,
        end_time=end,
        available=not conflicts,
        conflicts=[
            schemas.BookingOut.model_validate(b)
            if policy.can_view(current_user, b)
            else schemas.ConflictSummary(**conflict_summary(b))
            for b in conflicts
        ],
    )


@router.get("/", response_model=schemas.BookingListOut)
def list_bookings(
    facility_id: Optional[int] = None,
    status: Optional[BookingStatus] = None,
    date: Optional[date] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    user_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    List bookings with aggregate stats.

    - Admins see **all** bookings and may filter by ``user_id``.
    - Everyone else sees **only their own** bookings.
    """
    items = booking_service.list_reservations(
        db,
        actor=current_user,
        facility_id=facility_id,
        status=status,
        on_date=date,
        start_date=start_date,
        end_date=end_date,
        user_id=user_id,
    )
    stats = booking_service.reservation_stats(db, actor=current_user)
    return {"count": len(items), "stats": stats, "data": items}


@router.get("/{booking_id}", response_model=schemas.BookingOut)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Single booking; visible to its owner and to admins."""
    return booking_service.get_reservation(db, booking_id, actor=current_user)


@router.post("/", response_model=schemas.BookingOut, status_code=201)
def create_booking(
    booking_in: schemas.BookingCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    publish=Depends(get_publisher),
):
    """
    Create a booking for the current user.

    The booking is confirmed right away unless the facility requires
    approval, in which case it waits as ``pending``. Overlapping an active
    booking is rejected with 409 and the list of conflicting bookings.
    """
    return booking_service.create_reservation(
        db, actor=current_user, data=booking_in, publish=publish
    )


@router.patch("/{booking_id}", response_model=schemas.BookingOut)
def update_booking(
    booking_id: int,
    booking_update: schemas.BookingUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    publish=Depends(get_publisher),
):
    """
    Update an existing booking.

    Owners can edit their own pending bookings (date, time, purpose,
    attendees). Admins can edit any booking and also set ``status`` and
    ``admin_notes``. A new time window is re-checked for conflicts.
    """
    return booking_service.update_reservation(
        db, booking_id, booking_update, actor=current_user, publish=publish
    )


@router.post("/{booking_id}/approve", response_model=schemas.BookingOut)
def approve_booking(
    booking_id: int,
    review: Optional[schemas.BookingReview] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    publish=Depends(get_publisher),
):
    """Confirm a pending booking. *(Admin-only)*"""
    return booking_service.approve_reservation(
        db,
        booking_id,
        actor=current_user,
        notes=review.admin_notes if review else None,
        publish=publish,
    )


@router.post("/{booking_id}/reject", response_model=schemas.BookingOut)
def reject_booking(
    booking_id: int,
    review: Optional[schemas.BookingReview] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    publish=Depends(get_publisher),
):
    """Reject a pending booking, optionally with a note. *(Admin-only)*"""
    return booking_service.reject_reservation(
        db,
        booking_id,
        actor=current_user,
        notes=review.admin_notes if review else None,
        publish=publish,
    )


@router.delete("/{booking_id}")
def cancel_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
    publish=Depends(get_publisher),
):
    """
    Cancel a booking.

    - Users can cancel their own bookings.
    - Admins can cancel any booking.

    The booking is kept with status ``cancelled``.
    """
    booking = booking_service.cancel_reservation(
        db, booking_id, actor=current_user, publish=publish
    )
    return {"detail": "Booking cancelled", "id": booking.id, "status": booking.status}
