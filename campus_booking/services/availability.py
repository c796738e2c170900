"""
Availability projection.

Overlays the active bookings of a facility onto the half-hour slot grid of a
day. Projections are read-only and take no locks; the result is advisory until
a booking write succeeds.
"""
import logging
from datetime import date, time, timedelta
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from .. import models
from ..config import settings
from .conflicts import active_bookings_for_day, overlaps
from .facilities import get_active_facility
from .slots import format_hhmm, generate_slots, parse_hhmm

logger = logging.getLogger(__name__)

AVAILABLE = "available"
WEEK_DAYS = 7


def default_day_bounds():
    return parse_hhmm(settings.day_start), parse_hhmm(settings.day_end)


def _project_slots(
    grid, bookings: Sequence[models.Booking], on_date: date
) -> List[Dict[str, Any]]:
    slots = []
    for slot_start, slot_end in grid:
        matches = [
            b for b in bookings if overlaps(slot_start, slot_end, b.start_time, b.end_time)
        ]
        slot = {
            "start": format_hhmm(slot_start),
            "end": format_hhmm(slot_end),
            "status": AVAILABLE,
            "booking_id": None,
            "booked_by": None,
        }
        if matches:
            # bookings are ordered by start time, so the earliest one wins
            first = matches[0]
            slot["status"] = first.status
            slot["booking_id"] = first.id
            slot["booked_by"] = first.user.name if first.user is not None else None
            if len(matches) > 1:
                logger.warning(
                    "Slot %s-%s on %s overlaps %d active bookings %s",
                    slot["start"],
                    slot["end"],
                    on_date.isoformat(),
                    len(matches),
                    [b.id for b in matches],
                )
        slots.append(slot)
    return slots


def summarize(slots: Sequence[Dict[str, Any]]) -> Dict[str, int]:
    total = len(slots)
    available = sum(1 for s in slots if s["status"] == AVAILABLE)
    return {"total": total, "available": available, "occupied": total - available}


def project_availability(
    db: Session,
    facility_id: int,
    on_date: date,
    day_start: Optional[time] = None,
    day_end: Optional[time] = None,
) -> Dict[str, Any]:
    """
    Tag every slot of ``[day_start, day_end)`` on ``on_date`` as available,
    pending or confirmed.

    Missing bounds fall back to the configured opening hours.
    """
    facility = get_active_facility(db, facility_id)
    default_start, default_end = default_day_bounds()
    grid = generate_slots(day_start or default_start, day_end or default_end)

    bookings = active_bookings_for_day(db, facility.id, on_date)
    slots = _project_slots(grid, bookings, on_date)

    return {
        "facility": facility,
        "date": on_date,
        "slots": slots,
        "summary": summarize(slots),
    }


def project_week(db: Session, facility_id: int, start_date: date) -> Dict[str, Any]:
    """
    Seven consecutive daily projections starting at ``start_date``.

    Only the per-day counts are reported to keep the response small.
    """
    facility = get_active_facility(db, facility_id)
    day_start, day_end = default_day_bounds()
    grid = generate_slots(day_start, day_end)

    days = []
    for offset in range(WEEK_DAYS):
        day = start_date + timedelta(days=offset)
        bookings = active_bookings_for_day(db, facility.id, day)
        summary = summarize(_project_slots(grid, bookings, day))
        days.append(
            {
                "date": day,
                "day_of_week": day.strftime("%a"),
                **summary,
            }
        )

    return {"facility": facility, "start_date": start_date, "days": days}
