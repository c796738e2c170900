from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import schemas
from ..deps import get_db
from ..services.availability import project_availability, project_week
from ..services.slots import parse_hhmm

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("/", response_model=schemas.AvailabilityResponse)
def get_availability(
    facility_id: int,
    date: date,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """
    Half-hour slot grid for a facility on one day.

    Each slot is ``available``, ``pending`` or ``confirmed``. The day defaults
    to the configured opening hours; ``start_time``/``end_time`` (HH:MM)
    narrow or widen it.
    """
    day_start = parse_hhmm(start_time) if start_time else None
    day_end = parse_hhmm(end_time) if end_time else None
    return project_availability(db, facility_id, date, day_start, day_end)


@router.get("/week", response_model=schemas.WeeklyAvailabilityResponse)
def get_weekly_availability(
    facility_id: int,
    start_date: date,
    db: Session = Depends(get_db),
):
    """
    Per-day counts of free and occupied slots for the seven days starting at
    ``start_date``.
    """
    return project_week(db, facility_id, start_date)
