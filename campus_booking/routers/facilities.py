from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import List, Optional

from .. import schemas, models
from ..deps import get_db, require_roles
from ..models import FacilityType
from ..services.facilities import get_active_facility

router = APIRouter(prefix="/facilities", tags=["facilities"])

# nullable columns; a null for any other field leaves it unchanged
CLEARABLE_FIELDS = ("description", "amenities", "image_url")


@router.post("/", response_model=schemas.FacilityOut, status_code=201)
def create_facility(
    facility_in: schemas.FacilityCreate,
    db: Session = Depends(get_db),
    _: models.User = Depends(require_roles("admin")),
):
    """
    Create a new facility. *(Admin-only)*

    Raises
    ------
    HTTPException
        - 400 if a facility with the same name already exists.
    """
    existing = db.query(models.Facility).filter(models.Facility.name == facility_in.name).first()
    if existing:
        raise HTTPException(status_code=400, detail="Facility name already exists")
    data = facility_in.model_dump()
    data["facility_type"] = facility_in.facility_type.value
    facility = models.Facility(**data)
    db.add(facility)
    db.commit()
    db.refresh(facility)
    return facility


@router.get("/", response_model=List[schemas.FacilityOut])
def list_facilities(
    db: Session = Depends(get_db),
    facility_type: Optional[FacilityType] = None,
    search: Optional[str] = None,
    min_capacity: Optional[int] = None,
    max_capacity: Optional[int] = None,
):
    """
    List active facilities with optional filters.

    Parameters
    ----------
    facility_type : FacilityType, optional
        Exact facility type to match.
    search : str, optional
        Case-insensitive substring of the name, location or description.
    min_capacity, max_capacity : int, optional
        Capacity bounds (inclusive).
    """
    query = db.query(models.Facility).filter(models.Facility.is_active == True)  # noqa: E712

    if facility_type is not None:
        query = query.filter(models.Facility.facility_type == facility_type.value)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                models.Facility.name.ilike(pattern),
                models.Facility.location.ilike(pattern),
                models.Facility.description.ilike(pattern),
            )
        )
    if min_capacity is not None:
        query = query.filter(models.Facility.capacity >= min_capacity)
    if max_capacity is not None:
        query = query.filter(models.Facility.capacity <= max_capacity)

    return query.order_by(models.Facility.name).all()


@router.get("/{facility_id}", response_model=schemas.FacilityOut)
def get_facility(facility_id: int, db: Session = Depends(get_db)):
    """
    Retrieve a single active facility by its ID.
    Raises a 404 error if it does not exist or was deactivated.
    """
    return get_active_facility(db, facility_id)


@router.patch("/{facility_id}", response_model=schemas.FacilityOut)
def update_facility(
    facility_id: int,
    facility_update: schemas.FacilityUpdate,
    db: Session = Depends(get_db),
    _: models.User = Depends(require_roles("admin")),
):
    """
    Update details of an existing facility. *(Admin-only)*

    Only the provided fields change; description, amenities and image_url
    can be cleared with null. Raises a 404 error if the facility is
    not found.
    """
    facility = db.query(models.Facility).filter(models.Facility.id == facility_id).first()
    if not facility:
        raise HTTPException(status_code=404, detail="Facility not found")
    data = {
        field: value
        for field, value in facility_update.model_dump(exclude_unset=True).items()
        if value is not None or field in CLEARABLE_FIELDS
    }
    if "facility_type" in data:
        data["facility_type"] = data["facility_type"].value
    for field, value in data.items():
        setattr(facility, field, value)
    db.commit()
    db.refresh(facility)
    return facility


@router.delete("/{facility_id}")
def delete_facility(
    facility_id: int,
    db: Session = Depends(get_db),
    _: models.User = Depends(require_roles("admin")),
):
    """
    Deactivate a facility. *(Admin-only)*

    The row is kept (``is_active = false``) so existing bookings stay valid.
    """
    facility = get_active_facility(db, facility_id)
    facility.is_active = False
    db.commit()
    return {"detail": "Facility deactivated"}
