from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import errors, models


def get_active_facility(db: Session, facility_id: int, for_update: bool = False) -> models.Facility:
    """
    Look up a facility that has not been deactivated.

    With ``for_update`` the row is read with ``SELECT ... FOR UPDATE`` so that
    writers on backends with row locks are serialized per facility.
    """
    query = db.query(models.Facility).filter(
        models.Facility.id == facility_id,
        models.Facility.is_active == True,  # noqa: E712
    )
    if for_update:
        query = query.with_for_update()
    try:
        facility = query.first()
    except SQLAlchemyError as exc:
        raise errors.StorageError("Could not read facility from storage") from exc
    if facility is None:
        raise errors.NotFoundError(f"Facility not found: {facility_id}")
    return facility
