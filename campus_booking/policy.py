"""
Who may do what with a booking.

The lifecycle functions call these once per operation instead of repeating
owner/admin checks inline.
"""
from . import models


def is_admin(actor: models.User) -> bool:
    return actor.role == models.UserRole.ADMIN.value


def is_owner(actor: models.User, booking: models.Booking) -> bool:
    return booking.user_id == actor.id


def can_view(actor: models.User, booking: models.Booking) -> bool:
    return is_admin(actor) or is_owner(actor, booking)


def can_modify(actor: models.User, booking: models.Booking) -> bool:
    """Admins may edit any booking; owners only while it awaits approval."""
    if is_admin(actor):
        return True
    return is_owner(actor, booking) and booking.status == models.BookingStatus.PENDING.value


def can_cancel(actor: models.User, booking: models.Booking) -> bool:
    return is_admin(actor) or is_owner(actor, booking)
