"""
Reservation events and the bus that delivers them.

Events are published only after a booking write has committed. Handlers
(e.g. email notifications) run outside the write path, and a failing handler
never affects the booking itself.
"""
import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, time
from typing import Callable, Dict, Iterable, List, Optional, Type
from uuid import UUID, uuid4

from . import models

logger = logging.getLogger(__name__)


@dataclass
class ReservationEvent:
    booking_id: int
    user_email: str
    user_name: str
    facility_name: str
    date: date
    start_time: time
    end_time: time
    status: str
    admin_notes: Optional[str] = None
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def from_booking(cls, booking: models.Booking, **extra):
        return cls(
            booking_id=booking.id,
            user_email=booking.user.email,
            user_name=booking.user.name,
            facility_name=booking.facility.name,
            date=booking.date,
            start_time=booking.start_time,
            end_time=booking.end_time,
            status=booking.status,
            admin_notes=booking.admin_notes,
            **extra,
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["event_type"] = type(self).__name__
        data["event_id"] = str(self.event_id)
        return data


@dataclass
class ReservationCreated(ReservationEvent):
    pass


@dataclass
class ReservationUpdated(ReservationEvent):
    pass


@dataclass
class ReservationStatusChanged(ReservationEvent):
    previous_status: Optional[str] = None


@dataclass
class ReservationCancelled(ReservationEvent):
    pass


Handler = Callable[[ReservationEvent], None]


class EventBus:
    """
    Routes reservation events to subscribed handlers.

    Several handlers may subscribe to one event type; subscribing to
    ``ReservationEvent`` receives every event.
    """

    def __init__(self):
        self._handlers: Dict[Type[ReservationEvent], List[Handler]] = {}

    def subscribe(self, event_type: Type[ReservationEvent], handler: Handler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug("Subscribed %s to %s", getattr(handler, "__name__", handler), event_type.__name__)

    def handlers_for(self, event: ReservationEvent) -> List[Handler]:
        found: List[Handler] = []
        for event_type in type(event).__mro__:
            found.extend(self._handlers.get(event_type, []))
        return found

    def publish(self, events: Iterable[ReservationEvent]) -> None:
        for event in events:
            handlers = self.handlers_for(event)
            if not handlers:
                logger.debug("No handlers for %s", type(event).__name__)
                continue

            logger.info(
                "Publishing %s for booking %s", type(event).__name__, event.booking_id
            )
            for handler in handlers:
                try:
                    handler(event)
                except Exception:
                    # handler failures must not reach the caller
                    logger.exception(
                        "Handler %s failed for %s",
                        getattr(handler, "__name__", handler),
                        type(event).__name__,
                    )
