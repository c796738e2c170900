import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Callable, Optional

from . import events
from .config import Settings, settings as default_settings
from .models import BookingStatus

logger = logging.getLogger(__name__)

FOOTER = "This is an automated message. Please do not reply to this email.\nCampus Booking System"


@dataclass(frozen=True)
class EmailContent:
    to_email: str
    subject: str
    body: str


def _when(event: events.ReservationEvent) -> str:
    return (
        f"{event.date.isoformat()} "
        f"{event.start_time.strftime('%H:%M')}-{event.end_time.strftime('%H:%M')}"
    )


def build_email(event: events.ReservationEvent) -> Optional[EmailContent]:
    """Render the email for an event, or None if the event sends nothing."""
    if isinstance(event, events.ReservationCreated):
        confirmed = event.status == BookingStatus.CONFIRMED.value
        subject = (
            f"Booking #{event.booking_id} - {'Confirmed' if confirmed else 'Submitted'} "
            f"| {event.facility_name}"
        )
        state = "confirmed" if confirmed else "submitted and is awaiting admin approval"
        lines = [
            f"Hi {event.user_name},",
            "",
            f"Your booking has been {state}.",
            "",
            f"Booking ID: #{event.booking_id}",
            f"Facility:   {event.facility_name}",
            f"When:       {_when(event)}",
            f"Status:     {event.status}",
        ]
    elif isinstance(event, events.ReservationStatusChanged):
        subject = (
            f"Booking #{event.booking_id} Status Updated: {event.status.upper()} "
            f"| {event.facility_name}"
        )
        lines = [
            f"Hi {event.user_name},",
            "",
            f"Your booking #{event.booking_id} for {event.facility_name} has been updated.",
            "",
            f"New status: {event.status.upper()}",
        ]
        if event.admin_notes:
            lines.append(f"Admin notes: {event.admin_notes}")
    elif isinstance(event, events.ReservationCancelled):
        subject = f"Booking #{event.booking_id} Cancelled | {event.facility_name}"
        lines = [
            f"Hi {event.user_name},",
            "",
            "Your booking has been cancelled.",
            "",
            f"Booking ID: #{event.booking_id}",
            f"Facility:   {event.facility_name}",
            f"When:       {_when(event)}",
        ]
    else:
        return None

    body = "\n".join(lines) + "\n\n" + FOOTER
    return EmailContent(to_email=event.user_email, subject=subject, body=body)


def smtp_sender(config: Settings) -> Callable[[EmailMessage], None]:
    def send(message: EmailMessage) -> None:
        with smtplib.SMTP(config.smtp_host, config.smtp_port, timeout=10) as smtp:
            smtp.starttls()
            smtp.login(config.smtp_user, config.smtp_password or "")
            smtp.send_message(message)

    return send


class EmailNotifier:
    """
    Sends reservation emails. Skips silently (with a log line) when SMTP is
    not configured.
    """

    def __init__(
        self,
        config: Settings = default_settings,
        sender: Optional[Callable[[EmailMessage], None]] = None,
    ):
        self.config = config
        self.sender = sender or (smtp_sender(config) if config.email_enabled else None)

    def __call__(self, event: events.ReservationEvent) -> None:
        content = build_email(event)
        if content is None or not content.to_email:
            return
        if self.sender is None:
            logger.info("Email not configured, skipping '%s' to %s", content.subject, content.to_email)
            return

        message = EmailMessage()
        message["Subject"] = content.subject
        message["From"] = self.config.email_from or self.config.smtp_user or "noreply@campus.local"
        message["To"] = content.to_email
        message.set_content(content.body)

        self.sender(message)
        logger.info("Sent '%s' to %s", content.subject, content.to_email)


def build_event_bus(config: Settings = default_settings) -> events.EventBus:
    bus = events.EventBus()
    notifier = EmailNotifier(config)
    bus.subscribe(events.ReservationEvent, notifier)
    return bus
