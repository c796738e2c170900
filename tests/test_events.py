"""
Tests for the event bus and email notifications.
"""
import logging

import pytest
from datetime import date, time

from campus_booking import events
from campus_booking.config import Settings
from campus_booking.notifications import EmailNotifier, build_email, build_event_bus


def make_event(cls=events.ReservationCreated, **overrides):
    fields = dict(
        booking_id=7,
        user_email="student@campus.edu",
        user_name="Student User",
        facility_name="Seminar Room A",
        date=date(2030, 3, 12),
        start_time=time(9),
        end_time=time(11),
        status="confirmed",
    )
    fields.update(overrides)
    return cls(**fields)


class TestEventBus:
    """Tests for routing and delivery."""

    def test_handlers_receive_matching_events(self):
        bus = events.EventBus()
        created, everything = [], []
        bus.subscribe(events.ReservationCreated, created.append)
        bus.subscribe(events.ReservationEvent, everything.append)

        first = make_event()
        second = make_event(events.ReservationCancelled, status="cancelled")
        bus.publish([first, second])

        assert created == [first]
        assert everything == [first, second]

    def test_failing_handler_is_logged_not_raised(self, caplog):
        bus = events.EventBus()
        delivered = []

        def broken(event):
            raise RuntimeError("smtp down")

        bus.subscribe(events.ReservationEvent, broken)
        bus.subscribe(events.ReservationEvent, delivered.append)

        with caplog.at_level(logging.ERROR, logger="campus_booking.events"):
            bus.publish([make_event()])

        assert len(delivered) == 1
        assert "Handler broken failed" in caplog.text

    def test_publish_without_handlers(self):
        events.EventBus().publish([make_event()])

    def test_to_dict(self):
        data = make_event(events.ReservationStatusChanged, previous_status="pending").to_dict()
        assert data["event_type"] == "ReservationStatusChanged"
        assert data["previous_status"] == "pending"
        assert isinstance(data["event_id"], str)

    def test_event_ids_are_unique(self):
        assert make_event().event_id != make_event().event_id


class TestBuildEmail:
    """Tests for rendering notification emails."""

    def test_created_confirmed(self):
        content = build_email(make_event())
        assert content.to_email == "student@campus.edu"
        assert content.subject == "Booking #7 - Confirmed | Seminar Room A"
        assert "2030-03-12 09:00-11:00" in content.body

    def test_created_pending(self):
        content = build_email(make_event(status="pending"))
        assert content.subject == "Booking #7 - Submitted | Seminar Room A"
        assert "awaiting admin approval" in content.body

    def test_status_changed_includes_notes(self):
        content = build_email(
            make_event(
                events.ReservationStatusChanged,
                status="rejected",
                admin_notes="Exam week",
                previous_status="pending",
            )
        )
        assert content.subject == "Booking #7 Status Updated: REJECTED | Seminar Room A"
        assert "Admin notes: Exam week" in content.body

    def test_cancelled(self):
        content = build_email(make_event(events.ReservationCancelled, status="cancelled"))
        assert content.subject == "Booking #7 Cancelled | Seminar Room A"

    def test_plain_update_sends_nothing(self):
        assert build_email(make_event(events.ReservationUpdated)) is None


class TestEmailNotifier:
    """Tests for the SMTP-backed notifier."""

    @pytest.fixture
    def smtp_settings(self):
        return Settings(
            smtp_host="smtp.campus.edu",
            smtp_user="bookings@campus.edu",
            email_from="Campus Bookings <bookings@campus.edu>",
        )

    def test_sends_rendered_message(self, smtp_settings):
        sent = []
        notifier = EmailNotifier(smtp_settings, sender=sent.append)

        notifier(make_event())

        assert len(sent) == 1
        message = sent[0]
        assert message["To"] == "student@campus.edu"
        assert message["From"] == "Campus Bookings <bookings@campus.edu>"
        assert message["Subject"] == "Booking #7 - Confirmed | Seminar Room A"
        assert "Booking ID: #7" in message.get_content()

    def test_skips_events_without_email(self, smtp_settings):
        sent = []
        notifier = EmailNotifier(smtp_settings, sender=sent.append)

        notifier(make_event(events.ReservationUpdated))
        assert sent == []

    def test_unconfigured_smtp_skips(self, caplog):
        notifier = EmailNotifier(Settings(smtp_host=None, smtp_user=None))
        assert notifier.sender is None

        with caplog.at_level(logging.INFO, logger="campus_booking.notifications"):
            notifier(make_event())
        assert "Email not configured" in caplog.text

    def test_bus_wiring_survives_sender_failure(self, smtp_settings, caplog):
        bus = build_event_bus(Settings(smtp_host=None, smtp_user=None))
        handler = bus.handlers_for(make_event())[0]

        def failing(message):
            raise ConnectionRefusedError("no route")

        handler.sender = failing
        with caplog.at_level(logging.ERROR, logger="campus_booking.events"):
            bus.publish([make_event()])
        assert "failed for ReservationCreated" in caplog.text
