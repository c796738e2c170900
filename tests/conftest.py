"""
Pytest configuration and shared fixtures for testing the Campus Facility Booking API.
"""
import os

# Configure before the app modules read settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["RATE_LIMIT_ENABLED"] = "false"

from datetime import date, datetime, time, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from campus_booking.database import Base
from campus_booking.main import app
from campus_booking.deps import get_db, get_event_bus, get_password_hash
from campus_booking.circuit_breaker import storage_circuit_breaker
from campus_booking.events import EventBus, ReservationEvent
from campus_booking import models


# Use an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_breaker():
    """
    The storage breaker is process-wide; never let one test open it for the next.
    """
    yield
    storage_circuit_breaker.close()


@pytest.fixture
def published():
    """
    Events delivered through the bus during a test.
    """
    return []


@pytest.fixture
def event_bus(published):
    bus = EventBus()
    bus.subscribe(ReservationEvent, published.append)
    return bus


@pytest.fixture(scope="function")
def client(db_session, event_bus):
    """
    Create a test client with the test database.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_event_bus] = lambda: event_bus
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_user(db_session, name, username, role, password):
    user = models.User(
        name=name,
        username=username,
        email=f"{username}@campus.edu",
        hashed_password=get_password_hash(password),
        role=role,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def admin_user(db_session):
    """
    Create an admin user for testing.
    """
    return _make_user(db_session, "Admin User", "admin", "admin", "adminpass123")


@pytest.fixture
def student_user(db_session):
    """
    Create a student user for testing.
    """
    return _make_user(db_session, "Student User", "student", "student", "studentpass123")


@pytest.fixture
def faculty_user(db_session):
    """
    Create a faculty user for testing.
    """
    return _make_user(db_session, "Faculty User", "faculty", "faculty", "facultypass123")


def _login(client, username, password):
    response = client.post(
        "/users/login",
        params={"username": username, "password": password},
    )
    return response.json()["access_token"]


@pytest.fixture
def admin_token(client, admin_user):
    return _login(client, "admin", "adminpass123")


@pytest.fixture
def student_token(client, student_user):
    return _login(client, "student", "studentpass123")


@pytest.fixture
def faculty_token(client, faculty_user):
    return _login(client, "faculty", "facultypass123")


@pytest.fixture
def sample_facility(db_session):
    """
    A facility with capacity 10 that confirms bookings immediately.
    """
    facility = models.Facility(
        name="Seminar Room A",
        location="Main Building, Floor 2",
        capacity=10,
        description="Projector and whiteboard",
        facility_type="room",
        requires_approval=False,
    )
    db_session.add(facility)
    db_session.commit()
    db_session.refresh(facility)
    return facility


@pytest.fixture
def approval_facility(db_session):
    """
    A facility whose bookings wait for admin approval.
    """
    facility = models.Facility(
        name="Main Auditorium",
        location="Arts Block",
        capacity=300,
        facility_type="auditorium",
        requires_approval=True,
    )
    db_session.add(facility)
    db_session.commit()
    db_session.refresh(facility)
    return facility


@pytest.fixture
def sample_facilities(db_session):
    """
    Several facilities, one of them deactivated.
    """
    facilities = [
        models.Facility(
            name="Chemistry Lab",
            location="Science Block",
            capacity=24,
            description="Fume hoods",
            facility_type="lab",
        ),
        models.Facility(
            name="Indoor Gym",
            location="Sports Complex",
            capacity=60,
            facility_type="gym",
        ),
        models.Facility(
            name="Study Room 3",
            location="Library",
            capacity=6,
            facility_type="study_room",
        ),
        models.Facility(
            name="Old Lecture Hall",
            location="North Wing",
            capacity=120,
            facility_type="auditorium",
            is_active=False,
        ),
    ]
    for facility in facilities:
        db_session.add(facility)
    db_session.commit()
    for facility in facilities:
        db_session.refresh(facility)
    return facilities


@pytest.fixture
def booking_factory(db_session):
    """
    Insert booking rows directly, bypassing the lifecycle checks.
    """
    def make_booking(user, facility, on_date, start, end, status="confirmed", **extra):
        booking = models.Booking(
            user_id=user.id,
            facility_id=facility.id,
            date=on_date,
            start_time=start,
            end_time=end,
            status=status,
            attendees=extra.pop("attendees", 1),
            **extra,
        )
        db_session.add(booking)
        db_session.commit()
        db_session.refresh(booking)
        return booking

    return make_booking


@pytest.fixture
def now():
    """
    A fixed "current moment" for service-level tests (a Monday, 08:00).
    """
    return datetime(2030, 3, 11, 8, 0)


@pytest.fixture
def booking_date():
    """
    A day far enough ahead that HTTP tests never hit the past-date rule.
    """
    return date.today() + timedelta(days=7)


@pytest.fixture
def sample_booking(booking_factory, student_user, sample_facility, booking_date):
    """
    A confirmed 09:00-11:00 booking owned by the student.
    """
    return booking_factory(student_user, sample_facility, booking_date, time(9, 0), time(11, 0))


def get_auth_header(token: str) -> dict:
    """
    Helper function to create authorization header.
    """
    return {"Authorization": f"Bearer {token}"}
