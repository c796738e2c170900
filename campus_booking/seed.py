"""
Populate an empty database with the campus facility inventory, an admin
account and a few sample bookings.

Run with ``python -m campus_booking.seed``. Existing users and facilities
(matched by username and name) are left untouched, so running it twice is
harmless.
"""
import logging
from datetime import date, time, timedelta
from typing import Dict, Optional

from sqlalchemy.orm import Session

from . import models
from .config import configure_logging, settings
from .database import Base, SessionLocal, engine
from .deps import get_password_hash

logger = logging.getLogger(__name__)

USERS = [
    dict(name="System Admin", username="admin", email="admin@campus.edu",
         role="admin", department="IT"),
    dict(name="Dr. Alice Johnson", username="alice", email="alice@campus.edu",
         role="faculty", department="Computer Science"),
    dict(name="Dr. Bob Williams", username="bob", email="bob@campus.edu",
         role="faculty", department="Electrical Engineering"),
    dict(name="Dave Student", username="dave", email="dave@student.edu",
         role="student", student_id="STU001", department="Computer Science"),
    dict(name="Eve Student", username="eve", email="eve@student.edu",
         role="student", student_id="STU002", department="Electrical Engineering"),
]

DEMO_PASSWORDS = {"faculty": "Faculty123", "student": "Student123"}

FACILITIES = [
    dict(name="Engineering Lab A", location="Engineering Building, Room 101", capacity=30,
         facility_type="lab", requires_approval=False,
         description="Computer lab with 30 workstations and dual monitors.",
         amenities="Computers, Projector, Whiteboard, Air Conditioning"),
    dict(name="Main Auditorium", location="Student Union Building", capacity=500,
         facility_type="auditorium", requires_approval=True,
         description="Stadium seating, sound system and stage lighting.",
         amenities="Stage, PA System, Lighting Rig, Microphones"),
    dict(name="Study Room 1", location="Library, 2nd Floor", capacity=8,
         facility_type="study_room", requires_approval=False,
         description="Quiet study room with a collaborative workspace.",
         amenities="Whiteboard, TV Screen, HDMI Cable"),
    dict(name="Study Room 2", location="Library, 2nd Floor", capacity=6,
         facility_type="study_room", requires_approval=False,
         description="Small room for group projects and tutoring.",
         amenities="Whiteboard, TV Screen"),
    dict(name="Sports Hall", location="Recreation Centre", capacity=100,
         facility_type="sports", requires_approval=True,
         description="Multi-purpose hall with full court markings.",
         amenities="Basketball Hoops, Volleyball Net, Changing Rooms"),
    dict(name="Seminar Room B", location="Science Block, Room 204", capacity=40,
         facility_type="room", requires_approval=False,
         description="Tiered seating and full AV equipment.",
         amenities="Projector, Smartboard, Video Conferencing"),
    dict(name="Research Lab 3", location="Science Block, Room 305", capacity=20,
         facility_type="lab", requires_approval=True,
         description="Research lab; safety induction required before first booking.",
         amenities="Lab Equipment, Fume Hoods, Safety Showers"),
    dict(name="Fitness Centre", location="Recreation Centre, Lower Ground", capacity=50,
         facility_type="gym", requires_approval=False,
         description="Cardio machines, free weights and resistance equipment.",
         amenities="Treadmills, Free Weights, Lockers"),
]

# (facility, username, days from today, start, end, purpose, attendees, status)
SAMPLE_BOOKINGS = [
    ("Engineering Lab A", "alice", 1, time(9), time(11), "Lab Session", 25, "confirmed"),
    ("Engineering Lab A", "dave", 1, time(13), time(15), "Group Project Work", 5, "confirmed"),
    ("Engineering Lab A", "eve", 2, time(10), time(12), "Algorithm Study Session", 3, "pending"),
    ("Main Auditorium", "admin", 5, time(14), time(17), "Tech Talk", 300, "confirmed"),
    ("Main Auditorium", "bob", 7, time(9), time(12), "Department Symposium", 200, "pending"),
    ("Study Room 1", "dave", 1, time(14), time(16), "Midterm Revision", 6, "confirmed"),
    ("Sports Hall", "eve", 2, time(18), time(20), "Basketball Club Practice", 20, "confirmed"),
    ("Seminar Room B", "alice", 3, time(11), time(13), "Research Presentation", 35, "confirmed"),
]


def _password_for(role: str, admin_password: str) -> str:
    return admin_password if role == "admin" else DEMO_PASSWORDS[role]


def seed(
    db: Session,
    *,
    admin_password: Optional[str] = None,
    with_samples: bool = True,
    today: Optional[date] = None,
) -> Dict[str, int]:
    """
    Insert whatever part of the seed data is missing. Returns how many
    users, facilities and bookings were created.
    """
    admin_password = admin_password or settings.seed_admin_password
    today = today or date.today()
    created = {"users": 0, "facilities": 0, "bookings": 0}

    users = {u.username: u for u in db.query(models.User).all()}
    for data in USERS:
        if data["username"] in users:
            continue
        user = models.User(
            hashed_password=get_password_hash(_password_for(data["role"], admin_password)),
            **data,
        )
        db.add(user)
        users[user.username] = user
        created["users"] += 1
        logger.info("Created user %s (%s)", user.username, user.role)

    facilities = {f.name: f for f in db.query(models.Facility).all()}
    for data in FACILITIES:
        if data["name"] in facilities:
            continue
        facility = models.Facility(**data)
        db.add(facility)
        facilities[facility.name] = facility
        created["facilities"] += 1
        logger.info("Created facility %s", facility.name)

    db.flush()

    # sample bookings only go into an empty bookings table
    if with_samples and db.query(models.Booking).count() == 0:
        for name, username, offset, start, end, purpose, attendees, status in SAMPLE_BOOKINGS:
            db.add(
                models.Booking(
                    facility_id=facilities[name].id,
                    user_id=users[username].id,
                    date=today + timedelta(days=offset),
                    start_time=start,
                    end_time=end,
                    purpose=purpose,
                    attendees=attendees,
                    status=status,
                )
            )
            created["bookings"] += 1

    db.commit()
    logger.info(
        "Seed complete: %(users)d users, %(facilities)d facilities, %(bookings)d bookings",
        created,
    )
    return created


def main():
    configure_logging()
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
