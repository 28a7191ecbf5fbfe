import random

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.db.base import Base
from app.models.course import Course
from app.models.faculty import Faculty
from app.models.room import Room
from app.services.assignment import AssignmentEngine
from app.services.calendar import Calendar

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri")
TEACHING_SLOTS = (
    "09:00-10:00",
    "10:00-11:00",
    "11:00-12:00",
    "13:00-14:00",
    "14:00-15:00",
    "15:00-16:00",
)
LUNCH = "12:00-13:00"


@pytest.fixture()
def db():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def calendar():
    return Calendar(working_days=WEEKDAYS, time_slots=TEACHING_SLOTS, lunch_slot=LUNCH)


@pytest.fixture()
def engine(calendar):
    # fixed seeds keep fallback and padding picks reproducible
    return AssignmentEngine(calendar, rng=random.Random(7), shuffle_rng=random.Random(11))


@pytest.fixture()
def make_faculty():
    def factory(faculty_id, name=None, *, expertise=None, availability=None, max_weekly_sessions=20):
        return Faculty(
            id=faculty_id,
            name=name or f"Prof {faculty_id}",
            department="Computer Science",
            expertise=list(expertise or []),
            max_weekly_sessions=max_weekly_sessions,
            availability=dict(availability or {}),
        )

    return factory


@pytest.fixture()
def make_room():
    def factory(room_id, name=None, capacity=40):
        return Room(id=room_id, name=name or f"Room {room_id}", capacity=capacity)

    return factory


@pytest.fixture()
def make_course():
    def factory(course_id, title, *, code=None, semester=3):
        return Course(id=course_id, title=title, code=code or course_id.upper(), semester=semester)

    return factory
