"""Seed demo faculty, rooms and courses, then run one bulk generation.

Run:
  PYTHONPATH=backend python scripts/seed_demo_data.py
"""

from __future__ import annotations

import logging

from sqlalchemy import select

from app.core.config import get_settings
from app.core.logging import setup_logging
from app.db.bootstrap import ensure_schema
from app.db.session import SessionLocal, engine
from app.models.course import Course
from app.models.faculty import Faculty
from app.models.room import Room
from app.services.scheduling import generate_bulk_schedule

logger = logging.getLogger("seed_demo_data")

DEMO_FACULTY = [
    {
        "name": "Dr. Sarah Johnson",
        "department": "Computer Science",
        "expertise": ["Programming", "Data Structures"],
        "availability": {
            "Monday": ["09:00-10:00", "10:00-11:00"],
            "Tuesday": ["09:00-10:00", "11:00-12:00"],
            "Wednesday": ["10:00-11:00", "13:00-14:00"],
        },
    },
    {
        "name": "Prof. Michael Chen",
        "department": "Computer Science",
        "expertise": ["Database", "Web Development"],
        "availability": {
            "Monday": {"09:00-10:00": False},
            "Friday": {"14:00-15:00": False, "15:00-16:00": False},
        },
    },
    {
        "name": "Dr. Priya Raman",
        "department": "Mathematics",
        "expertise": ["Discrete Mathematics", "Statistics"],
        "availability": {},
    },
]

DEMO_ROOMS = [
    {"name": "Room A101", "capacity": 40},
    {"name": "Room A102", "capacity": 40},
    {"name": "Lab B201", "capacity": 30},
]

DEMO_COURSES = [
    {"code": "CS101", "title": "Programming Fundamentals", "semester": 1},
    {"code": "CS201", "title": "Data Structures", "semester": 3},
    {"code": "CS301", "title": "Database Systems", "semester": 5},
    {"code": "CS305", "title": "Web Development", "semester": 5},
    {"code": "MA101", "title": "Discrete Mathematics", "semester": None},
]


def upsert_faculty(db) -> int:
    created = 0
    for item in DEMO_FACULTY:
        existing = db.execute(select(Faculty).where(Faculty.name == item["name"])).scalar_one_or_none()
        if existing is None:
            db.add(Faculty(max_weekly_sessions=20, **item))
            created += 1
            continue
        existing.department = item["department"]
        existing.expertise = item["expertise"]
        existing.availability = item["availability"]
    return created


def upsert_rooms(db) -> int:
    created = 0
    for item in DEMO_ROOMS:
        existing = db.execute(select(Room).where(Room.name == item["name"])).scalar_one_or_none()
        if existing is None:
            db.add(Room(**item))
            created += 1
            continue
        existing.capacity = item["capacity"]
    return created


def upsert_courses(db) -> int:
    created = 0
    for item in DEMO_COURSES:
        existing = db.execute(select(Course).where(Course.code == item["code"])).scalar_one_or_none()
        if existing is None:
            db.add(Course(**item))
            created += 1
            continue
        existing.title = item["title"]
        existing.semester = item["semester"]
    return created


def main() -> None:
    settings = get_settings()
    setup_logging(environment=settings.environment)
    ensure_schema(engine)

    db = SessionLocal()
    try:
        faculty = upsert_faculty(db)
        rooms = upsert_rooms(db)
        courses = upsert_courses(db)
        db.commit()
        logger.info("SEED COMPLETE | faculty_created=%s | rooms_created=%s | courses_created=%s", faculty, rooms, courses)

        result = generate_bulk_schedule(db, settings=settings)
        logger.info(
            "%s | version=%s | sessions=%s | fallback=%s",
            settings.project_name,
            result.version.label,
            result.total_sessions,
            result.fallback_sessions,
        )
    finally:
        db.close()


if __name__ == "__main__":
    main()
