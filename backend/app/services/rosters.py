from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import ResourceNotFoundError
from app.models.course import Course
from app.models.faculty import Faculty
from app.models.room import Room
from app.schemas.availability import FacultyAvailability


def list_courses(db: Session, course_ids: Sequence[str] | None = None) -> list[Course]:
    query = select(Course)
    if course_ids is not None:
        query = query.where(Course.id.in_(list(course_ids)))
    return list(db.execute(query.order_by(Course.created_at)).scalars())


def list_faculty(db: Session) -> list[Faculty]:
    return list(db.execute(select(Faculty).order_by(Faculty.created_at)).scalars())


def list_rooms(db: Session) -> list[Room]:
    return list(db.execute(select(Room).order_by(Room.created_at)).scalars())


def get_faculty(db: Session, faculty_id: str) -> Faculty:
    faculty = db.get(Faculty, faculty_id)
    if faculty is None:
        raise ResourceNotFoundError("Faculty", faculty_id)
    return faculty


def update_faculty_availability(db: Session, faculty_id: str, availability: FacultyAvailability) -> Faculty:
    faculty = get_faculty(db, faculty_id)
    faculty.availability = availability.to_storage()
    db.flush()
    return faculty
