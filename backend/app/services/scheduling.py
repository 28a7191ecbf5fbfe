from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
import logging
from threading import Lock
import time
from time import perf_counter

from sqlalchemy.orm import Session

from app.core.config import Settings
from app.models.schedule_version import ScheduleVersion
from app.schemas.availability import FacultyAvailability
from app.schemas.schedule import GenerationResult, ScheduleVersionOut, SessionRecord, SyncReport
from app.services.assignment import AllocationRun, AssignmentEngine
from app.services.reconciliation import SyncReconciler
from app.services.rosters import list_courses, list_faculty, list_rooms, update_faculty_availability
from app.services.schedule_store import ScheduleStore

logger = logging.getLogger(__name__)

# Serializes generation runs inside one process; across processes the last
# persisted version wins.
_generation_lock = Lock()


@contextmanager
def _generation_scope(db: Session, event: str, **fields: object) -> Iterator[None]:
    context = " | ".join(f"{key}={value}" for key, value in fields.items())
    started = perf_counter()
    logger.info("%s START | %s", event, context)
    with _generation_lock:
        try:
            yield
            db.commit()
        except Exception:
            db.rollback()
            logger.exception(
                "%s FAILED | %s | wall_ms=%s",
                event,
                context,
                int((perf_counter() - started) * 1000),
            )
            raise
    logger.info("%s COMPLETE | %s | wall_ms=%s", event, context, int((perf_counter() - started) * 1000))


def _engine(settings: Settings | None, engine: AssignmentEngine | None) -> AssignmentEngine:
    return engine or AssignmentEngine.from_settings(settings)


def _summary(run: AllocationRun, strategy: str, **extra: object) -> dict:
    return {
        "strategy": strategy,
        "sessions": len(run.sessions),
        "fallback_sessions": run.placement_count("fallback"),
        "padding_sessions": run.placement_count("padding"),
        **extra,
    }


def _result(db: Session, version: ScheduleVersion, run: AllocationRun) -> GenerationResult:
    db.refresh(version)
    return GenerationResult(
        version=ScheduleVersionOut.model_validate(version),
        total_sessions=len(run.sessions),
        fallback_sessions=run.placement_count("fallback"),
        padding_sessions=run.placement_count("padding"),
    )


def generate_bulk_schedule(
    db: Session,
    course_ids: Sequence[str] | None = None,
    *,
    settings: Settings | None = None,
    engine: AssignmentEngine | None = None,
) -> GenerationResult:
    """Course-by-course generation for the whole catalog (or ``course_ids``)."""
    engine = _engine(settings, engine)
    scope = "all" if course_ids is None else len(course_ids)
    with _generation_scope(db, "BULK GENERATION", courses=scope, strict=engine.strict):
        courses = list_courses(db, course_ids)
        faculty = list_faculty(db)
        rooms = list_rooms(db)
        run = engine.allocate(courses, faculty, rooms)
        store = ScheduleStore(db)
        version = store.create_version(
            store.next_version_label(),
            run.sessions,
            summary=_summary(run, "structured", courses=len(courses)),
        )
        logger.info(
            "BULK GENERATION PLACED | version=%s | sessions=%s | fallback=%s",
            version.label,
            len(run.sessions),
            run.placement_count("fallback"),
        )
    return _result(db, version, run)


def generate_student_schedule(
    db: Session,
    student_id: str,
    course_ids: Sequence[str],
    *,
    settings: Settings | None = None,
    engine: AssignmentEngine | None = None,
) -> GenerationResult:
    """Per-student generation: avoids cells taken by the global schedule, then pads thin days."""
    engine = _engine(settings, engine)
    with _generation_scope(db, "STUDENT GENERATION", student_id=student_id, courses=len(course_ids)):
        courses = list_courses(db, course_ids)
        faculty = list_faculty(db)
        rooms = list_rooms(db)
        store = ScheduleStore(db)

        run = engine.new_run()
        institution = store.latest_version(require_non_empty=True)
        if institution is not None:
            run.reserve_existing(SessionRecord.model_validate(item) for item in institution.sessions)
        engine.allocate(courses, faculty, rooms, run=run)
        padded = engine.pad_days(run, courses, faculty, rooms)

        version = store.upsert_student_version(
            student_id,
            f"student_{student_id}_{int(time.time() * 1000)}",
            run.sessions,
            summary=_summary(
                run,
                "student",
                courses=len(courses),
                seeded_from=institution.label if institution is not None else None,
            ),
        )
        logger.info(
            "STUDENT GENERATION PLACED | student_id=%s | sessions=%s | fallback=%s | padded=%s",
            student_id,
            len(run.sessions),
            run.placement_count("fallback"),
            padded,
        )
    return _result(db, version, run)


def generate_naive_schedule(
    db: Session,
    *,
    settings: Settings | None = None,
    engine: AssignmentEngine | None = None,
) -> GenerationResult:
    """Cell-by-cell randomized generation over the full catalog."""
    engine = _engine(settings, engine)
    with _generation_scope(db, "NAIVE GENERATION", workload_cap=engine.naive_workload_cap):
        courses = list_courses(db)
        faculty = list_faculty(db)
        rooms = list_rooms(db)
        run = engine.generate_naive(courses, faculty, rooms)
        store = ScheduleStore(db)
        version = store.create_version(
            store.next_version_label(),
            run.sessions,
            summary=_summary(run, "naive", courses=len(courses), target=min(2 * len(courses), len(engine.calendar.cells()))),
        )
        logger.info("NAIVE GENERATION PLACED | version=%s | sessions=%s", version.label, len(run.sessions))
    return _result(db, version, run)


def get_latest_schedule(db: Session) -> ScheduleVersionOut | None:
    version = ScheduleStore(db).latest_or_empty()
    if version is None:
        logger.info("LATEST SCHEDULE | found=false")
        return None
    return ScheduleVersionOut.model_validate(version)


def get_student_schedule(db: Session, student_id: str) -> ScheduleVersionOut | None:
    version = ScheduleStore(db).student_version(student_id)
    return ScheduleVersionOut.model_validate(version) if version is not None else None


def overwrite_latest_schedule(db: Session, sessions: Sequence[SessionRecord | Mapping]) -> ScheduleVersionOut:
    """Manual edit path: replaces the newest institution-wide session list outright."""
    records = [SessionRecord.model_validate(item) for item in sessions]
    try:
        version = ScheduleStore(db).overwrite_latest_sessions(records)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(version)
    logger.info("SCHEDULE OVERWRITTEN | version=%s | sessions=%s", version.label, len(records))
    return ScheduleVersionOut.model_validate(version)


def sync_faculty_availability(
    db: Session,
    faculty_id: str,
    availability: FacultyAvailability | Mapping,
) -> SyncReport:
    """Store new availability, then report committed sessions it invalidates."""
    parsed = FacultyAvailability.model_validate(availability)
    try:
        update_faculty_availability(db, faculty_id, parsed)
        db.commit()
    except Exception:
        db.rollback()
        raise
    version = ScheduleStore(db).latest_version(require_non_empty=False)
    return SyncReconciler().reconcile(faculty_id, parsed, version)
