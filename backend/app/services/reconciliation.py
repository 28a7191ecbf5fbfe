from __future__ import annotations

from collections.abc import Sequence
import logging

from app.models.schedule_version import ScheduleVersion
from app.schemas.availability import DAY_SHORT_MAP, FacultyAvailability, SlotFlagsAvailability
from app.schemas.schedule import SessionRecord, SyncReport

logger = logging.getLogger(__name__)


def find_availability_conflicts(
    faculty_id: str,
    availability: FacultyAvailability,
    sessions: Sequence[SessionRecord],
) -> list[SessionRecord]:
    """Sessions of ``faculty_id`` whose slot is now explicitly flagged unavailable."""
    conflicts: list[SessionRecord] = []
    for session in sessions:
        if session.faculty_id != faculty_id:
            continue
        entry = availability.for_day(DAY_SHORT_MAP.get(session.day, session.day))
        # Only an explicit False counts; slot lists carry no per-slot verdict.
        if isinstance(entry, SlotFlagsAvailability) and entry.is_blocked(session.time):
            conflicts.append(session)
    return conflicts


class SyncReconciler:
    """Compares a committed schedule with a faculty member's new availability.

    The schedule is never modified; conflicting sessions are only reported so an
    administrator can resolve them.
    """

    def reconcile(
        self,
        faculty_id: str,
        availability: FacultyAvailability,
        version: ScheduleVersion | None,
    ) -> SyncReport:
        if version is None:
            logger.info("AVAILABILITY SYNC | faculty_id=%s | schedule=none | conflicts=0", faculty_id)
            return SyncReport(
                faculty_id=faculty_id,
                schedule_found=False,
                conflicts=0,
                message="Availability updated; no schedule to reconcile against",
            )

        sessions = [SessionRecord.model_validate(item) for item in version.sessions or []]
        conflicts = find_availability_conflicts(faculty_id, availability, sessions)
        if conflicts:
            logger.warning(
                "AVAILABILITY SYNC | faculty_id=%s | version=%s | conflicts=%s | action=admin_review",
                faculty_id,
                version.label,
                len(conflicts),
            )
            message = f"Availability updated; {len(conflicts)} scheduled session(s) need administrator attention"
        else:
            logger.info(
                "AVAILABILITY SYNC | faculty_id=%s | version=%s | conflicts=0",
                faculty_id,
                version.label,
            )
            message = "Availability synced with teaching schedule; no conflicts"
        return SyncReport(
            faculty_id=faculty_id,
            schedule_found=True,
            version_id=version.id,
            version_label=version.label,
            conflicts=len(conflicts),
            conflicting_sessions=conflicts,
            message=message,
        )
