from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import ResourceNotFoundError
from app.models.schedule_version import ScheduleVersion
from app.schemas.schedule import SessionRecord


def _dump_sessions(sessions: Sequence[SessionRecord]) -> list[dict]:
    return [session.model_dump(mode="json") for session in sessions]


class ScheduleStore:
    """Versioned schedule documents.

    Institution-wide versions have no owner and are only ever appended; a
    per-student version is upserted in place. Methods flush, callers commit.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _institution_versions(self) -> list[ScheduleVersion]:
        query = (
            select(ScheduleVersion)
            .where(ScheduleVersion.owner_id.is_(None))
            .order_by(ScheduleVersion.created_at.desc())
        )
        return list(self.db.execute(query).scalars())

    def list_versions(self) -> list[ScheduleVersion]:
        """Institution-wide versions, newest first."""
        return self._institution_versions()

    def next_version_label(self) -> str:
        labels = self.db.execute(
            select(ScheduleVersion.label).where(ScheduleVersion.owner_id.is_(None))
        ).scalars().all()
        numeric = []
        for label in labels:
            if not label.startswith("v"):
                continue
            suffix = label[1:]
            if suffix.isdigit():
                numeric.append(int(suffix))
        next_index = (max(numeric) + 1) if numeric else 1
        return f"v{next_index}"

    def create_version(
        self,
        label: str,
        sessions: Sequence[SessionRecord],
        owner_id: str | None = None,
        summary: dict | None = None,
    ) -> ScheduleVersion:
        version = ScheduleVersion(
            label=label,
            owner_id=owner_id,
            sessions=_dump_sessions(sessions),
            summary=summary or {},
        )
        self.db.add(version)
        self.db.flush()
        return version

    def student_version(self, owner_id: str) -> ScheduleVersion | None:
        return self.db.execute(
            select(ScheduleVersion).where(ScheduleVersion.owner_id == owner_id)
        ).scalars().first()

    def upsert_student_version(
        self,
        owner_id: str,
        label: str,
        sessions: Sequence[SessionRecord],
        summary: dict | None = None,
    ) -> ScheduleVersion:
        existing = self.student_version(owner_id)
        if existing is None:
            return self.create_version(label, sessions, owner_id=owner_id, summary=summary)
        existing.label = label
        existing.sessions = _dump_sessions(sessions)
        existing.summary = summary or {}
        self.db.flush()
        return existing

    def latest_version(self, require_non_empty: bool) -> ScheduleVersion | None:
        for version in self._institution_versions():
            if not require_non_empty or version.sessions:
                return version
        return None

    def latest_or_empty(self) -> ScheduleVersion | None:
        """Newest version with sessions, else the newest version of any size."""
        return self.latest_version(require_non_empty=True) or self.latest_version(require_non_empty=False)

    def overwrite_latest_sessions(self, sessions: Sequence[SessionRecord]) -> ScheduleVersion:
        latest = self.latest_version(require_non_empty=False)
        if latest is None:
            raise ResourceNotFoundError("ScheduleVersion", "latest")
        latest.sessions = _dump_sessions(sessions)
        latest.summary = {**(latest.summary or {}), "sessions": len(sessions), "manually_edited": True}
        self.db.flush()
        return latest
