from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
import logging
import random
import re

from app.core.config import Settings, get_settings
from app.core.exceptions import MissingDataError, PlacementError
from app.models.course import Course
from app.models.faculty import Faculty
from app.models.room import Room
from app.schemas.availability import FacultyAvailability
from app.schemas.schedule import PlacementKind, SessionRecord, SessionType
from app.services.availability import AvailabilityResolver
from app.services.calendar import Calendar
from app.services.expertise import candidate_pool
from app.services.occupancy import OccupancyKey, OccupancyTracker, ResourceKind

logger = logging.getLogger(__name__)

LAB_LIKE_PATTERN = re.compile(
    r"lab|practical|programming|database|web development|software engineering",
    re.IGNORECASE,
)
FALLBACK_SEMESTER_RANGE = (1, 8)


def is_lab_like(title: str | None) -> bool:
    return bool(LAB_LIKE_PATTERN.search(title or ""))


def sessions_needed(course: Course) -> int:
    return 2 if is_lab_like(course.title) else 1


def session_title(course: Course, session_type: SessionType) -> str:
    if session_type == "Extra":
        return f"{course.title} (Extra)"
    if is_lab_like(course.title):
        return f"{course.title} ({session_type})"
    return course.title


def faculty_identity(member: Faculty) -> str:
    return member.id or member.display_name


def room_identity(room: Room) -> str:
    return room.id or room.name


def require_rosters(courses: Sequence[Course], faculty: Sequence[Faculty], rooms: Sequence[Room]) -> None:
    counts = {"courses": len(courses), "faculty": len(faculty), "rooms": len(rooms)}
    for roster, count in counts.items():
        if count == 0:
            raise MissingDataError(roster, **counts)


@dataclass
class AllocationRun:
    """Mutable state owned by exactly one generation run."""

    calendar: Calendar
    occupancy: OccupancyTracker = field(default_factory=OccupancyTracker)
    day_load: Counter = field(default_factory=Counter)
    workload: Counter = field(default_factory=Counter)
    sessions: list[SessionRecord] = field(default_factory=list)
    # faculty identity -> availability parsed once per run
    availability: dict[str, FacultyAvailability] = field(default_factory=dict)

    def record(self, session: SessionRecord) -> None:
        self.sessions.append(session)
        self.day_load[session.day] += 1

    def days_by_load(self) -> list[str]:
        # sorted() is stable, so ties keep the canonical day order
        return sorted(self.calendar.working_days, key=lambda day: self.day_load[day])

    def reserve_existing(self, sessions: Iterable[SessionRecord]) -> None:
        for session in sessions:
            faculty_key = session.faculty_id or session.faculty
            room_key = session.room_id or session.room
            self.occupancy.reserve(ResourceKind.faculty, OccupancyKey(faculty_key, session.day, session.time))
            self.occupancy.reserve(ResourceKind.room, OccupancyKey(room_key, session.day, session.time))

    def placement_count(self, placement: PlacementKind) -> int:
        return sum(1 for session in self.sessions if session.placement == placement)


class AssignmentEngine:
    """Greedy first-fit allocator with a randomized, unchecked fallback.

    ``rng`` drives every choice that affects what gets scheduled (fallback and
    padding picks, naive-generation shuffles, semester fallbacks);
    ``shuffle_rng`` only reorders finished output.
    """

    def __init__(
        self,
        calendar: Calendar,
        *,
        rng: random.Random | None = None,
        shuffle_rng: random.Random | None = None,
        strict: bool = False,
        min_sessions_per_day: int = 4,
        naive_workload_cap: int = 6,
    ) -> None:
        self.calendar = calendar
        self.resolver = AvailabilityResolver(calendar)
        self.random = rng or random.Random()
        self.shuffle_random = shuffle_rng or random.Random()
        self.strict = strict
        self.min_sessions_per_day = min_sessions_per_day
        self.naive_workload_cap = naive_workload_cap

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "AssignmentEngine":
        settings = settings or get_settings()
        return cls(
            Calendar.from_settings(settings),
            rng=random.Random(settings.random_seed),
            shuffle_rng=random.Random(settings.random_seed),
            strict=settings.strict_placement,
            min_sessions_per_day=settings.min_sessions_per_day,
            naive_workload_cap=settings.naive_workload_cap,
        )

    def new_run(self) -> AllocationRun:
        return AllocationRun(calendar=self.calendar)

    def allocate(
        self,
        courses: Sequence[Course],
        faculty: Sequence[Faculty],
        rooms: Sequence[Room],
        *,
        run: AllocationRun | None = None,
    ) -> AllocationRun:
        """Place every required session of ``courses``, course by course."""
        require_rosters(courses, faculty, rooms)
        run = run or self.new_run()
        for course in courses:
            pool = candidate_pool(course, faculty)
            lab_like = is_lab_like(course.title)
            for index in range(sessions_needed(course)):
                session_type: SessionType = "Lab" if lab_like and index > 0 else "Theory"
                session = self._place_structured(run, course, pool, rooms, session_type)
                if session is None:
                    if self.strict:
                        raise PlacementError(
                            f"No conflict-free slot for {course.code} ({session_type})",
                            details={
                                "course_id": course.id,
                                "course_code": course.code,
                                "session_type": session_type,
                                "candidate_faculty": len(pool),
                                "rooms": len(rooms),
                            },
                        )
                    session = self._place_fallback(course, faculty, rooms, session_type)
                run.record(session)
        return run

    def pad_days(
        self,
        run: AllocationRun,
        courses: Sequence[Course],
        faculty: Sequence[Faculty],
        rooms: Sequence[Room],
    ) -> int:
        """Top up thin days with random extra sessions for the per-student view.

        This pass never consults occupancy; it only makes each working day reach
        ``min_sessions_per_day`` entries.
        """
        require_rosters(courses, faculty, rooms)
        added = 0
        for day in self.calendar.working_days:
            while run.day_load[day] < self.min_sessions_per_day:
                course = self.random.choice(courses)
                session = self._build_session(
                    course,
                    self.random.choice(faculty),
                    self.random.choice(rooms),
                    day,
                    self.random.choice(self.calendar.time_slots),
                    session_type="Extra",
                    placement="padding",
                )
                run.record(session)
                added += 1
        if added:
            logger.debug("PADDING PASS | added=%s | minimum_per_day=%s", added, self.min_sessions_per_day)
        return added

    def generate_naive(
        self,
        courses: Sequence[Course],
        faculty: Sequence[Faculty],
        rooms: Sequence[Room],
    ) -> AllocationRun:
        """Walk the shuffled calendar cell by cell, picking a random course per cell."""
        require_rosters(courses, faculty, rooms)
        run = self.new_run()
        cells = self.calendar.cells()
        target = min(2 * len(courses), len(cells))

        shuffled_cells = self.random.sample(cells, k=len(cells))
        shuffled_courses = self.random.sample(list(courses), k=len(courses))
        shuffled_faculty = self.random.sample(list(faculty), k=len(faculty))
        shuffled_rooms = self.random.sample(list(rooms), k=len(rooms))

        for day, slot in shuffled_cells:
            if len(run.sessions) >= target:
                break
            course = self.random.choice(shuffled_courses)
            member = next(
                (
                    candidate
                    for candidate in candidate_pool(course, shuffled_faculty)
                    if self._naive_faculty_fits(run, candidate, day, slot)
                ),
                None,
            )
            if member is None:
                continue
            room = self._first_free_room(run, shuffled_rooms, day, slot)
            if room is None:
                continue

            self._claim(run, member, room, day, slot)
            run.workload[faculty_identity(member)] += 1
            session_type: SessionType = "Theory"
            if is_lab_like(course.title):
                session_type = self.random.choice(("Lab", "Theory"))
            run.record(
                self._build_session(course, member, room, day, slot, session_type=session_type, placement="structured")
            )

        # Output order carries no meaning.
        self.shuffle_random.shuffle(run.sessions)
        return run

    def workload_cap(self, member: Faculty) -> int:
        if member.max_weekly_sessions is None:
            return self.naive_workload_cap
        return min(self.naive_workload_cap, member.max_weekly_sessions)

    def _naive_faculty_fits(self, run: AllocationRun, member: Faculty, day: str, slot: str) -> bool:
        identity = faculty_identity(member)
        if slot not in self._available_slots(run, member, day):
            return False
        if not run.occupancy.is_free(ResourceKind.faculty, OccupancyKey(identity, day, slot)):
            return False
        return run.workload[identity] < self.workload_cap(member)

    def _available_slots(self, run: AllocationRun, member: Faculty, day: str) -> list[str]:
        identity = faculty_identity(member)
        if identity not in run.availability:
            run.availability[identity] = self.resolver.availability_for(member)
        return self.resolver.slots_for(run.availability[identity], day)

    def _place_structured(
        self,
        run: AllocationRun,
        course: Course,
        pool: Sequence[Faculty],
        rooms: Sequence[Room],
        session_type: SessionType,
    ) -> SessionRecord | None:
        for day in run.days_by_load():
            for member in pool:
                identity = faculty_identity(member)
                for slot in self._available_slots(run, member, day):
                    if slot == self.calendar.lunch_slot:
                        continue
                    if not run.occupancy.is_free(ResourceKind.faculty, OccupancyKey(identity, day, slot)):
                        continue
                    room = self._first_free_room(run, rooms, day, slot)
                    if room is None:
                        continue
                    self._claim(run, member, room, day, slot)
                    logger.debug(
                        "SESSION PLACED | course=%s | type=%s | faculty=%s | room=%s | day=%s | time=%s",
                        course.code,
                        session_type,
                        member.display_name,
                        room.name,
                        day,
                        slot,
                    )
                    return self._build_session(
                        course, member, room, day, slot, session_type=session_type, placement="structured"
                    )
        return None

    def _place_fallback(
        self,
        course: Course,
        faculty: Sequence[Faculty],
        rooms: Sequence[Room],
        session_type: SessionType,
    ) -> SessionRecord:
        day = self.random.choice(self.calendar.working_days)
        member = self.random.choice(faculty)
        slot = self.random.choice(self.calendar.time_slots)
        room = self.random.choice(rooms)
        logger.warning(
            "FALLBACK PLACEMENT | course=%s | type=%s | faculty=%s | room=%s | day=%s | time=%s",
            course.code,
            session_type,
            member.display_name,
            room.name,
            day,
            slot,
        )
        return self._build_session(course, member, room, day, slot, session_type=session_type, placement="fallback")

    def _first_free_room(self, run: AllocationRun, rooms: Sequence[Room], day: str, slot: str) -> Room | None:
        for room in rooms:
            if run.occupancy.is_free(ResourceKind.room, OccupancyKey(room_identity(room), day, slot)):
                return room
        return None

    def _claim(self, run: AllocationRun, member: Faculty, room: Room, day: str, slot: str) -> None:
        run.occupancy.claim(ResourceKind.faculty, OccupancyKey(faculty_identity(member), day, slot))
        run.occupancy.claim(ResourceKind.room, OccupancyKey(room_identity(room), day, slot))

    def _build_session(
        self,
        course: Course,
        member: Faculty,
        room: Room,
        day: str,
        slot: str,
        *,
        session_type: SessionType,
        placement: PlacementKind,
    ) -> SessionRecord:
        semester = course.semester
        if semester is None or semester < 1:
            semester = self.random.randint(*FALLBACK_SEMESTER_RANGE)
        return SessionRecord(
            course_id=course.id,
            course=session_title(course, session_type),
            course_code=course.code,
            faculty_id=member.id,
            faculty=member.display_name,
            room_id=room.id,
            room=room.name,
            day=day,
            time=slot,
            semester=semester,
            batch_id=f"Sem{semester}",
            session_type=session_type,
            placement=placement,
        )
