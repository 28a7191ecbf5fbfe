import random
from collections import Counter

import pytest

from app.core.exceptions import ConfigurationError, MissingDataError, PlacementError
from app.services.assignment import (
    AssignmentEngine,
    is_lab_like,
    session_title,
    sessions_needed,
)
from app.services.occupancy import OccupancyKey, ResourceKind

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri")
TEACHING_SLOTS = ("09:00-10:00", "10:00-11:00", "11:00-12:00", "13:00-14:00", "14:00-15:00", "15:00-16:00")

NO_SLOTS_ANY_DAY = {day: [] for day in ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")}


def _plain_courses(make_course, count):
    return [make_course(f"c{index}", f"Ethics Seminar {index}") for index in range(count)]


def test_lab_like_titles_need_two_sessions(make_course):
    assert is_lab_like("Database Systems")
    assert is_lab_like("Chemistry PRACTICAL")
    assert not is_lab_like("Discrete Mathematics")
    assert sessions_needed(make_course("c1", "Web Development")) == 2
    assert sessions_needed(make_course("c2", "Linear Algebra")) == 1


def test_session_titles(make_course):
    lab = make_course("c1", "Software Engineering")
    plain = make_course("c2", "Economics")

    assert session_title(lab, "Theory") == "Software Engineering (Theory)"
    assert session_title(lab, "Lab") == "Software Engineering (Lab)"
    assert session_title(plain, "Theory") == "Economics"
    assert session_title(plain, "Extra") == "Economics (Extra)"


def test_lab_course_goes_to_expert_on_two_days(engine, make_course, make_faculty, make_room):
    course = make_course("c1", "Database Systems", code="CS301", semester=5)
    faculty = [
        make_faculty("f-net", expertise=["Networks"]),
        make_faculty("f-db", expertise=["Database"]),
    ]
    rooms = [make_room("r1")]

    run = engine.allocate([course], faculty, rooms)

    assert len(run.sessions) == 2
    first, second = run.sessions
    assert {first.faculty_id, second.faculty_id} == {"f-db"}
    assert (first.day, first.time) == ("Mon", "09:00-10:00")
    assert (second.day, second.time) == ("Tue", "09:00-10:00")
    assert first.room_id == second.room_id == "r1"
    assert first.session_type == "Theory"
    assert second.session_type == "Lab"
    assert first.course == "Database Systems (Theory)"
    assert second.course == "Database Systems (Lab)"
    assert first.batch_id == "Sem5"
    assert all(session.placement == "structured" for session in run.sessions)


def test_structured_sessions_never_double_book(engine, make_course, make_faculty, make_room):
    courses = [make_course(f"c{index}", f"Programming {index}") for index in range(8)]
    faculty = [make_faculty("f1", expertise=["Programming"]), make_faculty("f2", expertise=["Programming"])]
    rooms = [make_room("r1"), make_room("r2")]

    run = engine.allocate(courses, faculty, rooms)

    assert len(run.sessions) == 16
    assert run.placement_count("fallback") == 0
    faculty_cells = Counter((s.faculty_id, s.day, s.time) for s in run.sessions)
    room_cells = Counter((s.room_id, s.day, s.time) for s in run.sessions)
    assert max(faculty_cells.values()) == 1
    assert max(room_cells.values()) == 1


def test_sessions_spread_across_least_loaded_days(engine, make_course, make_faculty, make_room):
    courses = _plain_courses(make_course, 6)

    run = engine.allocate(courses, [make_faculty("f1")], [make_room("r1")])

    placed = [(session.day, session.time) for session in run.sessions]
    assert placed[:5] == [(day, "09:00-10:00") for day in WEEKDAYS]
    assert placed[5] == ("Mon", "10:00-11:00")


def test_slot_list_order_is_a_priority(engine, make_course, make_faculty, make_room):
    member = make_faculty("f1", availability={"Monday": ["14:00-15:00", "09:00-10:00"]})

    run = engine.allocate([make_course("c1", "Ethics")], [member], [make_room("r1")])

    assert (run.sessions[0].day, run.sessions[0].time) == ("Mon", "14:00-15:00")


def test_lunch_slot_is_never_used(engine, make_course, make_faculty, make_room):
    member = make_faculty("f1", availability={"Monday": ["12:00-13:00", "10:00-11:00"]})

    run = engine.allocate([make_course("c1", "Ethics")], [member], [make_room("r1")])

    assert run.sessions[0].time == "10:00-11:00"


def test_busy_room_moves_session_to_next_free_room(engine, make_course, make_faculty, make_room):
    rooms = [make_room("r1"), make_room("r2")]
    run = engine.new_run()
    run.occupancy.claim(ResourceKind.room, OccupancyKey("r1", "Mon", "09:00-10:00"))

    engine.allocate([make_course("c1", "Ethics")], [make_faculty("f1")], rooms, run=run)

    [session] = run.sessions
    assert (session.room_id, session.day, session.time) == ("r2", "Mon", "09:00-10:00")


def test_fallback_when_no_slot_fits(engine, make_course, make_faculty, make_room):
    member = make_faculty("f1", availability=NO_SLOTS_ANY_DAY)

    run = engine.allocate([make_course("c1", "Ethics")], [member], [make_room("r1")])

    [session] = run.sessions
    assert session.placement == "fallback"
    assert session.day in WEEKDAYS
    assert session.time in TEACHING_SLOTS
    assert session.faculty_id == "f1"
    assert session.room_id == "r1"


def test_fallback_after_grid_is_exhausted(engine, make_course, make_faculty, make_room):
    cells = len(WEEKDAYS) * len(TEACHING_SLOTS)
    courses = _plain_courses(make_course, cells + 1)

    run = engine.allocate(courses, [make_faculty("f1")], [make_room("r1")])

    assert len(run.sessions) == cells + 1
    assert run.placement_count("structured") == cells
    assert run.sessions[-1].placement == "fallback"


def test_strict_mode_raises_instead_of_fallback(calendar, make_course, make_faculty, make_room):
    strict = AssignmentEngine(calendar, rng=random.Random(1), strict=True)
    member = make_faculty("f1", availability=NO_SLOTS_ANY_DAY)

    with pytest.raises(PlacementError) as exc:
        strict.allocate([make_course("c1", "Ethics", code="ETH1")], [member], [make_room("r1")])

    assert exc.value.details["course_code"] == "ETH1"
    assert exc.value.details["session_type"] == "Theory"


@pytest.mark.parametrize("empty", ["courses", "faculty", "rooms"])
def test_empty_roster_is_rejected(engine, make_course, make_faculty, make_room, empty):
    rosters = {
        "courses": [make_course("c1", "Ethics")],
        "faculty": [make_faculty("f1")],
        "rooms": [make_room("r1")],
    }
    rosters[empty] = []

    with pytest.raises(MissingDataError) as exc:
        engine.allocate(rosters["courses"], rosters["faculty"], rosters["rooms"])

    assert exc.value.roster == empty


def test_seeded_engines_make_identical_fallback_choices(calendar, make_course, make_faculty, make_room):
    courses = [make_course(f"c{index}", f"Ethics {index}", semester=None) for index in range(5)]
    faculty = [make_faculty("f1", availability=NO_SLOTS_ANY_DAY), make_faculty("f2", availability=NO_SLOTS_ANY_DAY)]
    rooms = [make_room("r1"), make_room("r2")]

    first = AssignmentEngine(calendar, rng=random.Random(42)).allocate(courses, faculty, rooms)
    second = AssignmentEngine(calendar, rng=random.Random(42)).allocate(courses, faculty, rooms)

    assert first.sessions == second.sessions


def test_missing_semester_gets_a_random_one(engine, make_course, make_faculty, make_room):
    run = engine.allocate([make_course("c1", "Ethics", semester=None)], [make_faculty("f1")], [make_room("r1")])

    [session] = run.sessions
    assert 1 <= session.semester <= 8
    assert session.batch_id == f"Sem{session.semester}"


def test_padding_fills_every_day_to_the_minimum(engine, make_course, make_faculty, make_room):
    course = make_course("c1", "Ethics")
    faculty = [make_faculty("f1")]
    rooms = [make_room("r1")]
    run = engine.allocate([course], faculty, rooms)

    added = engine.pad_days(run, [course], faculty, rooms)

    assert added == 19
    assert len(run.sessions) == 20
    per_day = Counter(session.day for session in run.sessions)
    assert all(per_day[day] >= 4 for day in WEEKDAYS)
    padding = [session for session in run.sessions if session.placement == "padding"]
    assert len(padding) == 19
    assert {session.session_type for session in padding} == {"Extra"}
    assert {session.course for session in padding} == {"Ethics (Extra)"}


def test_zero_minimum_adds_no_padding(calendar, make_course, make_faculty, make_room):
    engine = AssignmentEngine(calendar, rng=random.Random(3), min_sessions_per_day=0)
    course = make_course("c1", "Ethics")
    run = engine.allocate([course], [make_faculty("f1")], [make_room("r1")])

    assert engine.pad_days(run, [course], [make_faculty("f1")], [make_room("r1")]) == 0
    assert len(run.sessions) == 1


def test_reserved_cells_are_avoided(engine, make_course, make_faculty, make_room):
    faculty = [make_faculty("f1")]
    rooms = [make_room("r1")]
    seeded = engine.allocate([make_course("c0", "Ethics")], faculty, rooms)

    run = engine.new_run()
    run.reserve_existing(seeded.sessions)
    engine.allocate([make_course("c1", "Logic")], faculty, rooms, run=run)

    assert (run.sessions[0].day, run.sessions[0].time) == ("Mon", "10:00-11:00")


@pytest.mark.parametrize("semester", [21, 40])
def test_large_semester_is_kept_verbatim(engine, make_course, make_faculty, make_room, semester):
    run = engine.allocate([make_course("c1", "Ethics", semester=semester)], [make_faculty("f1")], [make_room("r1")])

    [session] = run.sessions
    assert session.semester == semester
    assert session.batch_id == f"Sem{semester}"


@pytest.mark.parametrize("semester", [0, -1])
def test_non_positive_semester_is_treated_as_absent(engine, make_course, make_faculty, make_room, semester):
    run = engine.allocate([make_course("c1", "Ethics", semester=semester)], [make_faculty("f1")], [make_room("r1")])

    [session] = run.sessions
    assert 1 <= session.semester <= 8
    assert session.batch_id == f"Sem{session.semester}"


def test_invalid_stored_availability_names_the_faculty(engine, make_course, make_faculty, make_room):
    faculty = [make_faculty("f-bad", availability={"Monday": ["9-10"]}), make_faculty("f-ok")]

    with pytest.raises(ConfigurationError) as exc:
        engine.allocate([make_course("c1", "Ethics")], faculty, [make_room("r1")])

    assert exc.value.details["faculty_id"] == "f-bad"
    assert exc.value.details["errors"]


def test_availability_is_parsed_once_per_faculty_per_run(engine, make_course, make_faculty, make_room, monkeypatch):
    parsed = Counter()
    original = engine.resolver.availability_for

    def counting(member):
        parsed[member.id] += 1
        return original(member)

    monkeypatch.setattr(engine.resolver, "availability_for", counting)
    courses = _plain_courses(make_course, 8)
    faculty = [make_faculty("f1", availability={"Monday": ["09:00-10:00"]}), make_faculty("f2")]

    engine.allocate(courses, faculty, [make_room("r1")])
    engine.generate_naive(courses, faculty, [make_room("r1")])

    # one parse per faculty for each of the two runs
    assert parsed == Counter({"f1": 2, "f2": 2})
