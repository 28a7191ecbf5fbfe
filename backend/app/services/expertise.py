from __future__ import annotations

from collections.abc import Sequence

from app.models.course import Course
from app.models.faculty import Faculty


def expertise_matches(course_title: str, expertise: Sequence[str] | None) -> bool:
    # Plain substring overlap in either direction, not a tokenized match.
    title = (course_title or "").casefold()
    for tag in expertise or []:
        folded = tag.casefold()
        if folded in title or title in folded:
            return True
    return False


def candidate_pool(course: Course, faculty_roster: Sequence[Faculty]) -> list[Faculty]:
    matched = [member for member in faculty_roster if expertise_matches(course.title, member.expertise)]
    return matched if matched else list(faculty_roster)
