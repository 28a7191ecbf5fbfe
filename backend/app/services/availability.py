from __future__ import annotations

from pydantic import ValidationError

from app.core.exceptions import ConfigurationError
from app.models.faculty import Faculty
from app.schemas.availability import FacultyAvailability, SlotListAvailability
from app.services.calendar import Calendar


class AvailabilityResolver:
    def __init__(self, calendar: Calendar) -> None:
        self.calendar = calendar

    def availability_for(self, faculty: Faculty) -> FacultyAvailability:
        try:
            return FacultyAvailability.model_validate(faculty.availability or {})
        except ValidationError as exc:
            raise ConfigurationError(
                f"Stored availability for faculty {faculty.display_name} is invalid",
                details={"faculty_id": faculty.id, "errors": exc.errors(include_url=False)},
            ) from exc

    def slots_for(self, availability: FacultyAvailability, day: str) -> list[str]:
        """Slots permitted on ``day`` (an abbreviated day code) by parsed availability.

        An explicit slot list is returned verbatim, since its order is a placement
        priority. A flag map keeps every canonical slot not flagged ``False``.
        No entry at all means the whole day is available.
        """
        entry = availability.for_day(self.calendar.full_day_name(day))
        if entry is None:
            return list(self.calendar.time_slots)
        if isinstance(entry, SlotListAvailability):
            return list(entry.slots)
        return [slot for slot in self.calendar.time_slots if not entry.is_blocked(slot)]

    def available_slots(self, faculty: Faculty, day: str) -> list[str]:
        return self.slots_for(self.availability_for(faculty), day)

    def is_available(self, faculty: Faculty, day: str, slot: str) -> bool:
        return slot in self.available_slots(faculty, day)
