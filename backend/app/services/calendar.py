from __future__ import annotations

from dataclasses import dataclass

from app.core.config import Settings, get_settings
from app.core.exceptions import ConfigurationError
from app.schemas.availability import DAY_SHORT_MAP, SLOT_PATTERN


@dataclass(frozen=True)
class Calendar:
    """The weekly grid of (day, slot) teaching cells.

    Days are abbreviated codes ("Mon") in working order; slots are canonical
    "HH:MM-HH:MM" strings. The lunch slot is reserved and never part of the grid.
    """

    working_days: tuple[str, ...]
    time_slots: tuple[str, ...]
    lunch_slot: str

    def __post_init__(self) -> None:
        if not self.working_days:
            raise ConfigurationError("At least one working day must be configured")
        unknown_days = [day for day in self.working_days if day not in DAY_SHORT_MAP]
        if unknown_days:
            raise ConfigurationError(
                f"Unknown working day code(s): {', '.join(unknown_days)}",
                details={"working_days": list(self.working_days)},
            )
        if len(set(self.working_days)) != len(self.working_days):
            raise ConfigurationError("Working days must not repeat", details={"working_days": list(self.working_days)})
        if not self.time_slots:
            raise ConfigurationError("At least one teaching time slot must be configured")
        if len(set(self.time_slots)) != len(self.time_slots):
            raise ConfigurationError("Time slots must not repeat", details={"time_slots": list(self.time_slots)})
        malformed = [slot for slot in (*self.time_slots, self.lunch_slot) if not SLOT_PATTERN.match(slot)]
        if malformed:
            raise ConfigurationError(
                f"Time slot(s) must be in HH:MM-HH:MM format: {', '.join(malformed)}",
                details={"time_slots": list(self.time_slots), "lunch_slot": self.lunch_slot},
            )
        if self.lunch_slot in self.time_slots:
            raise ConfigurationError(
                f"Lunch slot {self.lunch_slot} cannot also be a teaching slot",
                details={"time_slots": list(self.time_slots), "lunch_slot": self.lunch_slot},
            )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "Calendar":
        settings = settings or get_settings()
        return cls(
            working_days=tuple(settings.effective_working_days),
            time_slots=tuple(settings.time_slots),
            lunch_slot=settings.lunch_slot,
        )

    def cells(self) -> list[tuple[str, str]]:
        return [(day, slot) for day in self.working_days for slot in self.time_slots]

    def full_day_name(self, day: str) -> str:
        return DAY_SHORT_MAP.get(day, day)
