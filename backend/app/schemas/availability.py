from __future__ import annotations

import re
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, RootModel, field_validator, model_validator

DAY_SHORT_MAP = {
    "Mon": "Monday",
    "Tue": "Tuesday",
    "Wed": "Wednesday",
    "Thu": "Thursday",
    "Fri": "Friday",
    "Sat": "Saturday",
    "Sun": "Sunday",
}

SLOT_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d-([01]\d|2[0-3]):[0-5]\d$")


def normalize_day_name(value: str) -> str:
    """Map "mon", "Mon", "monday" or "Monday" to the full day name."""
    lowered = value.strip().lower()
    for short, full in DAY_SHORT_MAP.items():
        if lowered in (short.lower(), full.lower()):
            return full
    raise ValueError(f"Invalid day value: {value}")


def validate_slot(value: str) -> str:
    slot = value.strip()
    if not SLOT_PATTERN.match(slot):
        raise ValueError("Time slot must be in HH:MM-HH:MM 24-hour format")
    return slot


class SlotListAvailability(BaseModel):
    """Explicit list of permitted slots; list order is a placement priority."""

    kind: Literal["slots"] = "slots"
    slots: list[str] = Field(default_factory=list)

    @field_validator("slots")
    @classmethod
    def validate_slots(cls, value: list[str]) -> list[str]:
        return [validate_slot(item) for item in value]


class SlotFlagsAvailability(BaseModel):
    """Per-slot overrides; a slot is available unless explicitly ``False``."""

    kind: Literal["flags"] = "flags"
    flags: dict[str, bool] = Field(default_factory=dict)

    @field_validator("flags")
    @classmethod
    def validate_flag_keys(cls, value: dict[str, bool]) -> dict[str, bool]:
        return {validate_slot(key): flag for key, flag in value.items()}

    def is_blocked(self, slot: str) -> bool:
        return self.flags.get(slot) is False


DayAvailability = Annotated[
    Union[SlotListAvailability, SlotFlagsAvailability],
    Field(discriminator="kind"),
]


def _tag_entry(day: str, entry: object) -> object:
    if isinstance(entry, BaseModel):
        return entry
    if isinstance(entry, list):
        return {"kind": "slots", "slots": entry}
    if isinstance(entry, dict):
        if entry.get("kind") in {"slots", "flags"}:
            return entry
        return {"kind": "flags", "flags": entry}
    raise ValueError(f"Availability for {day} must be a list of slots or a slot-to-boolean map")


class FacultyAvailability(RootModel[dict[str, DayAvailability]]):
    """Availability keyed by full day name.

    Accepts the stored JSON shape (a plain list or a plain boolean map per day,
    keyed by any spelling of the day) and tags each entry so callers branch on
    ``kind`` instead of on the raw shape.
    """

    root: dict[str, DayAvailability] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def tag_raw_entries(cls, value: object) -> object:
        if value is None:
            return {}
        if isinstance(value, FacultyAvailability):
            return value.root
        if not isinstance(value, dict):
            raise ValueError("Availability must be a mapping of day name to slots")
        tagged: dict[str, object] = {}
        for raw_day, entry in value.items():
            day = normalize_day_name(str(raw_day))
            if day in tagged:
                raise ValueError(f"Duplicate availability entry for {day}")
            tagged[day] = _tag_entry(day, entry)
        return tagged

    def for_day(self, day_name: str) -> SlotListAvailability | SlotFlagsAvailability | None:
        return self.root.get(day_name)

    def to_storage(self) -> dict:
        stored: dict[str, list[str] | dict[str, bool]] = {}
        for day, entry in self.root.items():
            if isinstance(entry, SlotListAvailability):
                stored[day] = list(entry.slots)
            else:
                stored[day] = dict(entry.flags)
        return stored
