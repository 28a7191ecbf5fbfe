from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.availability import DAY_SHORT_MAP, validate_slot

SessionType = Literal["Theory", "Lab", "Extra"]
PlacementKind = Literal["structured", "fallback", "padding"]


class SessionRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    course_id: str | None = None
    course: str = Field(min_length=1, max_length=250)
    course_code: str = Field(min_length=1, max_length=50)
    faculty_id: str | None = None
    faculty: str = Field(min_length=1, max_length=200)
    room_id: str | None = None
    room: str = Field(min_length=1, max_length=100)
    day: str
    time: str
    semester: int = Field(ge=1)
    batch_id: str
    session_type: SessionType = "Theory"
    # fallback and padding records skip the occupancy check
    placement: PlacementKind = "structured"

    @field_validator("day")
    @classmethod
    def validate_day(cls, value: str) -> str:
        day = value.strip()
        if day not in DAY_SHORT_MAP:
            raise ValueError("Day must be an abbreviated day code such as Mon")
        return day

    @field_validator("time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        return validate_slot(value)


class ScheduleVersionOut(BaseModel):
    id: str
    label: str
    owner_id: str | None
    sessions: list[SessionRecord]
    summary: dict
    created_at: datetime

    model_config = {"from_attributes": True}


class GenerationResult(BaseModel):
    version: ScheduleVersionOut
    total_sessions: int
    fallback_sessions: int
    padding_sessions: int


class SyncReport(BaseModel):
    faculty_id: str
    schedule_found: bool
    version_id: str | None = None
    version_label: str | None = None
    conflicts: int
    conflicting_sessions: list[SessionRecord] = Field(default_factory=list)
    message: str
