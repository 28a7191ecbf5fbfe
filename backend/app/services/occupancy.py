from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from app.core.exceptions import OccupancyConflictError


class ResourceKind(str, Enum):
    faculty = "faculty"
    room = "room"


@dataclass(frozen=True)
class OccupancyKey:
    identity: str
    day: str
    slot: str


class OccupancyTracker:
    """Claimed (identity, day, slot) cells for one generation run."""

    def __init__(self) -> None:
        self._claimed: dict[ResourceKind, set[OccupancyKey]] = {kind: set() for kind in ResourceKind}

    def is_free(self, kind: ResourceKind, key: OccupancyKey) -> bool:
        return key not in self._claimed[kind]

    def claim(self, kind: ResourceKind, key: OccupancyKey) -> None:
        claimed = self._claimed[kind]
        if key in claimed:
            raise OccupancyConflictError(
                f"{kind.value.capitalize()} {key.identity} is already booked on {key.day} {key.slot}",
                details={"kind": kind.value, "identity": key.identity, "day": key.day, "slot": key.slot},
            )
        claimed.add(key)

    def reserve(self, kind: ResourceKind, key: OccupancyKey) -> None:
        # Cells booked by an already committed schedule may legitimately repeat.
        self._claimed[kind].add(key)

    def claimed_count(self, kind: ResourceKind) -> int:
        return len(self._claimed[kind])
