class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

class SchedulerError(AppError):
    """Raised when the scheduler encounters a logical error or invalid state."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, details=details)

class MissingDataError(SchedulerError):
    """Raised when a roster needed for generation is empty."""
    def __init__(self, roster: str, *, courses: int, faculty: int, rooms: int):
        super().__init__(
            f"No {roster} available for timetable generation "
            f"(courses={courses}, faculty={faculty}, rooms={rooms})",
            details={"roster": roster, "courses": courses, "faculty": faculty, "rooms": rooms},
        )
        self.roster = roster

class PlacementError(SchedulerError):
    """Raised in strict mode when no conflict-free cell exists for a session."""

class OccupancyConflictError(SchedulerError):
    """Raised when an occupancy key is claimed twice within one run."""

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            details={"resource_type": resource_type, "resource_id": resource_id},
        )

class ConfigurationError(AppError):
    """Raised when system configuration is invalid."""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, details=details)
