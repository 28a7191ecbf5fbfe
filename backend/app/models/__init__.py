from app.models.course import Course  # noqa: F401
from app.models.faculty import Faculty  # noqa: F401
from app.models.room import Room  # noqa: F401
from app.models.schedule_version import ScheduleVersion  # noqa: F401
