from app.models.activity_log import ActivityLog  # noqa: F401
from app.models.alteration import Alteration, AlterationStatus  # noqa: F401
from app.models.class_section import ClassSection  # noqa: F401
from app.models.faculty import Faculty  # noqa: F401
from app.models.notification import NotificationStatus, SlotNotification  # noqa: F401
from app.models.slot_assignment import (  # noqa: F401
    BOOKED_STATUSES,
    DayOfWeek,
    SlotAssignment,
    SlotAssignmentStatus,
)
from app.models.timetable import Timetable  # noqa: F401
