from datetime import date, datetime, time

from pydantic import BaseModel, Field, field_serializer

from app.models.notification import NotificationStatus
from app.models.slot_assignment import DayOfWeek, SlotAssignmentStatus


class NotificationTimetableOut(BaseModel):
    id: str
    year: str
    session_start: date
    session_end: date
    is_published: bool

    model_config = {"from_attributes": True}


class NotificationSlotOut(BaseModel):
    """When and where the requested slot runs."""

    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    room_number: str
    year: str
    status: SlotAssignmentStatus
    timetable: NotificationTimetableOut | None = None

    model_config = {"from_attributes": True}

    @field_serializer("start_time", "end_time")
    def serialize_clock_time(self, value: time) -> str:
        return value.strftime("%H:%M")


class NotificationOut(BaseModel):
    id: str
    slot_assignment_id: str
    faculty_id: str
    requested_by: str
    subject_code: str
    subject_name: str
    class_id: str
    status: NotificationStatus
    is_read: bool
    rejection_reason: str | None = None
    response_date: datetime | None = None
    created_at: datetime
    slot: NotificationSlotOut | None = None

    model_config = {"from_attributes": True}


class NotificationReject(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class NotificationResolutionOut(BaseModel):
    notification: NotificationOut
    assignment_id: str
    assignment_status: SlotAssignmentStatus


class NotificationSummaryOut(BaseModel):
    pending: int
    accepted: int
    rejected: int
    superseded: int
    unread: int
    total: int
