from __future__ import annotations

import re
from datetime import datetime, time

from pydantic import BaseModel, EmailStr, Field, field_serializer, field_validator

from app.models.slot_assignment import DayOfWeek, SlotAssignmentStatus
from app.schemas.alteration import AlterationOut
from app.schemas.notification import NotificationOut

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")


def parse_clock_time(value: str | time) -> time:
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    text = str(value).strip()
    if not TIME_PATTERN.match(text):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = text.split(":")[:2]
    return time(int(hours), int(minutes))


class SlotAssignmentCreate(BaseModel):
    timetable_id: str = Field(max_length=36)
    class_id: str = Field(max_length=36)
    subject_code: str = Field(max_length=20)
    subject_name: str = Field(max_length=255)
    faculty_id: str = Field(max_length=36)
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    room_number: str = Field(max_length=50)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def validate_clock_time(cls, value: str | time) -> time:
        return parse_clock_time(value)


class SlotAssignmentReassign(BaseModel):
    faculty_id: str = Field(min_length=1, max_length=36)
    reason: str | None = Field(default=None, max_length=1000)


class SlotAssignmentOut(BaseModel):
    id: str
    timetable_id: str
    class_id: str
    subject_code: str
    subject_name: str
    faculty_id: str
    assigned_by: str
    day_of_week: DayOfWeek
    start_time: time
    end_time: time
    room_number: str
    year: str
    status: SlotAssignmentStatus
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @field_serializer("start_time", "end_time")
    def serialize_clock_time(self, value: time) -> str:
        return value.strftime("%H:%M")


class ReassignmentOut(BaseModel):
    assignment: SlotAssignmentOut
    notification: NotificationOut
    alteration: AlterationOut | None = None


class AvailableFacultyOut(BaseModel):
    id: str
    name: str
    email: EmailStr
    designation: str

    model_config = {"from_attributes": True}
