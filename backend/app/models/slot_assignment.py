import uuid
from datetime import datetime, time
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, ForeignKey, Index, String, Time, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.timetable import Timetable


class DayOfWeek(str, Enum):
    Monday = "Monday"
    Tuesday = "Tuesday"
    Wednesday = "Wednesday"
    Thursday = "Thursday"
    Friday = "Friday"
    Saturday = "Saturday"


class SlotAssignmentStatus(str, Enum):
    pending_approval = "pending_approval"
    active = "active"
    inactive = "inactive"


# Rows in these states hold their faculty, class and room booking.
BOOKED_STATUSES = (SlotAssignmentStatus.pending_approval, SlotAssignmentStatus.active)
_BOOKED_WHERE = text("status IN ('pending_approval', 'active')")

UQ_DUPLICATE_ASSIGNMENT = "uq_slot_assignment_duplicate"
UQ_FACULTY_TIME = "uq_slot_assignment_faculty_time"
UQ_ROOM_TIME = "uq_slot_assignment_room_time"


def _booked_unique_index(name: str, *columns: str) -> Index:
    return Index(
        name,
        *columns,
        unique=True,
        sqlite_where=_BOOKED_WHERE,
        postgresql_where=_BOOKED_WHERE,
    )


class SlotAssignment(Base):
    __tablename__ = "timetable_slot_assignments"
    __table_args__ = (
        _booked_unique_index(UQ_DUPLICATE_ASSIGNMENT, "timetable_id", "class_id", "subject_code", "faculty_id"),
        _booked_unique_index(UQ_FACULTY_TIME, "faculty_id", "day_of_week", "start_time", "end_time", "year"),
        _booked_unique_index(UQ_ROOM_TIME, "class_id", "day_of_week", "start_time", "end_time", "room_number"),
        Index("ix_slot_assignment_timetable_status", "timetable_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    timetable_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("timetables.id", ondelete="CASCADE"), nullable=False, index=True
    )
    class_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    subject_code: Mapped[str] = mapped_column(String(20), nullable=False)
    subject_name: Mapped[str] = mapped_column(String(255), nullable=False)
    faculty_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    assigned_by: Mapped[str] = mapped_column(String(36), nullable=False)
    day_of_week: Mapped[DayOfWeek] = mapped_column(SAEnum(DayOfWeek, name="day_of_week"), nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    room_number: Mapped[str] = mapped_column(String(50), nullable=False)
    year: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[SlotAssignmentStatus] = mapped_column(
        SAEnum(SlotAssignmentStatus, name="slot_assignment_status"),
        nullable=False,
        default=SlotAssignmentStatus.pending_approval,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    timetable: Mapped[Timetable | None] = relationship(viewonly=True, lazy="joined")
