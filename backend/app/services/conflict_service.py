from __future__ import annotations

from datetime import time
from enum import Enum
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import SlotConflictError
from app.models.slot_assignment import (
    BOOKED_STATUSES,
    UQ_DUPLICATE_ASSIGNMENT,
    UQ_FACULTY_TIME,
    UQ_ROOM_TIME,
    DayOfWeek,
    SlotAssignment,
)


class ConflictKind(str, Enum):
    duplicate_assignment = "duplicate_assignment"
    faculty_time_conflict = "faculty_time_conflict"
    room_conflict = "room_conflict"


# Evaluation order matters: the first violated kind is the one reported.
ALL_CONFLICT_KINDS: tuple[ConflictKind, ...] = (
    ConflictKind.duplicate_assignment,
    ConflictKind.faculty_time_conflict,
    ConflictKind.room_conflict,
)

CONFLICT_MESSAGES = {
    ConflictKind.duplicate_assignment: "Faculty is already assigned to this subject for this class",
    ConflictKind.faculty_time_conflict: "Faculty has a time conflict with another class at this time slot",
    ConflictKind.room_conflict: "Room is already booked for this time slot",
}

_INDEX_KINDS = {
    UQ_DUPLICATE_ASSIGNMENT: ConflictKind.duplicate_assignment,
    UQ_FACULTY_TIME: ConflictKind.faculty_time_conflict,
    UQ_ROOM_TIME: ConflictKind.room_conflict,
}
_INDEX_COLUMNS = {
    frozenset(column.name for column in index.columns): _INDEX_KINDS[index.name]
    for index in SlotAssignment.__table__.indexes
    if index.name in _INDEX_KINDS
}


def _booked_exists(db: Session, *criteria, exclude_assignment_id: str | None) -> bool:
    query = select(SlotAssignment.id).where(SlotAssignment.status.in_(BOOKED_STATUSES), *criteria)
    if exclude_assignment_id:
        query = query.where(SlotAssignment.id != exclude_assignment_id)
    return db.execute(query.limit(1)).first() is not None


def check_conflicts(
    db: Session,
    *,
    timetable_id: str,
    class_id: str,
    subject_code: str,
    faculty_id: str,
    day: DayOfWeek,
    start_time: time,
    end_time: time,
    room_number: str,
    year: str,
    exclude_assignment_id: str | None = None,
    kinds: Iterable[ConflictKind] = ALL_CONFLICT_KINDS,
) -> ConflictKind | None:
    """Return the first invariant a new booking would violate, or ``None``.

    Time ranges only clash when day, start and end are identical; partially
    overlapping ranges are not reported.
    """
    requested = set(kinds)
    for kind in ALL_CONFLICT_KINDS:
        if kind not in requested:
            continue
        if kind is ConflictKind.duplicate_assignment:
            criteria = (
                SlotAssignment.timetable_id == timetable_id,
                SlotAssignment.class_id == class_id,
                SlotAssignment.subject_code == subject_code,
                SlotAssignment.faculty_id == faculty_id,
            )
        elif kind is ConflictKind.faculty_time_conflict:
            criteria = (
                SlotAssignment.faculty_id == faculty_id,
                SlotAssignment.day_of_week == day,
                SlotAssignment.start_time == start_time,
                SlotAssignment.end_time == end_time,
                SlotAssignment.year == year,
            )
        else:
            criteria = (
                SlotAssignment.class_id == class_id,
                SlotAssignment.day_of_week == day,
                SlotAssignment.start_time == start_time,
                SlotAssignment.end_time == end_time,
                SlotAssignment.room_number == room_number,
            )
        if _booked_exists(db, *criteria, exclude_assignment_id=exclude_assignment_id):
            return kind
    return None


def conflict_error(kind: ConflictKind) -> SlotConflictError:
    return SlotConflictError(kind.value, CONFLICT_MESSAGES[kind])


def conflict_kind_from_integrity_error(exc: IntegrityError) -> ConflictKind | None:
    # PostgreSQL names the violated index; SQLite only lists the columns.
    message = str(exc.orig)
    for index_name, kind in _INDEX_KINDS.items():
        if index_name in message:
            return kind
    _, marker, column_list = message.partition("UNIQUE constraint failed:")
    if not marker:
        return None
    columns = frozenset(item.strip().rsplit(".", 1)[-1] for item in column_list.split(","))
    return _INDEX_COLUMNS.get(columns)
