from datetime import time

import pytest
from sqlalchemy.exc import IntegrityError

from app.models.slot_assignment import DayOfWeek, SlotAssignment, SlotAssignmentStatus
from app.services.conflict_service import (
    ConflictKind,
    check_conflicts,
    conflict_error,
    conflict_kind_from_integrity_error,
)


def _booking(**overrides) -> SlotAssignment:
    values = {
        "timetable_id": "tt-cse-2",
        "class_id": "cls-cse-2a",
        "subject_code": "CS201",
        "subject_name": "Data Structures",
        "faculty_id": "fac-alice",
        "assigned_by": "fac-incharge",
        "day_of_week": DayOfWeek.Monday,
        "start_time": time(9, 0),
        "end_time": time(10, 0),
        "room_number": "R101",
        "year": "2nd",
        "status": SlotAssignmentStatus.pending_approval,
    }
    values.update(overrides)
    return SlotAssignment(**values)


def _probe(**overrides) -> dict:
    values = {
        "timetable_id": "tt-cse-2",
        "class_id": "cls-cse-2b",
        "subject_code": "CS999",
        "faculty_id": "fac-bob",
        "day": DayOfWeek.Tuesday,
        "start_time": time(9, 0),
        "end_time": time(10, 0),
        "room_number": "R999",
        "year": "2nd",
    }
    values.update(overrides)
    return values


@pytest.fixture
def booked(db):
    record = _booking()
    db.add(record)
    db.commit()
    return record


def test_no_conflict_on_empty_timetable(db):
    assert check_conflicts(db, **_probe()) is None


def test_duplicate_subject_assignment_detected(db, booked):
    kind = check_conflicts(
        db,
        **_probe(class_id="cls-cse-2a", subject_code="CS201", faculty_id="fac-alice", day=DayOfWeek.Friday),
    )
    assert kind is ConflictKind.duplicate_assignment


def test_faculty_double_booking_detected(db, booked):
    kind = check_conflicts(db, **_probe(faculty_id="fac-alice", day=DayOfWeek.Monday))
    assert kind is ConflictKind.faculty_time_conflict


def test_faculty_clash_is_scoped_to_year(db, booked):
    assert check_conflicts(db, **_probe(faculty_id="fac-alice", day=DayOfWeek.Monday, year="3rd")) is None


def test_room_double_booking_detected(db, booked):
    kind = check_conflicts(db, **_probe(class_id="cls-cse-2a", day=DayOfWeek.Monday, room_number="R101"))
    assert kind is ConflictKind.room_conflict


def test_partial_overlap_is_not_a_conflict(db, booked):
    kind = check_conflicts(
        db,
        **_probe(
            faculty_id="fac-alice",
            class_id="cls-cse-2a",
            room_number="R101",
            day=DayOfWeek.Monday,
            start_time=time(9, 30),
            end_time=time(10, 30),
        ),
    )
    assert kind is None


def test_inactive_assignments_do_not_block(db):
    db.add(_booking(status=SlotAssignmentStatus.inactive))
    db.commit()

    kind = check_conflicts(
        db,
        **_probe(class_id="cls-cse-2a", subject_code="CS201", faculty_id="fac-alice", day=DayOfWeek.Monday, room_number="R101"),
    )
    assert kind is None


def test_duplicate_reported_before_faculty_and_room(db, booked):
    kind = check_conflicts(
        db,
        **_probe(
            class_id="cls-cse-2a",
            subject_code="CS201",
            faculty_id="fac-alice",
            day=DayOfWeek.Monday,
            room_number="R101",
        ),
    )
    assert kind is ConflictKind.duplicate_assignment


def test_excluded_assignment_and_kind_filter(db, booked):
    probe = _probe(class_id="cls-cse-2a", faculty_id="fac-alice", day=DayOfWeek.Monday, room_number="R101")

    assert check_conflicts(db, exclude_assignment_id=booked.id, **probe) is None
    assert (
        check_conflicts(db, kinds=(ConflictKind.duplicate_assignment, ConflictKind.room_conflict), **probe)
        is ConflictKind.room_conflict
    )


def test_conflict_error_carries_kind_and_message():
    error = conflict_error(ConflictKind.room_conflict)
    assert error.status_code == 409
    assert error.kind == "room_conflict"
    assert error.details == {"error": "conflict", "kind": "room_conflict"}
    assert error.message == "Room is already booked for this time slot"


def test_integrity_error_mapped_from_postgres_index_name():
    exc = IntegrityError(
        "INSERT INTO timetable_slot_assignments ...",
        {},
        Exception('duplicate key value violates unique constraint "uq_slot_assignment_faculty_time"'),
    )
    assert conflict_kind_from_integrity_error(exc) is ConflictKind.faculty_time_conflict


def test_integrity_error_mapped_from_sqlite_column_list():
    exc = IntegrityError(
        "INSERT INTO timetable_slot_assignments ...",
        {},
        Exception(
            "UNIQUE constraint failed: timetable_slot_assignments.class_id, "
            "timetable_slot_assignments.day_of_week, timetable_slot_assignments.start_time, "
            "timetable_slot_assignments.end_time, timetable_slot_assignments.room_number"
        ),
    )
    assert conflict_kind_from_integrity_error(exc) is ConflictKind.room_conflict


def test_unrelated_integrity_error_is_not_mapped():
    exc = IntegrityError("INSERT ...", {}, Exception("NOT NULL constraint failed: faculty.email"))
    assert conflict_kind_from_integrity_error(exc) is None
