from __future__ import annotations

from datetime import time
import logging

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import AuthorizationError, InvalidArgumentError, ResourceNotFoundError, SlotConflictError
from app.models.alteration import Alteration
from app.models.class_section import ClassSection
from app.models.faculty import Faculty
from app.models.notification import SlotNotification
from app.models.slot_assignment import BOOKED_STATUSES, DayOfWeek, SlotAssignment, SlotAssignmentStatus
from app.models.timetable import Timetable
from app.schemas.slot_assignment import SlotAssignmentCreate
from app.services.alterations import record_reassignment_alteration
from app.services.audit import log_activity
from app.services.conflict_service import (
    ConflictKind,
    check_conflicts,
    conflict_error,
    conflict_kind_from_integrity_error,
)
from app.services.identity import CallerIdentity
from app.services.notifications import (
    create_slot_notification,
    publish_realtime_notification,
    supersede_pending_notifications,
)
from app.services.timetables import get_department_timetable

logger = logging.getLogger(__name__)

DAY_ORDER = {day: index for index, day in enumerate(DayOfWeek)}
REASSIGNMENT_CONFLICT_KINDS = (ConflictKind.duplicate_assignment, ConflictKind.faculty_time_conflict)


def _require_text(value: str | None, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidArgumentError(f"{field} is required", field=field)
    return text


def _validate_time_range(start_time: time, end_time: time) -> None:
    if start_time >= end_time:
        raise InvalidArgumentError("start_time must be earlier than end_time", field="start_time")


def _get_department_class(db: Session, caller: CallerIdentity, class_id: str) -> ClassSection:
    record = db.get(ClassSection, class_id)
    if record is None or record.department_id != caller.department_id:
        raise ResourceNotFoundError("Class", class_id)
    return record


def _get_department_faculty(db: Session, caller: CallerIdentity, faculty_id: str) -> Faculty:
    record = db.get(Faculty, faculty_id)
    if record is None or not record.is_active or record.department_id != caller.department_id:
        raise ResourceNotFoundError("Faculty", faculty_id)
    return record


def _conflict_from_integrity_error(db: Session, exc: IntegrityError, *, recheck: dict) -> SlotConflictError:
    kind = conflict_kind_from_integrity_error(exc)
    if kind is None:
        # The driver did not name the index; the winning row is committed by now.
        kind = check_conflicts(db, **recheck) or ConflictKind.duplicate_assignment
    logger.info("Slot write lost a race on %s", kind.value)
    return conflict_error(kind)


def list_assignments(db: Session, caller: CallerIdentity, timetable_id: str) -> list[SlotAssignment]:
    get_department_timetable(db, caller, timetable_id)
    rows = list(
        db.execute(select(SlotAssignment).where(SlotAssignment.timetable_id == timetable_id)).scalars()
    )
    return sorted(rows, key=lambda item: (DAY_ORDER[item.day_of_week], item.start_time))


def available_faculty(
    db: Session,
    caller: CallerIdentity,
    *,
    day: DayOfWeek,
    start_time: time,
    end_time: time,
    year: str,
) -> list[Faculty]:
    """Active faculty of the caller's department who are free at the given slot."""
    _validate_time_range(start_time, end_time)
    busy = (
        select(SlotAssignment.faculty_id)
        .where(
            SlotAssignment.status.in_(BOOKED_STATUSES),
            SlotAssignment.day_of_week == day,
            SlotAssignment.start_time == start_time,
            SlotAssignment.end_time == end_time,
            SlotAssignment.year == year,
        )
    )
    query = (
        select(Faculty)
        .where(
            Faculty.department_id == caller.department_id,
            Faculty.is_active.is_(True),
            Faculty.id.not_in(busy),
        )
        .order_by(Faculty.name)
    )
    return list(db.execute(query).scalars())


def propose_assignment(db: Session, caller: CallerIdentity, payload: SlotAssignmentCreate) -> SlotAssignment:
    timetable = get_department_timetable(db, caller, payload.timetable_id)
    class_id = _require_text(payload.class_id, "class_id")
    subject_code = _require_text(payload.subject_code, "subject_code")
    subject_name = _require_text(payload.subject_name, "subject_name")
    faculty_id = _require_text(payload.faculty_id, "faculty_id")
    room_number = _require_text(payload.room_number, "room_number")
    _validate_time_range(payload.start_time, payload.end_time)

    _get_department_class(db, caller, class_id)
    _get_department_faculty(db, caller, faculty_id)

    slot = {
        "timetable_id": timetable.id,
        "class_id": class_id,
        "subject_code": subject_code,
        "faculty_id": faculty_id,
        "day": payload.day_of_week,
        "start_time": payload.start_time,
        "end_time": payload.end_time,
        "room_number": room_number,
        "year": timetable.year,
    }
    kind = check_conflicts(db, **slot)
    if kind is not None:
        raise conflict_error(kind)

    assignment = SlotAssignment(
        timetable_id=timetable.id,
        class_id=class_id,
        subject_code=subject_code,
        subject_name=subject_name,
        faculty_id=faculty_id,
        assigned_by=caller.faculty_id,
        day_of_week=payload.day_of_week,
        start_time=payload.start_time,
        end_time=payload.end_time,
        room_number=room_number,
        year=timetable.year,
        status=SlotAssignmentStatus.pending_approval,
    )
    try:
        db.add(assignment)
        db.flush()
        notification = create_slot_notification(db, assignment=assignment, requested_by=caller.faculty_id)
        log_activity(
            db,
            actor=caller,
            action="slot_assignment.proposed",
            entity_type="slot_assignment",
            entity_id=assignment.id,
            details={
                "timetable_id": timetable.id,
                "faculty_id": faculty_id,
                "day_of_week": payload.day_of_week.value,
                "start_time": payload.start_time.strftime("%H:%M"),
                "end_time": payload.end_time.strftime("%H:%M"),
            },
        )
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise _conflict_from_integrity_error(db, exc, recheck=slot) from exc

    db.refresh(assignment)
    db.refresh(notification)
    logger.info(
        "Proposed slot assignment %s for faculty %s in timetable %s",
        assignment.id,
        faculty_id,
        timetable.id,
    )
    publish_realtime_notification(notification)
    return assignment


def _get_authorized_assignment(db: Session, caller: CallerIdentity, assignment_id: str) -> tuple[SlotAssignment, Timetable]:
    assignment = db.get(SlotAssignment, assignment_id)
    if assignment is None:
        raise ResourceNotFoundError("SlotAssignment", assignment_id)
    timetable = db.get(Timetable, assignment.timetable_id)
    if timetable is None or timetable.department_id != caller.department_id:
        raise AuthorizationError("Not authorized to modify this assignment")
    return assignment, timetable


def remove_assignment(db: Session, caller: CallerIdentity, assignment_id: str) -> str:
    assignment, timetable = _get_authorized_assignment(db, caller, assignment_id)

    db.execute(delete(SlotNotification).where(SlotNotification.slot_assignment_id == assignment.id))
    db.delete(assignment)
    log_activity(
        db,
        actor=caller,
        action="slot_assignment.removed",
        entity_type="slot_assignment",
        entity_id=assignment_id,
        details={"timetable_id": timetable.id, "faculty_id": assignment.faculty_id},
    )
    db.commit()
    logger.info("Removed slot assignment %s from timetable %s", assignment_id, timetable.id)
    return assignment_id


def reassign_assignment(
    db: Session,
    caller: CallerIdentity,
    assignment_id: str,
    new_faculty_id: str,
    reason: str | None = None,
) -> tuple[SlotAssignment, SlotNotification, Alteration | None]:
    """Move a slot to another faculty member and restart the confirmation round.

    Unanswered requests sent to the previous faculty are superseded so they can
    no longer flip the slot's status. Only the subject and faculty-time
    invariants are re-checked here; the room booking does not change.
    """
    assignment, timetable = _get_authorized_assignment(db, caller, assignment_id)
    new_faculty_id = _require_text(new_faculty_id, "faculty_id")
    _get_department_faculty(db, caller, new_faculty_id)
    reason = (reason or "").strip() or None

    recheck = {
        "timetable_id": assignment.timetable_id,
        "class_id": assignment.class_id,
        "subject_code": assignment.subject_code,
        "faculty_id": new_faculty_id,
        "day": assignment.day_of_week,
        "start_time": assignment.start_time,
        "end_time": assignment.end_time,
        "room_number": assignment.room_number,
        "year": assignment.year,
        "exclude_assignment_id": assignment.id,
    }
    kind = check_conflicts(db, kinds=REASSIGNMENT_CONFLICT_KINDS, **recheck)
    if kind is not None:
        raise conflict_error(kind)

    old_faculty_id = assignment.faculty_id
    try:
        superseded_ids = supersede_pending_notifications(db, assignment_id=assignment.id)
        # Written unconditionally: an answer committed elsewhere may have moved the row past our copy.
        db.execute(
            update(SlotAssignment)
            .where(SlotAssignment.id == assignment.id)
            .values(faculty_id=new_faculty_id, status=SlotAssignmentStatus.pending_approval)
            .execution_options(synchronize_session="fetch")
        )
        notification = create_slot_notification(db, assignment=assignment, requested_by=caller.faculty_id)
        alteration = None
        if reason:
            alteration = record_reassignment_alteration(
                db,
                assignment=assignment,
                department_id=timetable.department_id,
                old_faculty_id=old_faculty_id,
                new_faculty_id=new_faculty_id,
                reason=reason,
                approver=caller,
            )
        log_activity(
            db,
            actor=caller,
            action="slot_assignment.reassigned",
            entity_type="slot_assignment",
            entity_id=assignment.id,
            details={
                "old_faculty_id": old_faculty_id,
                "new_faculty_id": new_faculty_id,
                "superseded_notifications": superseded_ids,
                "reason": reason,
            },
        )
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise _conflict_from_integrity_error(db, exc, recheck=recheck) from exc

    db.refresh(assignment)
    db.refresh(notification)
    if alteration is not None:
        db.refresh(alteration)
    logger.info(
        "Reassigned slot assignment %s from faculty %s to %s",
        assignment.id,
        old_faculty_id,
        new_faculty_id,
    )
    if superseded_ids:
        superseded = db.execute(select(SlotNotification).where(SlotNotification.id.in_(superseded_ids))).scalars()
        for item in superseded:
            publish_realtime_notification(item, event="notification.superseded")
    publish_realtime_notification(notification)
    return assignment, notification, alteration
