from __future__ import annotations

from datetime import datetime, timezone
import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import ResourceNotFoundError
from app.models.alteration import Alteration, AlterationStatus
from app.models.slot_assignment import SlotAssignment
from app.models.timetable import Timetable
from app.services.identity import CallerIdentity

logger = logging.getLogger(__name__)


def record_reassignment_alteration(
    db: Session,
    *,
    assignment: SlotAssignment,
    department_id: str,
    old_faculty_id: str,
    new_faculty_id: str,
    reason: str,
    approver: CallerIdentity,
) -> Alteration:
    """Stage an approved alteration in the caller's transaction."""
    now = datetime.now(timezone.utc)
    record = Alteration(
        department_id=department_id,
        timetable_id=assignment.timetable_id,
        slot_assignment_id=assignment.id,
        old_faculty_id=old_faculty_id,
        new_faculty_id=new_faculty_id,
        reason=f"Faculty reassigned: {reason}",
        status=AlterationStatus.approved,
        requested_by=approver.faculty_id,
        approved_by=approver.faculty_id,
        approved_at=now,
    )
    db.add(record)
    return record


def record_rejection_alteration(
    db: Session,
    *,
    assignment_id: str,
    timetable_id: str,
    faculty_id: str,
    reason: str | None,
) -> Alteration | None:
    """Write the audit record for a rejected proposal in its own transaction.

    Runs after the rejection itself has been committed. A failure here is
    logged and swallowed; the rejection stands either way.
    """
    try:
        timetable = db.get(Timetable, timetable_id)
        record = Alteration(
            department_id=timetable.department_id if timetable is not None else None,
            timetable_id=timetable_id,
            slot_assignment_id=assignment_id,
            old_faculty_id=faculty_id,
            new_faculty_id=None,
            reason=f"Faculty rejected assignment: {reason or 'No reason provided'}",
            status=AlterationStatus.rejected,
            requested_by=faculty_id,
        )
        db.add(record)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning(
            "Could not create alteration record for rejected assignment %s",
            assignment_id,
            exc_info=True,
        )
        return None
    return record


def list_alterations(
    db: Session,
    caller: CallerIdentity,
    *,
    timetable_id: str | None = None,
    status: AlterationStatus | None = None,
) -> list[Alteration]:
    query = select(Alteration).where(Alteration.department_id == caller.department_id)
    if timetable_id:
        query = query.where(Alteration.timetable_id == timetable_id)
    if status is not None:
        query = query.where(Alteration.status == status)
    return list(db.execute(query.order_by(Alteration.created_at.desc())).scalars())


def get_alteration(db: Session, caller: CallerIdentity, alteration_id: str) -> Alteration:
    record = db.get(Alteration, alteration_id)
    if record is None or record.department_id != caller.department_id:
        raise ResourceNotFoundError("Alteration", alteration_id)
    return record
