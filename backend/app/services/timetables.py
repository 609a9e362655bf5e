from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, InvalidArgumentError, PendingApprovalsError, ResourceNotFoundError
from app.models.slot_assignment import SlotAssignment, SlotAssignmentStatus
from app.models.timetable import Timetable
from app.schemas.timetable import TimetableCreate, TimetableUpdate
from app.services.audit import log_activity
from app.services.identity import CallerIdentity

logger = logging.getLogger(__name__)

DUPLICATE_TIMETABLE = "duplicate_timetable"


def get_department_timetable(db: Session, caller: CallerIdentity, timetable_id: str) -> Timetable:
    timetable = db.get(Timetable, timetable_id)
    if timetable is None or timetable.department_id != caller.department_id:
        raise ResourceNotFoundError("Timetable", timetable_id)
    return timetable


def _duplicate_timetable_error(year: str) -> ConflictError:
    return ConflictError(DUPLICATE_TIMETABLE, f"Timetable already exists for year {year}")


def _year_taken(db: Session, department_id: str, year: str, *, exclude_id: str | None = None) -> bool:
    query = select(Timetable.id).where(Timetable.department_id == department_id, Timetable.year == year)
    if exclude_id:
        query = query.where(Timetable.id != exclude_id)
    return db.execute(query.limit(1)).first() is not None


def list_timetables(db: Session, caller: CallerIdentity, *, year: str | None = None) -> list[Timetable]:
    query = select(Timetable).where(Timetable.department_id == caller.department_id)
    if year:
        query = query.where(Timetable.year == year)
    return list(db.execute(query.order_by(Timetable.year)).scalars())


def create_timetable(db: Session, caller: CallerIdentity, payload: TimetableCreate) -> Timetable:
    if payload.session_start >= payload.session_end:
        raise InvalidArgumentError("session_start must be earlier than session_end", field="session_start")
    if _year_taken(db, caller.department_id, payload.year):
        raise _duplicate_timetable_error(payload.year)

    timetable = Timetable(
        department_id=caller.department_id,
        year=payload.year,
        session_start=payload.session_start,
        session_end=payload.session_end,
        is_published=False,
        created_by=caller.faculty_id,
    )
    try:
        db.add(timetable)
        db.flush()
        log_activity(
            db,
            actor=caller,
            action="timetable.created",
            entity_type="timetable",
            entity_id=timetable.id,
            details={"year": payload.year},
        )
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise _duplicate_timetable_error(payload.year) from exc
    db.refresh(timetable)
    logger.info("Created timetable %s for department %s year %s", timetable.id, caller.department_id, timetable.year)
    return timetable


def update_timetable(
    db: Session,
    caller: CallerIdentity,
    timetable_id: str,
    payload: TimetableUpdate,
) -> Timetable:
    timetable = get_department_timetable(db, caller, timetable_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        return timetable

    session_start = changes.get("session_start", timetable.session_start)
    session_end = changes.get("session_end", timetable.session_end)
    if session_start >= session_end:
        raise InvalidArgumentError("session_start must be earlier than session_end", field="session_start")
    year = changes.get("year")
    if year and _year_taken(db, timetable.department_id, year, exclude_id=timetable.id):
        raise _duplicate_timetable_error(year)

    for field, value in changes.items():
        setattr(timetable, field, value)
    log_activity(
        db,
        actor=caller,
        action="timetable.updated",
        entity_type="timetable",
        entity_id=timetable.id,
        details={key: str(value) for key, value in changes.items()},
    )
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise _duplicate_timetable_error(year or timetable.year) from exc
    db.refresh(timetable)
    return timetable


def count_pending_approvals(db: Session, timetable_id: str) -> int:
    return db.execute(
        select(func.count(SlotAssignment.id)).where(
            SlotAssignment.timetable_id == timetable_id,
            SlotAssignment.status == SlotAssignmentStatus.pending_approval,
        )
    ).scalar_one()


def publish_timetable(db: Session, caller: CallerIdentity, timetable_id: str) -> Timetable:
    timetable = get_department_timetable(db, caller, timetable_id)
    pending = count_pending_approvals(db, timetable.id)
    if pending > 0:
        raise PendingApprovalsError(pending)

    if not timetable.is_published:
        timetable.is_published = True
        log_activity(
            db,
            actor=caller,
            action="timetable.published",
            entity_type="timetable",
            entity_id=timetable.id,
        )
        db.commit()
        db.refresh(timetable)
        logger.info("Published timetable %s", timetable.id)
    return timetable
