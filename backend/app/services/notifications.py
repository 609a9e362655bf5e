from __future__ import annotations

from datetime import datetime, timezone
import logging

from anyio import from_thread
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.core.exceptions import AlreadyResolvedError, ResourceNotFoundError
from app.models.notification import NotificationStatus, SlotNotification
from app.models.slot_assignment import SlotAssignment, SlotAssignmentStatus
from app.schemas.notification import NotificationSlotOut
from app.services.alterations import record_rejection_alteration
from app.services.audit import log_activity
from app.services.identity import CallerIdentity
from app.services.notification_hub import notification_hub

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _safe_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc).isoformat()
    return value.isoformat()


def notification_to_event_payload(notification: SlotNotification, *, event: str = "notification.created") -> dict:
    return {
        "event": event,
        "notification": {
            "id": notification.id,
            "slot_assignment_id": notification.slot_assignment_id,
            "faculty_id": notification.faculty_id,
            "requested_by": notification.requested_by,
            "subject_code": notification.subject_code,
            "subject_name": notification.subject_name,
            "class_id": notification.class_id,
            "status": notification.status.value,
            "is_read": notification.is_read,
            "response_date": _safe_iso(notification.response_date),
            "created_at": _safe_iso(notification.created_at) or _utc_now().isoformat(),
            "slot": _slot_summary(notification.slot),
        },
    }


def _slot_summary(assignment: SlotAssignment | None) -> dict | None:
    if assignment is None:
        return None
    return NotificationSlotOut.model_validate(assignment).model_dump(mode="json")


def publish_realtime_notification(notification: SlotNotification, *, event: str = "notification.created") -> None:
    payload = notification_to_event_payload(notification, event=event)
    try:
        from_thread.run(notification_hub.publish, notification.faculty_id, payload)
    except Exception:  # pragma: no cover - runtime environment dependent
        logger.debug("Unable to push realtime notification for faculty %s", notification.faculty_id, exc_info=True)


def create_slot_notification(
    db: Session,
    *,
    assignment: SlotAssignment,
    requested_by: str,
) -> SlotNotification:
    record = SlotNotification(
        slot_assignment_id=assignment.id,
        faculty_id=assignment.faculty_id,
        requested_by=requested_by,
        subject_code=assignment.subject_code,
        subject_name=assignment.subject_name,
        class_id=assignment.class_id,
        status=NotificationStatus.pending,
        is_read=False,
    )
    db.add(record)
    db.flush()
    return record


def supersede_pending_notifications(db: Session, *, assignment_id: str) -> list[str]:
    """Close every unanswered confirmation request of a slot that is being re-targeted.

    The pending check runs inside the UPDATE, so a request answered in the
    meantime keeps its answer. Returns the ids that were actually closed.
    """
    result = db.execute(
        update(SlotNotification)
        .where(
            SlotNotification.slot_assignment_id == assignment_id,
            SlotNotification.status == NotificationStatus.pending,
        )
        .values(status=NotificationStatus.superseded, response_date=_utc_now())
        .returning(SlotNotification.id)
        .execution_options(synchronize_session="fetch")
    )
    return list(result.scalars())


def _get_owned_notification(db: Session, caller: CallerIdentity, notification_id: str) -> SlotNotification:
    notification = db.get(SlotNotification, notification_id)
    if notification is None or notification.faculty_id != caller.faculty_id:
        raise ResourceNotFoundError("Notification", notification_id)
    return notification


def list_notifications(
    db: Session,
    caller: CallerIdentity,
    *,
    status: NotificationStatus | None = None,
    is_read: bool | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[SlotNotification]:
    query = (
        select(SlotNotification)
        .where(SlotNotification.faculty_id == caller.faculty_id)
        .order_by(SlotNotification.created_at.desc())
    )
    if status is not None:
        query = query.where(SlotNotification.status == status)
    if is_read is not None:
        query = query.where(SlotNotification.is_read == is_read)
    return list(db.execute(query.offset(offset).limit(limit)).scalars())


def get_notification(db: Session, caller: CallerIdentity, notification_id: str) -> SlotNotification:
    notification = _get_owned_notification(db, caller, notification_id)
    if not notification.is_read:
        notification.is_read = True
        db.commit()
        db.refresh(notification)
    return notification


def _respond(
    db: Session,
    caller: CallerIdentity,
    notification_id: str,
    *,
    decision: NotificationStatus,
    reason: str | None = None,
) -> tuple[SlotNotification, SlotAssignment]:
    notification = _get_owned_notification(db, caller, notification_id)
    if notification.status != NotificationStatus.pending:
        raise AlreadyResolvedError(notification.id, notification.status.value)

    assignment = db.get(SlotAssignment, notification.slot_assignment_id)
    if assignment is None:
        raise ResourceNotFoundError("SlotAssignment", notification.slot_assignment_id)

    values = {"status": decision, "is_read": True, "response_date": _utc_now()}
    if decision == NotificationStatus.rejected:
        values["rejection_reason"] = reason
    # Compare-and-set on the pending status so concurrent responses cannot both win.
    result = db.execute(
        update(SlotNotification)
        .where(
            SlotNotification.id == notification.id,
            SlotNotification.status == NotificationStatus.pending,
        )
        .values(**values)
    )
    if result.rowcount != 1:
        db.rollback()
        db.refresh(notification)
        raise AlreadyResolvedError(notification.id, notification.status.value)

    if decision == NotificationStatus.accepted:
        assignment.status = SlotAssignmentStatus.active
    else:
        assignment.status = SlotAssignmentStatus.inactive

    log_activity(
        db,
        actor=caller,
        action=f"slot_notification.{decision.value}",
        entity_type="slot_assignment",
        entity_id=assignment.id,
        details={"notification_id": notification.id, "reason": reason},
    )
    db.commit()
    db.refresh(notification)
    db.refresh(assignment)
    publish_realtime_notification(notification, event=f"notification.{decision.value}")
    return notification, assignment


def accept_notification(
    db: Session,
    caller: CallerIdentity,
    notification_id: str,
) -> tuple[SlotNotification, SlotAssignment]:
    notification, assignment = _respond(db, caller, notification_id, decision=NotificationStatus.accepted)
    logger.info("Faculty %s accepted slot assignment %s", caller.faculty_id, assignment.id)
    return notification, assignment


def reject_notification(
    db: Session,
    caller: CallerIdentity,
    notification_id: str,
    reason: str | None = None,
) -> tuple[SlotNotification, SlotAssignment]:
    reason = (reason or "").strip() or None
    notification, assignment = _respond(
        db,
        caller,
        notification_id,
        decision=NotificationStatus.rejected,
        reason=reason,
    )
    logger.info("Faculty %s rejected slot assignment %s", caller.faculty_id, assignment.id)
    record_rejection_alteration(
        db,
        assignment_id=assignment.id,
        timetable_id=assignment.timetable_id,
        faculty_id=caller.faculty_id,
        reason=reason,
    )
    return notification, assignment


def mark_read(db: Session, caller: CallerIdentity, notification_id: str) -> SlotNotification:
    notification = _get_owned_notification(db, caller, notification_id)
    if notification.is_read:
        return notification
    notification.is_read = True
    log_activity(
        db,
        actor=caller,
        action="slot_notification.read",
        entity_type="slot_notification",
        entity_id=notification.id,
    )
    db.commit()
    db.refresh(notification)
    publish_realtime_notification(notification, event="notification.read")
    return notification


def mark_all_read(db: Session, caller: CallerIdentity) -> int:
    notifications = list(
        db.execute(
            select(SlotNotification).where(
                SlotNotification.faculty_id == caller.faculty_id,
                SlotNotification.is_read.is_(False),
            )
        ).scalars()
    )
    for notification in notifications:
        notification.is_read = True

    if notifications:
        log_activity(
            db,
            actor=caller,
            action="slot_notification.read_all",
            entity_type="slot_notification",
            details={"count": len(notifications)},
        )
    db.commit()
    for notification in notifications:
        publish_realtime_notification(notification, event="notification.read")
    return len(notifications)


def unread_count(db: Session, caller: CallerIdentity) -> int:
    return db.execute(
        select(func.count(SlotNotification.id)).where(
            SlotNotification.faculty_id == caller.faculty_id,
            SlotNotification.is_read.is_(False),
        )
    ).scalar_one()


def notification_summary(db: Session, caller: CallerIdentity) -> dict[str, int]:
    rows = db.execute(
        select(SlotNotification.status, func.count(SlotNotification.id))
        .where(SlotNotification.faculty_id == caller.faculty_id)
        .group_by(SlotNotification.status)
    ).all()
    summary = {status.value: 0 for status in NotificationStatus}
    for status, count in rows:
        summary[status.value] = count
    summary["total"] = sum(summary.values())
    summary["unread"] = unread_count(db, caller)
    return summary
