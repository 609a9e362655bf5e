from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.models.activity_log import ActivityLog
from app.services.identity import CallerIdentity

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    *,
    actor: CallerIdentity | None,
    action: str,
    entity_type: str | None = None,
    entity_id: str | None = None,
    details: dict | None = None,
) -> ActivityLog:
    """Stage an activity entry in the caller's transaction; the caller commits."""
    record = ActivityLog(
        actor_faculty_id=actor.faculty_id if actor is not None else None,
        department_id=actor.department_id if actor is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details={key: value for key, value in (details or {}).items() if value is not None},
    )
    db.add(record)
    logger.debug("Recorded %s on %s %s", action, entity_type, entity_id)
    return record
