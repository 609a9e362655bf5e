from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Connection, Engine

from app.core.config import get_settings
from app.db.base import Base
from app.db.session import engine
from app.models.slot_assignment import SlotAssignment, UQ_DUPLICATE_ASSIGNMENT, UQ_FACULTY_TIME, UQ_ROOM_TIME

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "faculty": {"id", "department_id", "is_timetable_incharge", "is_coordinator", "is_active"},
    "classes": {"id", "department_id", "year"},
    "timetables": {"id", "department_id", "year", "is_published"},
    "timetable_slot_assignments": {
        "id",
        "timetable_id",
        "class_id",
        "subject_code",
        "faculty_id",
        "day_of_week",
        "start_time",
        "end_time",
        "room_number",
        "year",
        "status",
    },
    "timetable_notifications": {"id", "slot_assignment_id", "faculty_id", "status", "is_read"},
    "timetable_alterations": {"id", "department_id", "timetable_id", "old_faculty_id", "status"},
    "activity_logs": {"id", "action", "details"},
}

# Partial unique indexes backing the double-booking guards.
REQUIRED_INDEXES: dict[str, set[str]] = {
    "timetable_slot_assignments": {UQ_DUPLICATE_ASSIGNMENT, UQ_FACULTY_TIME, UQ_ROOM_TIME},
}


def _ensure_slot_assignment_unique_indexes(bind: Engine) -> None:
    """Add the booking indexes to slot tables created before they existed."""
    with bind.begin() as connection:
        inspector = inspect(connection)
        if SlotAssignment.__tablename__ not in set(inspector.get_table_names()):
            return
        existing = {item["name"] for item in inspector.get_indexes(SlotAssignment.__tablename__)}
        for index in SlotAssignment.__table__.indexes:
            if index.name in REQUIRED_INDEXES[SlotAssignment.__tablename__] and index.name not in existing:
                logger.info("Creating missing index %s", index.name)
                index.create(bind=connection)


def find_schema_gaps(connection: Connection) -> dict:
    """Report required tables, columns and booking indexes absent from the database."""
    inspector = inspect(connection)
    table_names = set(inspector.get_table_names())
    gaps: dict = {"missing_tables": [], "missing_columns": {}, "missing_indexes": []}
    for table_name, required in REQUIRED_COLUMNS.items():
        if table_name not in table_names:
            gaps["missing_tables"].append(table_name)
            continue
        existing = {item["name"] for item in inspector.get_columns(table_name)}
        missing = sorted(required - existing)
        if missing:
            gaps["missing_columns"][table_name] = missing
    for table_name, required in REQUIRED_INDEXES.items():
        if table_name not in table_names:
            continue
        existing = {item["name"] for item in inspector.get_indexes(table_name)}
        gaps["missing_indexes"].extend(sorted(required - existing))
    return gaps


def _assert_required_columns(bind: Engine) -> None:
    with bind.begin() as connection:
        gaps = find_schema_gaps(connection)
    if gaps["missing_tables"]:
        raise RuntimeError(f"Missing required tables: {', '.join(sorted(gaps['missing_tables']))}")
    if gaps["missing_columns"]:
        missing_columns = [
            f"{table_name}.{column_name}"
            for table_name, columns in gaps["missing_columns"].items()
            for column_name in columns
        ]
        raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")
    if gaps["missing_indexes"]:
        raise RuntimeError(f"Missing required indexes: {', '.join(gaps['missing_indexes'])}")


def ensure_runtime_schema_compatibility(bind: Engine | None = None) -> None:
    bind = bind or engine
    try:
        if get_settings().auto_create_schema:
            # Ensure missing tables are present before additive compatibility patches.
            Base.metadata.create_all(bind=bind)
            _ensure_slot_assignment_unique_indexes(bind)
        _assert_required_columns(bind)
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
