from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.db.bootstrap import find_schema_gaps
from app.db.session import engine

router = APIRouter()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/health/live")
def health_live() -> dict:
    return {"status": "ok", "timestamp": _now_iso()}


@router.get("/health/ready")
def health_ready() -> JSONResponse:
    """Ready once the database answers and the booking schema is complete."""
    gaps: dict = {"missing_tables": [], "missing_columns": {}, "missing_indexes": []}
    db_error: str | None = None
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
            gaps = find_schema_gaps(connection)
    except SQLAlchemyError as exc:  # pragma: no cover - environment dependent
        db_error = str(exc)

    schema_ok = not any(gaps.values())
    ready = db_error is None and schema_ok
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ok" if ready else "degraded",
            "timestamp": _now_iso(),
            "database": {"ok": db_error is None, "schema_ok": schema_ok, "error": db_error, **gaps},
        },
    )
