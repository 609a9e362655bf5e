"""Caller identity resolution for timetable operations.

Bearer tokens issued by the institution's auth service do not agree on how
they name the caller: older tokens carry ``faculty_id``/``department_id``,
newer ones ``sub`` and a nested ``department`` object. Everything here
collapses those shapes into one :class:`CallerIdentity` so the services
below never look at raw claims.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import AuthorizationError
from app.models.faculty import Faculty

logger = logging.getLogger(__name__)

FACULTY_ID_CLAIMS = ("faculty_id", "facultyId", "sub", "id")
DEPARTMENT_ID_CLAIMS = ("department_id", "departmentId")


@dataclass(frozen=True)
class CallerIdentity:
    faculty_id: str
    department_id: str


def _claim_text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


def _first_claim(claims: Mapping[str, Any], names: tuple[str, ...]) -> str | None:
    for name in names:
        value = _claim_text(claims.get(name))
        if value:
            return value
    return None


def normalize_claims(claims: Mapping[str, Any]) -> CallerIdentity:
    faculty_id = _first_claim(claims, FACULTY_ID_CLAIMS)
    department_id = _first_claim(claims, DEPARTMENT_ID_CLAIMS)
    if department_id is None:
        department = claims.get("department")
        if isinstance(department, Mapping):
            department_id = _claim_text(department.get("id"))
        else:
            department_id = _claim_text(department)

    if not faculty_id or not department_id:
        raise AuthorizationError("Caller identity is missing faculty or department")
    return CallerIdentity(faculty_id=faculty_id, department_id=department_id)


def _load_faculty(db: Session, identity: CallerIdentity) -> Faculty | None:
    return db.execute(
        select(Faculty).where(
            Faculty.id == identity.faculty_id,
            Faculty.department_id == identity.department_id,
            Faculty.is_active.is_(True),
        )
    ).scalar_one_or_none()


def resolve_faculty(db: Session, claims: Mapping[str, Any]) -> CallerIdentity:
    identity = normalize_claims(claims)
    if _load_faculty(db, identity) is None:
        raise AuthorizationError("Faculty profile not found for this department")
    return identity


def resolve_incharge(db: Session, claims: Mapping[str, Any]) -> CallerIdentity:
    identity = normalize_claims(claims)
    faculty = _load_faculty(db, identity)
    if faculty is None or not (faculty.is_timetable_incharge or faculty.is_coordinator):
        logger.info(
            "Rejected timetable incharge access for faculty %s in department %s",
            identity.faculty_id,
            identity.department_id,
        )
        raise AuthorizationError()
    return identity
