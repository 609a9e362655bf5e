from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_incharge
from app.core.exceptions import InvalidArgumentError
from app.models.slot_assignment import DayOfWeek
from app.schemas.alteration import AlterationOut
from app.schemas.notification import NotificationOut
from app.schemas.slot_assignment import (
    AvailableFacultyOut,
    ReassignmentOut,
    SlotAssignmentCreate,
    SlotAssignmentOut,
    SlotAssignmentReassign,
    parse_clock_time,
)
from app.services import slot_assignments
from app.services.identity import CallerIdentity

router = APIRouter()


def _query_time(value: str, field: str):
    try:
        return parse_clock_time(value)
    except ValueError as exc:
        raise InvalidArgumentError(str(exc), field=field) from exc


@router.get("/available-faculty", response_model=list[AvailableFacultyOut])
def list_available_faculty(
    day: DayOfWeek = Query(...),
    start_time: str = Query(...),
    end_time: str = Query(...),
    year: str = Query(..., min_length=1, max_length=20),
    caller: CallerIdentity = Depends(require_incharge),
    db: Session = Depends(get_db),
) -> list[AvailableFacultyOut]:
    return slot_assignments.available_faculty(
        db,
        caller,
        day=day,
        start_time=_query_time(start_time, "start_time"),
        end_time=_query_time(end_time, "end_time"),
        year=year,
    )


@router.post("", response_model=SlotAssignmentOut, status_code=status.HTTP_201_CREATED)
def propose_assignment(
    payload: SlotAssignmentCreate,
    caller: CallerIdentity = Depends(require_incharge),
    db: Session = Depends(get_db),
) -> SlotAssignmentOut:
    return slot_assignments.propose_assignment(db, caller, payload)


@router.put("/{assignment_id}/faculty", response_model=ReassignmentOut)
def reassign_assignment(
    assignment_id: str,
    payload: SlotAssignmentReassign,
    caller: CallerIdentity = Depends(require_incharge),
    db: Session = Depends(get_db),
) -> ReassignmentOut:
    assignment, notification, alteration = slot_assignments.reassign_assignment(
        db,
        caller,
        assignment_id,
        payload.faculty_id,
        payload.reason,
    )
    return ReassignmentOut(
        assignment=SlotAssignmentOut.model_validate(assignment),
        notification=NotificationOut.model_validate(notification),
        alteration=AlterationOut.model_validate(alteration) if alteration is not None else None,
    )


@router.delete("/{assignment_id}")
def remove_assignment(
    assignment_id: str,
    caller: CallerIdentity = Depends(require_incharge),
    db: Session = Depends(get_db),
) -> dict[str, str]:
    return {"deleted": slot_assignments.remove_assignment(db, caller, assignment_id)}
