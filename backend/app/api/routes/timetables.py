from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_incharge
from app.schemas.slot_assignment import SlotAssignmentOut
from app.schemas.timetable import TimetableCreate, TimetableOut, TimetableUpdate
from app.services import slot_assignments, timetables
from app.services.identity import CallerIdentity

router = APIRouter()


@router.post("", response_model=TimetableOut, status_code=status.HTTP_201_CREATED)
def create_timetable(
    payload: TimetableCreate,
    caller: CallerIdentity = Depends(require_incharge),
    db: Session = Depends(get_db),
) -> TimetableOut:
    return timetables.create_timetable(db, caller, payload)


@router.get("", response_model=list[TimetableOut])
def list_timetables(
    year: str | None = Query(default=None, max_length=20),
    caller: CallerIdentity = Depends(require_incharge),
    db: Session = Depends(get_db),
) -> list[TimetableOut]:
    return timetables.list_timetables(db, caller, year=year)


@router.get("/{timetable_id}", response_model=TimetableOut)
def get_timetable(
    timetable_id: str,
    caller: CallerIdentity = Depends(require_incharge),
    db: Session = Depends(get_db),
) -> TimetableOut:
    return timetables.get_department_timetable(db, caller, timetable_id)


@router.patch("/{timetable_id}", response_model=TimetableOut)
def update_timetable(
    timetable_id: str,
    payload: TimetableUpdate,
    caller: CallerIdentity = Depends(require_incharge),
    db: Session = Depends(get_db),
) -> TimetableOut:
    return timetables.update_timetable(db, caller, timetable_id, payload)


@router.post("/{timetable_id}/publish", response_model=TimetableOut)
def publish_timetable(
    timetable_id: str,
    caller: CallerIdentity = Depends(require_incharge),
    db: Session = Depends(get_db),
) -> TimetableOut:
    return timetables.publish_timetable(db, caller, timetable_id)


@router.get("/{timetable_id}/assignments", response_model=list[SlotAssignmentOut])
def list_timetable_assignments(
    timetable_id: str,
    caller: CallerIdentity = Depends(require_incharge),
    db: Session = Depends(get_db),
) -> list[SlotAssignmentOut]:
    return slot_assignments.list_assignments(db, caller, timetable_id)
