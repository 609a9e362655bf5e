from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_incharge
from app.models.alteration import AlterationStatus
from app.schemas.alteration import AlterationOut
from app.services import alterations
from app.services.identity import CallerIdentity

router = APIRouter()


@router.get("", response_model=list[AlterationOut])
def list_alterations(
    timetable_id: str | None = Query(default=None, max_length=36),
    status: AlterationStatus | None = Query(default=None),
    caller: CallerIdentity = Depends(require_incharge),
    db: Session = Depends(get_db),
) -> list[AlterationOut]:
    return alterations.list_alterations(db, caller, timetable_id=timetable_id, status=status)


@router.get("/{alteration_id}", response_model=AlterationOut)
def get_alteration(
    alteration_id: str,
    caller: CallerIdentity = Depends(require_incharge),
    db: Session = Depends(get_db),
) -> AlterationOut:
    return alterations.get_alteration(db, caller, alteration_id)
