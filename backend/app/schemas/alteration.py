from datetime import datetime

from pydantic import BaseModel

from app.models.alteration import AlterationStatus


class AlterationOut(BaseModel):
    id: str
    department_id: str
    timetable_id: str
    slot_assignment_id: str | None = None
    old_faculty_id: str
    new_faculty_id: str | None = None
    reason: str
    status: AlterationStatus
    requested_by: str
    approved_by: str | None = None
    approved_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
