import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base


class AlterationStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class Alteration(Base):
    __tablename__ = "timetable_alterations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    department_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    timetable_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    slot_assignment_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    old_faculty_id: Mapped[str] = mapped_column(String(36), nullable=False)
    new_faculty_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[AlterationStatus] = mapped_column(
        SAEnum(AlterationStatus, name="alteration_status"),
        nullable=False,
        default=AlterationStatus.pending,
    )
    requested_by: Mapped[str] = mapped_column(String(36), nullable=False)
    approved_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
