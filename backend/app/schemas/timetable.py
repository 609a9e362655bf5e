from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

YEAR_VALUES = ("1st", "2nd", "3rd", "4th")


class TimetableCreate(BaseModel):
    year: str = Field(min_length=1, max_length=20)
    session_start: date
    session_end: date

    @field_validator("year")
    @classmethod
    def validate_year(cls, value: str) -> str:
        cleaned = value.strip()
        if cleaned not in YEAR_VALUES:
            raise ValueError(f"year must be one of: {', '.join(YEAR_VALUES)}")
        return cleaned


class TimetableUpdate(BaseModel):
    year: str | None = Field(default=None, min_length=1, max_length=20)
    session_start: date | None = None
    session_end: date | None = None

    model_config = {"extra": "forbid"}

    @field_validator("year")
    @classmethod
    def validate_year(cls, value: str | None) -> str | None:
        if value is None:
            return value
        cleaned = value.strip()
        if cleaned not in YEAR_VALUES:
            raise ValueError(f"year must be one of: {', '.join(YEAR_VALUES)}")
        return cleaned


class TimetableOut(BaseModel):
    id: str
    department_id: str
    year: str
    session_start: date
    session_end: date
    is_published: bool
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
