"""Pydantic schemas for daily attendance."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, field_validator, model_validator

VALID_ATTENDANCE_STATUSES = {"present", "absent", "late", "half-day"}


class AttendanceMark(BaseModel):
    employee_id: int
    date: dt.date
    clock_in: dt.time | None = None
    clock_out: dt.time | None = None
    status: str
    notes: str | None = None

    @field_validator("status")
    @classmethod
    def _status(cls, v: str) -> str:
        if v not in VALID_ATTENDANCE_STATUSES:
            raise ValueError(f"Status must be one of: {sorted(VALID_ATTENDANCE_STATUSES)}")
        return v

    @model_validator(mode="after")
    def _times_ordered(self) -> "AttendanceMark":
        if self.clock_in and self.clock_out and self.clock_out < self.clock_in:
            raise ValueError("clock_out must not be earlier than clock_in")
        return self


class AttendanceRead(BaseModel):
    id: int
    employee_id: int
    employee_code: str | None = None
    name: str | None = None  # joined from employee table
    department_name: str | None = None
    date: dt.date
    clock_in: dt.time | None
    clock_out: dt.time | None
    status: str
    notes: str | None = None


class AttendanceDayResponse(BaseModel):
    date: dt.date
    is_holiday: bool = False
    counts: dict[str, int]
    records: list[AttendanceRead]
