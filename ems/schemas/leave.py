"""Pydantic schemas for the leave request workflow."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, field_validator, model_validator

VALID_LEAVE_TYPES = {"annual", "sick", "personal", "maternity", "paternity", "unpaid"}


class LeaveRequestCreate(BaseModel):
    leave_type: str
    start_date: date
    end_date: date
    reason: str | None = None

    @field_validator("leave_type")
    @classmethod
    def _leave_type(cls, v: str) -> str:
        if v not in VALID_LEAVE_TYPES:
            raise ValueError(f"Leave type must be one of: {sorted(VALID_LEAVE_TYPES)}")
        return v

    @model_validator(mode="after")
    def _range(self) -> "LeaveRequestCreate":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class LeaveDecision(BaseModel):
    comments: str | None = None


class LeaveRequestRead(BaseModel):
    id: int
    employee_id: int
    employee_code: str | None = None
    name: str | None = None
    leave_type: str
    start_date: date
    end_date: date
    days: int
    reason: str | None
    status: str
    approved_by: int | None
    approved_by_name: str | None = None
    approval_date: datetime | None
    comments: str | None
    created_at: datetime | None


class LeaveListResponse(BaseModel):
    pending: int
    approved: int
    rejected: int
    requests: list[LeaveRequestRead]
