"""Pydantic schemas for the holiday calendar."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, field_validator


class HolidayCreate(BaseModel):
    name: str
    holiday_date: date
    description: str | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be empty")
        return v


class HolidayRead(BaseModel):
    id: int
    name: str
    holiday_date: date
    description: str | None

    model_config = {"from_attributes": True}
