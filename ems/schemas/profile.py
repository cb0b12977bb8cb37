"""Pydantic schemas for the self-service profile page."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, field_validator, model_validator

from ems.schemas.user import PasswordReset


class ProfileRead(BaseModel):
    employee_id: int
    employee_code: str
    username: str
    email: str
    first_name: str
    last_name: str
    department_name: str | None = None
    position: str | None
    hire_date: date | None
    phone: str | None
    address: str | None
    city: str | None
    state: str | None
    country: str | None


class ProfileUpdate(BaseModel):
    """Contact details the owner may edit; everything else is HR's."""

    phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None

    @field_validator("phone", "address", "city", "state", "country")
    @classmethod
    def _blank_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class PasswordChange(PasswordReset):
    current_password: str
    confirm_password: str

    @model_validator(mode="after")
    def _confirmed(self) -> "PasswordChange":
        if self.new_password != self.confirm_password:
            raise ValueError("New passwords do not match")
        return self
