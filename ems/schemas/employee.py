"""Pydantic schemas for Departments and Employees."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, field_validator

from ems.schemas.user import UserCreate

_EMPLOYMENT_TYPES = {"full-time", "part-time", "contract", "intern"}


# ── Department ──────────────────────────────────────────────────────
class DepartmentCreate(BaseModel):
    name: str
    description: str | None = None

    @field_validator("name")
    @classmethod
    def _name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name must not be empty")
        if len(v) > 100:
            raise ValueError("Name must not exceed 100 characters")
        return v


class DepartmentUpdate(BaseModel):
    name: str | None = None
    description: str | None = None


class DepartmentRead(BaseModel):
    id: int
    name: str
    description: str | None
    employee_count: int = 0

    model_config = {"from_attributes": True}


# ── Employee ────────────────────────────────────────────────────────
class EmployeeCreate(BaseModel):
    """Creates the login account and the employee profile together."""

    account: UserCreate
    employee_code: str
    first_name: str
    last_name: str
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    department_id: int | None = None
    position: str | None = None
    hire_date: date | None = None
    employment_type: str = "full-time"
    salary: Decimal | None = None

    @field_validator("employee_code", "first_name", "last_name")
    @classmethod
    def _required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field must not be empty")
        return v

    @field_validator("employment_type")
    @classmethod
    def _employment_type(cls, v: str) -> str:
        if v not in _EMPLOYMENT_TYPES:
            raise ValueError(f"Employment type must be one of: {sorted(_EMPLOYMENT_TYPES)}")
        return v


class EmployeeUpdate(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    department_id: int | None = None
    position: str | None = None
    hire_date: date | None = None
    employment_type: str | None = None
    salary: Decimal | None = None

    @field_validator("employment_type")
    @classmethod
    def _employment_type(cls, v: str | None) -> str | None:
        if v is not None and v not in _EMPLOYMENT_TYPES:
            raise ValueError(f"Employment type must be one of: {sorted(_EMPLOYMENT_TYPES)}")
        return v


class EmployeeRead(BaseModel):
    """Directory entry — what every role with ``view_employees`` sees."""

    id: int
    user_id: int
    employee_code: str
    first_name: str
    last_name: str
    department_id: int | None
    department_name: str | None = None
    position: str | None
    email: str | None = None

    model_config = {"from_attributes": True}


class EmployeeDetail(EmployeeRead):
    """Full profile — requires ``view_employee_details``."""

    phone: str | None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    hire_date: date | None
    employment_type: str
    salary: Decimal | None
    role: str | None = None
    status: str | None = None
    created_at: datetime | None
