"""Pydantic schemas for payroll records."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

VALID_PAYMENT_STATUSES = {"pending", "paid"}


class PayrollCreate(BaseModel):
    employee_id: int
    pay_period_start: date
    pay_period_end: date
    basic_salary: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    bonuses: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    deductions: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)

    @model_validator(mode="after")
    def _period(self) -> "PayrollCreate":
        if self.pay_period_end < self.pay_period_start:
            raise ValueError("pay_period_end must not be before pay_period_start")
        return self

    @property
    def net_salary(self) -> Decimal:
        return self.basic_salary + self.bonuses - self.deductions


class PayrollStatusUpdate(BaseModel):
    payment_status: str

    @field_validator("payment_status")
    @classmethod
    def _status(cls, v: str) -> str:
        if v not in VALID_PAYMENT_STATUSES:
            raise ValueError(f"Payment status must be one of: {sorted(VALID_PAYMENT_STATUSES)}")
        return v


class PayrollRead(BaseModel):
    id: int
    employee_id: int
    employee_code: str | None = None
    name: str | None = None
    department_name: str | None = None
    pay_period_start: date
    pay_period_end: date
    basic_salary: Decimal
    bonuses: Decimal
    deductions: Decimal
    net_salary: Decimal
    payment_date: date | None
    payment_status: str
    created_at: datetime | None
