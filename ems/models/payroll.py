"""
Payroll model — one pay record per employee and pay period.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (Column, Date, DateTime, ForeignKey, Index, Integer,
                        Numeric, String)
from sqlalchemy.orm import relationship

from ems.db.base import Base


class PayrollRecord(Base):
    __tablename__ = "payroll"
    __table_args__ = (Index("ix_payroll_employee_period", "employee_id", "pay_period_start"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(  # type: ignore[assignment]
        Integer,
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    pay_period_start: date = Column(Date, nullable=False)  # type: ignore[assignment]
    pay_period_end: date = Column(Date, nullable=False)  # type: ignore[assignment]
    basic_salary: Decimal = Column(Numeric(12, 2), nullable=False)  # type: ignore[assignment]
    bonuses: Decimal = Column(Numeric(12, 2), nullable=False, default=0)  # type: ignore[assignment]
    deductions: Decimal = Column(Numeric(12, 2), nullable=False, default=0)  # type: ignore[assignment]
    net_salary: Decimal = Column(Numeric(12, 2), nullable=False)  # type: ignore[assignment]
    payment_date: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    payment_status: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="pending",
        server_default="pending",
        index=True,
    )  # pending | paid
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    employee = relationship("Employee", back_populates="payroll_records")
