"""
Department, Employee & Attendance models — core business domain.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from decimal import Decimal

from sqlalchemy import (Column, Date, DateTime, ForeignKey, Index, Integer,
                        Numeric, String, Text, Time, UniqueConstraint)
from sqlalchemy.orm import relationship

from ems.db.base import Base


class Department(Base):
    __tablename__ = "departments"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(100), unique=True, nullable=False)  # type: ignore[assignment]
    description: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    employees = relationship("Employee", back_populates="department")


class Employee(Base):
    __tablename__ = "employees"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(  # type: ignore[assignment]
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    employee_code: str = Column(String(20), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    first_name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    last_name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    phone: str | None = Column(String(30), nullable=True)  # type: ignore[assignment]
    address: str | None = Column(String(255), nullable=True)  # type: ignore[assignment]
    city: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    state: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    country: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    department_id: int | None = Column(  # type: ignore[assignment]
        Integer,
        ForeignKey("departments.id", ondelete="SET NULL"),
        nullable=True,
    )
    position: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    hire_date: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    employment_type: str = Column(String(20), nullable=False, default="full-time")  # type: ignore[assignment]
    salary: Decimal | None = Column(Numeric(12, 2), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    user = relationship("User", back_populates="employee")
    department = relationship("Department", back_populates="employees")
    attendances = relationship(
        "Attendance",
        back_populates="employee",
        cascade="all, delete-orphan",
    )
    leave_requests = relationship(
        "LeaveRequest",
        back_populates="employee",
        cascade="all, delete-orphan",
    )
    payroll_records = relationship(
        "PayrollRecord",
        back_populates="employee",
        cascade="all, delete-orphan",
    )
    performance_reviews = relationship(
        "PerformanceReview",
        back_populates="employee",
        cascade="all, delete-orphan",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="uq_attendance_emp_date"),
        Index("ix_attendance_employee_date", "employee_id", "date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(  # type: ignore[assignment]
        Integer,
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: date = Column("date", Date, nullable=False, index=True)  # type: ignore[assignment]
    clock_in: time | None = Column(Time, nullable=True)  # type: ignore[assignment]
    clock_out: time | None = Column(Time, nullable=True)  # type: ignore[assignment]
    status: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    # present | absent | late | half-day
    notes: str | None = Column(Text, nullable=True)  # type: ignore[assignment]

    employee = relationship("Employee", back_populates="attendances")
