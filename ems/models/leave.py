"""
LeaveRequest model — submit → approve / reject workflow.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (Column, Date, DateTime, ForeignKey, Index, Integer,
                        String, Text)
from sqlalchemy.orm import relationship

from ems.db.base import Base


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (Index("ix_leave_employee_status", "employee_id", "status"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(  # type: ignore[assignment]
        Integer,
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    leave_type: str = Column(String(30), nullable=False)  # type: ignore[assignment]
    # annual | sick | personal | maternity | paternity | unpaid
    start_date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    end_date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    reason: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    status: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="pending",
        server_default="pending",
    )  # pending | approved | rejected
    approved_by: int | None = Column(  # type: ignore[assignment]
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    approval_date: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    comments: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )

    employee = relationship("Employee", back_populates="leave_requests")

    @property
    def days(self) -> int:
        """Inclusive calendar-day count."""
        return (self.end_date - self.start_date).days + 1
