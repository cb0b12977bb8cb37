"""
PerformanceReview model — periodic ratings written by a reviewer.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (Column, Date, DateTime, ForeignKey, Integer,
                        SmallInteger, Text)
from sqlalchemy.orm import relationship

from ems.db.base import Base


class PerformanceReview(Base):
    __tablename__ = "performance_reviews"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(  # type: ignore[assignment]
        Integer,
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reviewer_id: int | None = Column(  # type: ignore[assignment]
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    review_date: date = Column(Date, nullable=False, index=True)  # type: ignore[assignment]
    review_period_start: date = Column(Date, nullable=False)  # type: ignore[assignment]
    review_period_end: date = Column(Date, nullable=False)  # type: ignore[assignment]
    rating: int = Column(SmallInteger, nullable=False)  # type: ignore[assignment]
    # 1 (poor) .. 5 (outstanding)
    strengths: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    areas_for_improvement: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    goals: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    comments: str | None = Column(Text, nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    employee = relationship("Employee", back_populates="performance_reviews")
