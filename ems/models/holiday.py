"""
Holiday model — company holiday calendar.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import Column, Date, DateTime, Integer, String

from ems.db.base import Base


class Holiday(Base):
    __tablename__ = "holidays"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(150), nullable=False)  # type: ignore[assignment]
    holiday_date: date = Column(Date, unique=True, nullable=False, index=True)  # type: ignore[assignment]
    description: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
