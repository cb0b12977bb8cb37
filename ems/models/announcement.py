"""
Announcement model — company notices with a priority, an audience and an
optional expiry date.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (Column, Date, DateTime, ForeignKey, Integer, String,
                        Text)

from ems.db.base import Base


class Announcement(Base):
    __tablename__ = "announcements"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    title: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    content: str = Column(Text, nullable=False)  # type: ignore[assignment]
    priority: str = Column(  # type: ignore[assignment]
        String(10),
        nullable=False,
        default="normal",
        server_default="normal",
    )  # normal | medium | high
    target_audience: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="all",
        server_default="all",
    )  # all | admin | employee
    expire_date: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    created_by: int | None = Column(  # type: ignore[assignment]
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
