"""
UserSession model — server-side session rows.

The primary key is the SHA-256 digest of the cookie token.  The identity
columns are a snapshot taken at login and are what the guard reads.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ems.db.base import Base


class UserSession(Base):
    __tablename__ = "user_sessions"

    id: str = Column(String(64), primary_key=True)  # type: ignore[assignment]
    user_id: int = Column(  # type: ignore[assignment]
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    username: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    email: str = Column(String(320), nullable=False)  # type: ignore[assignment]
    role: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    employee_id: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]
    full_name: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    csrf_token: str = Column(String(64), nullable=False)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at: datetime = Column(DateTime(timezone=True), nullable=False, index=True)  # type: ignore[assignment]

    user = relationship("User", back_populates="sessions")
