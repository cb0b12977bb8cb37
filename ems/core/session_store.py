"""
Server-side session store.

A session is created by a successful ``login`` and destroyed by ``logout``
or by expiring.  Its row holds a snapshot of the identity taken at login;
that snapshot (``CurrentUser``) is what the guard consults on every request.

Every failure path (unknown user, inactive account, wrong password,
unreachable or failing database) collapses into the same ``None`` result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ems.core.config import settings
from ems.core.security import (dummy_verify, hash_session_token,
                               new_csrf_token, new_session_token,
                               verify_password)
from ems.models.employee import Employee
from ems.models.user import User
from ems.models.user_session import UserSession

logger = logging.getLogger(__name__)

# Driver-level connection failures (refused, reset, timed out) surface as
# OSError subclasses rather than SQLAlchemyError.
STORE_ERRORS = (SQLAlchemyError, OSError)


@dataclass(frozen=True)
class CurrentUser:
    """Read-only identity snapshot of one authenticated session."""

    user_id: int
    username: str
    email: str
    role: str
    employee_id: int | None
    full_name: str
    csrf_token: str

    @classmethod
    def from_session(cls, row: UserSession) -> "CurrentUser":
        return cls(
            user_id=row.user_id,
            username=row.username,
            email=row.email,
            role=row.role,
            employee_id=row.employee_id,
            full_name=row.full_name or "User",
            csrf_token=row.csrf_token,
        )


def _ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


async def login(
    db: AsyncSession,
    username: str,
    password: str,
    *,
    replaces: str | None = None,
) -> tuple[str, CurrentUser] | None:
    """Check credentials and open a session.

    Returns ``(cookie_token, snapshot)`` on success, ``None`` otherwise.
    ``replaces`` is the cookie token of a session the browser already holds;
    it is discarded so only one session stays active per browser.
    """
    try:
        result = await db.execute(
            select(User, Employee)
            .outerjoin(Employee, Employee.user_id == User.id)
            .where(User.username == username, User.status == "active")
        )
        row = result.first()

        if row is None:
            dummy_verify()
            logger.info("Login failed for %r", username)
            return None

        user, employee = row
        if not verify_password(password, user.hashed_password):
            logger.info("Login failed for %r", username)
            return None

        if replaces:
            await db.execute(
                delete(UserSession).where(UserSession.id == hash_session_token(replaces))
            )

        now = datetime.now(timezone.utc)
        token = new_session_token()
        session_row = UserSession(
            id=hash_session_token(token),
            user_id=user.id,
            username=user.username,
            email=user.email,
            role=user.role,
            employee_id=employee.id if employee else None,
            full_name=employee.full_name if employee else None,
            csrf_token=new_csrf_token(),
            created_at=now,
            expires_at=now + timedelta(minutes=settings.SESSION_EXPIRE_MINUTES),
        )
        db.add(session_row)
        await db.execute(update(User).where(User.id == user.id).values(last_login=now))
        await db.commit()
    except STORE_ERRORS as exc:
        logger.warning("Login unavailable, identity store error: %s", exc)
        await db.rollback()
        return None

    logger.info("User %s logged in", user.username)
    return token, CurrentUser.from_session(session_row)


async def logout(db: AsyncSession, token: str | None) -> None:
    """Destroy the session behind *token*.  Unknown tokens are a no-op.

    A store failure is logged and not raised, so the caller can still clear
    the browser cookie; the orphaned row expires on its own.
    """
    if not token:
        return
    try:
        await db.execute(delete(UserSession).where(UserSession.id == hash_session_token(token)))
        await db.commit()
    except STORE_ERRORS as exc:
        logger.warning("Logout could not delete the session row: %s", exc)
        await db.rollback()


async def load(db: AsyncSession, token: str | None) -> CurrentUser | None:
    """Resolve a cookie token to its identity snapshot, or ``None``."""
    if not token:
        return None
    try:
        result = await db.execute(
            select(UserSession).where(UserSession.id == hash_session_token(token))
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None

        if _ensure_utc(row.expires_at) <= datetime.now(timezone.utc):
            await db.delete(row)
            await db.commit()
            logger.info("Session for %s expired", row.username)
            return None
    except STORE_ERRORS as exc:
        logger.warning("Session lookup failed, treating request as anonymous: %s", exc)
        await db.rollback()
        return None

    return CurrentUser.from_session(row)
