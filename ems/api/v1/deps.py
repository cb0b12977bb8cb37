"""
FastAPI dependencies — database session and auth guards.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ems.core import session_store
from ems.core.config import settings
from ems.core.exceptions import CSRFError
from ems.core.guard import AuthContext
from ems.core.permissions import Permission
from ems.core.security import csrf_tokens_match
from ems.core.session_store import CurrentUser
from ems.db.session import async_session_factory

_SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Auth dependencies ───────────────────────────────────────────────
async def get_auth_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    """Build the request's AuthContext from the session cookie (never from params)."""
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    return AuthContext(await session_store.load(db, token))


async def login_required(
    ctx: AuthContext = Depends(get_auth_context),
) -> CurrentUser:
    """Redirect anonymous requests to the login page."""
    return ctx.require_login()


def permission_required(
    *permissions: Permission,
) -> Callable[..., Awaitable[CurrentUser]]:
    """Dependency factory: the session must hold every listed permission."""

    async def _guard(ctx: AuthContext = Depends(get_auth_context)) -> CurrentUser:
        user = ctx.require_login()
        for permission in permissions:
            ctx.require_permission(permission)
        return user

    return _guard


async def csrf_protected(
    request: Request,
    user: CurrentUser = Depends(login_required),
) -> CurrentUser:
    """Unsafe methods must echo the session's CSRF token in ``X-CSRF-Token``."""
    if request.method not in _SAFE_METHODS and not csrf_tokens_match(
        user.csrf_token, request.headers.get("x-csrf-token")
    ):
        raise CSRFError()
    return user
