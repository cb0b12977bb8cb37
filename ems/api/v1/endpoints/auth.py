"""
Auth endpoints — JSON login / logout and the session identity.

Browser form login lives in ``ems.api.pages``; both paths share the
session store, the cookie helpers and the rate limiter defined here.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from ems.api.v1.deps import get_auth_context, get_db, login_required
from ems.core import session_store
from ems.core.config import settings
from ems.core.guard import AuthContext
from ems.core.permissions import role_display_name
from ems.core.session_store import CurrentUser
from ems.schemas.auth import (CurrentUserRead, LoginRequest, LogoutResponse,
                              PermissionsRead)

# Login throttling, keyed by client IP
limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/auth", tags=["auth"])

INVALID_CREDENTIALS = "Invalid username or password"


# ── Cookie helpers ──────────────────────────────────────────────────
def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.COOKIE_SECURE,  # Set to True in HTTPS production
        samesite="lax",
        max_age=settings.SESSION_EXPIRE_MINUTES * 60,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        settings.SESSION_COOKIE_NAME,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )


def to_read(user: CurrentUser) -> CurrentUserRead:
    return CurrentUserRead(
        user_id=user.user_id,
        username=user.username,
        email=user.email,
        role=user.role,
        role_display=role_display_name(user.role),
        employee_id=user.employee_id,
        full_name=user.full_name,
        csrf_token=user.csrf_token,
    )


# ── Endpoints ───────────────────────────────────────────────────────
@router.post("/login", response_model=CurrentUserRead)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> CurrentUserRead:
    """Authenticate with username/password. Sets the HttpOnly session cookie."""
    if not body.username or not body.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please enter both username and password",
        )

    outcome = await session_store.login(
        db,
        body.username,
        body.password,
        replaces=request.cookies.get(settings.SESSION_COOKIE_NAME),
    )
    if outcome is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=INVALID_CREDENTIALS,
        )

    token, user = outcome
    set_session_cookie(response, token)
    return to_read(user)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> LogoutResponse:
    """Destroy the server-side session and clear the cookie."""
    await session_store.logout(db, request.cookies.get(settings.SESSION_COOKIE_NAME))
    clear_session_cookie(response)
    return LogoutResponse(message="Logged out")


@router.get("/me", response_model=CurrentUserRead)
async def read_current_user(
    user: CurrentUser = Depends(login_required),
) -> CurrentUserRead:
    """Return the identity snapshot of the current session."""
    return to_read(user)


@router.get("/permissions", response_model=PermissionsRead)
async def read_permissions(
    user: CurrentUser = Depends(login_required),
    ctx: AuthContext = Depends(get_auth_context),
) -> PermissionsRead:
    """Full permission map for the session role (drives UI affordances)."""
    return PermissionsRead(
        role=user.role,
        permissions={p.value: granted for p, granted in ctx.get_permissions().items()},
    )
