"""
Browser entry points — login form, logout and the dashboard.
"""

import html
from datetime import date

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ems.api.v1.deps import get_auth_context, get_db, login_required
from ems.api.v1.endpoints.auth import (INVALID_CREDENTIALS,
                                       clear_session_cookie, limiter,
                                       set_session_cookie, to_read)
from ems.core import session_store
from ems.core.config import settings
from ems.core.guard import AuthContext
from ems.core.permissions import Permission
from ems.core.session_store import CurrentUser
from ems.models.employee import Attendance, Department, Employee
from ems.models.leave import LeaveRequest
from ems.schemas.auth import DashboardResponse

router = APIRouter(tags=["pages"])

LOGIN_FORM_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Login - {project}</title>
</head>
<body>
    <div class="login-box">
        <h1>{project}</h1>
        {error}
        <form method="POST" action="{login_url}">
            <label for="username">Username</label>
            <input type="text" id="username" name="username" value="{username}" required autofocus>
            <label for="password">Password</label>
            <input type="password" id="password" name="password" required>
            <button type="submit">Sign In</button>
        </form>
    </div>
</body>
</html>
"""


def _login_page(error: str = "", username: str = "", status_code: int = 200) -> HTMLResponse:
    error_html = f'<div class="alert alert-error">{html.escape(error)}</div>' if error else ""
    body = (
        LOGIN_FORM_HTML.replace("{project}", html.escape(settings.PROJECT_NAME))
        .replace("{login_url}", settings.LOGIN_URL)
        .replace("{username}", html.escape(username))
        .replace("{error}", error_html)
    )
    return HTMLResponse(body, status_code=status_code)


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


@router.get("/", include_in_schema=False)
async def index() -> RedirectResponse:
    return _redirect(settings.LOGIN_URL)


@router.get(settings.LOGIN_URL, response_class=HTMLResponse)
async def login_page(ctx: AuthContext = Depends(get_auth_context)) -> Response:
    if ctx.is_logged_in:
        return _redirect(settings.DASHBOARD_URL)
    return _login_page()


@router.post(settings.LOGIN_URL, response_class=HTMLResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login_submit(
    request: Request,
    username: str = Form(default=""),
    password: str = Form(default=""),
    db: AsyncSession = Depends(get_db),
) -> Response:
    username = username.strip()
    if not username or not password:
        return _login_page(
            "Please enter both username and password",
            username,
            status.HTTP_400_BAD_REQUEST,
        )

    outcome = await session_store.login(
        db,
        username,
        password,
        replaces=request.cookies.get(settings.SESSION_COOKIE_NAME),
    )
    if outcome is None:
        return _login_page(INVALID_CREDENTIALS, username, status.HTTP_401_UNAUTHORIZED)

    token, _user = outcome
    response = _redirect(settings.DASHBOARD_URL)
    set_session_cookie(response, token)
    return response


@router.get("/logout", include_in_schema=False)
async def logout_page(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> RedirectResponse:
    await session_store.logout(db, request.cookies.get(settings.SESSION_COOKIE_NAME))
    response = _redirect(settings.LOGIN_URL)
    clear_session_cookie(response)
    return response


async def _analytics(db: AsyncSession) -> dict[str, int]:
    employees = await db.scalar(select(func.count(Employee.id)))
    departments = await db.scalar(select(func.count(Department.id)))
    pending = await db.scalar(
        select(func.count(LeaveRequest.id)).where(LeaveRequest.status == "pending")
    )
    present = await db.scalar(
        select(func.count(Attendance.id)).where(
            Attendance.work_date == date.today(),
            Attendance.status.in_(("present", "late", "half-day")),
        )
    )
    return {
        "total_employees": employees or 0,
        "total_departments": departments or 0,
        "pending_leaves": pending or 0,
        "present_today": present or 0,
    }


@router.get(settings.DASHBOARD_URL, response_model=DashboardResponse)
async def dashboard(
    user: CurrentUser = Depends(login_required),
    ctx: AuthContext = Depends(get_auth_context),
    db: AsyncSession = Depends(get_db),
) -> DashboardResponse:
    """Identity, granted affordances, and system-wide counts for admins."""
    analytics = None
    if ctx.has_permission(Permission.VIEW_ANALYTICS):
        analytics = await _analytics(db)
    return DashboardResponse(user=to_read(user), permissions=ctx.granted(), analytics=analytics)
