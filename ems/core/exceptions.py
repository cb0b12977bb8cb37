"""
Global exception handlers — prevents stack-trace leakage to clients.

Access-control denials are raised as ``LoginRequired`` / ``PermissionDenied``
from the guard dependencies and turned into a terminal response here, so
route handlers never run (or see) a denied request.  Browsers get a redirect
or the fixed "Access Denied" page; clients sending ``Accept: application/json``
get a structured JSON body instead.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ems.core.config import settings

logger = logging.getLogger(__name__)

ACCESS_DENIED_HTML = """<!DOCTYPE html>
<html>
<head>
    <title>Access Denied</title>
    <style>
        body { font-family: Arial, sans-serif; text-align: center; padding: 50px; }
        .deny-box { background: #f8d7da; color: #721c24; padding: 20px; border-radius: 8px; max-width: 500px; margin: 0 auto; }
        h1 { color: #721c24; }
        a { color: #FF6B35; text-decoration: none; margin-top: 20px; display: inline-block; }
    </style>
</head>
<body>
    <div class="deny-box">
        <h1>Access Denied</h1>
        <p>You do not have permission to access this resource.</p>
        <a href="{dashboard_url}">&rarr; Back to Dashboard</a>
    </div>
</body>
</html>
"""


class LoginRequired(Exception):
    """No authenticated session for a protected route."""


class PermissionDenied(Exception):
    """Authenticated, but the session role lacks a permission."""

    def __init__(self, permission: str) -> None:
        super().__init__(permission)
        self.permission = permission


class CSRFError(Exception):
    """Unsafe request without the session's CSRF token."""


def wants_json(request: Request) -> bool:
    return "application/json" in request.headers.get("accept", "")


def access_denied_page() -> HTMLResponse:
    return HTMLResponse(
        ACCESS_DENIED_HTML.replace("{dashboard_url}", settings.DASHBOARD_URL),
        status_code=status.HTTP_403_FORBIDDEN,
    )


async def _login_required_handler(request: Request, _exc: LoginRequired) -> Response:
    if wants_json(request):
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={
                "detail": "Not authenticated",
                "login_url": settings.LOGIN_URL,
                "success": False,
            },
        )
    return RedirectResponse(settings.LOGIN_URL, status_code=status.HTTP_303_SEE_OTHER)


async def _permission_denied_handler(request: Request, exc: PermissionDenied) -> Response:
    logger.info("Access denied to %s %s (missing %s)", request.method, request.url.path, exc.permission)
    if wants_json(request):
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={
                "detail": "Access Denied",
                "permission": exc.permission,
                "success": False,
            },
        )
    return access_denied_page()


async def _csrf_error_handler(request: Request, _exc: CSRFError) -> Response:
    logger.info("Rejected %s %s: bad CSRF token", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"detail": "Invalid CSRF token", "success": False},
    )


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
        headers=exc.headers,
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal database error", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(LoginRequired, _login_required_handler)  # type: ignore[arg-type]
    app.add_exception_handler(PermissionDenied, _permission_denied_handler)  # type: ignore[arg-type]
    app.add_exception_handler(CSRFError, _csrf_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
