"""
Login / logout flows and the guard's terminal responses over HTTP.

Covers both surfaces: the JSON API under /api/v1/auth and the browser
pages (/, /login, /logout, /dashboard).
"""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import PASSWORD, _override_get_db, create_account, login
from ems.api.v1.deps import get_db, permission_required
from ems.core import session_store
from ems.core.exceptions import register_exception_handlers
from ems.core.permissions import Permission
from ems.models.user import User
from ems.models.user_session import UserSession

HTML = {"Accept": "text/html"}


# ── JSON API ────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_api_login_sets_httponly_cookie(client_factory, employee_user: User):
    client = await client_factory()
    resp = await client.post(
        "/api/v1/auth/login",
        json={"username": "alice", "password": PASSWORD},
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["username"] == "alice"
    assert data["role"] == "employee"
    assert data["role_display"] == "Employee"
    assert data["full_name"] == "Alice Tester"
    assert data["csrf_token"]

    cookie = resp.headers["set-cookie"]
    assert "ems_session=" in cookie
    assert "httponly" in cookie.lower()
    assert "samesite=lax" in cookie.lower()


@pytest.mark.asyncio
async def test_api_login_wrong_password(client_factory, employee_user: User):
    client = await client_factory()
    resp = await client.post(
        "/api/v1/auth/login",
        json={"username": "alice", "password": "nope"},
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid username or password"
    assert "set-cookie" not in resp.headers


@pytest.mark.asyncio
async def test_api_login_unknown_user_same_message(client_factory, employee_user: User):
    """Unknown users and bad passwords are indistinguishable."""
    client = await client_factory()
    resp = await client.post(
        "/api/v1/auth/login",
        json={"username": "mallory", "password": PASSWORD},
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid username or password"


@pytest.mark.asyncio
async def test_api_login_empty_fields(client_factory):
    client = await client_factory()
    resp = await client.post("/api/v1/auth/login", json={"username": "  ", "password": ""})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_me_requires_session(client_factory):
    client = await client_factory()
    resp = await client.get("/api/v1/auth/me")
    assert resp.status_code == 401
    body = resp.json()
    assert body["login_url"] == "/login"
    assert body["success"] is False


@pytest.mark.asyncio
async def test_me_returns_snapshot(employee_client: AsyncClient):
    resp = await employee_client.get("/api/v1/auth/me")
    assert resp.status_code == 200
    assert resp.json()["username"] == "alice"


@pytest.mark.asyncio
async def test_permissions_map_is_total(employee_client: AsyncClient):
    resp = await employee_client.get("/api/v1/auth/permissions")
    assert resp.status_code == 200
    data = resp.json()
    assert data["role"] == "employee"
    assert len(data["permissions"]) == len(Permission)
    assert data["permissions"]["view_dashboard"] is True
    assert data["permissions"]["view_payroll"] is False


@pytest.mark.asyncio
async def test_api_logout_ends_session(employee_client: AsyncClient):
    resp = await employee_client.post("/api/v1/auth/logout")
    assert resp.status_code == 200
    assert (await employee_client.get("/api/v1/auth/me")).status_code == 401


@pytest.mark.asyncio
async def test_logout_without_session_is_harmless(client_factory):
    client = await client_factory()
    resp = await client.post("/api/v1/auth/logout")
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_forged_cookie_is_anonymous(client_factory, employee_user: User):
    client = await client_factory()
    client.cookies.set("ems_session", "forged")
    assert (await client.get("/api/v1/auth/me")).status_code == 401


@pytest.mark.asyncio
async def test_expired_session_is_rejected(employee_client: AsyncClient, db_session: AsyncSession):
    await db_session.execute(
        update(UserSession).values(expires_at=datetime.now(timezone.utc) - timedelta(seconds=1))
    )
    await db_session.commit()
    assert (await employee_client.get("/api/v1/auth/me")).status_code == 401


@pytest.mark.asyncio
async def test_deleting_user_ends_their_sessions(
    admin_client: AsyncClient,
    employee_client: AsyncClient,
    employee_user: User,
):
    resp = await admin_client.delete(f"/api/v1/users/{employee_user.id}")
    assert resp.status_code == 200
    assert (await employee_client.get("/api/v1/auth/me")).status_code == 401


# ── Guard responses ─────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_permission_denied_json(employee_client: AsyncClient):
    resp = await employee_client.get("/api/v1/users")
    assert resp.status_code == 403
    assert resp.json() == {
        "detail": "Access Denied",
        "permission": "view_users",
        "success": False,
    }


@pytest.mark.asyncio
async def test_permission_denied_html_for_browsers(employee_client: AsyncClient):
    resp = await employee_client.get("/api/v1/users", headers=HTML)
    assert resp.status_code == 403
    assert resp.headers["content-type"].startswith("text/html")
    assert "Access Denied" in resp.text
    assert 'href="/dashboard"' in resp.text


@pytest.mark.asyncio
async def test_anonymous_browser_is_redirected_to_login(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/users")
    assert resp.status_code == 303
    assert resp.headers["location"] == "/login"


@pytest.mark.asyncio
async def test_unsafe_request_needs_csrf_header(employee_client: AsyncClient):
    leave = {"leave_type": "annual", "start_date": "2025-03-03", "end_date": "2025-03-04"}
    resp = await employee_client.post(
        "/api/v1/leaves",
        json=leave,
        headers={"X-CSRF-Token": "wrong"},
    )
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Invalid CSRF token"

    del employee_client.headers["X-CSRF-Token"]
    resp = await employee_client.post("/api/v1/leaves", json=leave)
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_role_is_snapshotted_at_login(
    employee_client: AsyncClient,
    db_session: AsyncSession,
    employee_user: User,
):
    """A promotion only takes effect after logging in again."""
    await db_session.execute(update(User).where(User.id == employee_user.id).values(role="admin"))
    await db_session.commit()

    assert (await employee_client.get("/api/v1/users")).status_code == 403
    await login(employee_client, "alice")
    assert (await employee_client.get("/api/v1/users")).status_code == 200


# ── Browser pages ───────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_root_redirects_to_login(async_client: AsyncClient):
    resp = await async_client.get("/")
    assert resp.status_code == 303
    assert resp.headers["location"] == "/login"


@pytest.mark.asyncio
async def test_login_page_renders_form(async_client: AsyncClient):
    resp = await async_client.get("/login")
    assert resp.status_code == 200
    assert '<form method="POST" action="/login">' in resp.text


@pytest.mark.asyncio
async def test_form_login_redirects_to_dashboard(async_client: AsyncClient, employee_user: User):
    resp = await async_client.post("/login", data={"username": "alice", "password": PASSWORD})
    assert resp.status_code == 303
    assert resp.headers["location"] == "/dashboard"

    # Already logged in: the form bounces to the dashboard
    resp = await async_client.get("/login")
    assert resp.status_code == 303
    assert resp.headers["location"] == "/dashboard"


@pytest.mark.asyncio
async def test_form_login_failure_rerenders_form(async_client: AsyncClient, employee_user: User):
    resp = await async_client.post("/login", data={"username": "alice", "password": "bad"})
    assert resp.status_code == 401
    assert "Invalid username or password" in resp.text
    assert 'value="alice"' in resp.text


@pytest.mark.asyncio
async def test_form_login_escapes_echoed_username(async_client: AsyncClient):
    resp = await async_client.post(
        "/login",
        data={"username": "<script>x</script>", "password": "bad"},
    )
    assert resp.status_code == 401
    assert "<script>x</script>" not in resp.text


@pytest.mark.asyncio
async def test_form_login_empty_fields(async_client: AsyncClient):
    resp = await async_client.post("/login", data={"username": "", "password": ""})
    assert resp.status_code == 400
    assert "Please enter both username and password" in resp.text


@pytest.mark.asyncio
async def test_dashboard_requires_login(async_client: AsyncClient):
    resp = await async_client.get("/dashboard")
    assert resp.status_code == 303
    assert resp.headers["location"] == "/login"


@pytest.mark.asyncio
async def test_logout_page_clears_session(async_client: AsyncClient, employee_user: User):
    await async_client.post("/login", data={"username": "alice", "password": PASSWORD})
    assert (await async_client.get("/dashboard")).status_code == 200

    resp = await async_client.get("/logout")
    assert resp.status_code == 303
    assert resp.headers["location"] == "/login"
    assert (await async_client.get("/dashboard")).status_code == 303


@pytest.mark.asyncio
async def test_dashboard_for_employee_hides_analytics(employee_client: AsyncClient):
    resp = await employee_client.get("/dashboard")
    assert resp.status_code == 200
    data = resp.json()
    assert data["user"]["username"] == "alice"
    assert "view_dashboard" in data["permissions"]
    assert "view_payroll" not in data["permissions"]
    assert data["analytics"] is None


@pytest.mark.asyncio
async def test_dashboard_for_admin_includes_analytics(
    admin_client: AsyncClient,
    employee_user: User,
):
    resp = await admin_client.get("/dashboard")
    assert resp.status_code == 200
    data = resp.json()
    assert "view_activity_log" in data["permissions"]
    assert data["analytics"]["total_employees"] == 2
    assert data["analytics"]["total_departments"] == 1


@pytest.mark.asyncio
async def test_inactive_user_cannot_log_in(client_factory, db_session: AsyncSession):
    await create_account(db_session, "olga", status="inactive")
    client = await client_factory()
    resp = await client.post(
        "/api/v1/auth/login",
        json={"username": "olga", "password": PASSWORD},
    )
    assert resp.status_code == 401


# ── Guards on the payroll routes ───────────────────────────────────
@pytest.mark.asyncio
async def test_anonymous_payroll_redirects_without_rendering(async_client: AsyncClient):
    """A browser without a session is sent to the login page with an empty body."""
    resp = await async_client.get("/api/v1/payroll", headers=HTML)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/login"
    assert resp.content == b""


@pytest.mark.asyncio
async def test_anonymous_payroll_json_is_401(client_factory):
    """JSON clients get a 401 body pointing at the login page instead of a redirect."""
    client = await client_factory()
    resp = await client.get("/api/v1/payroll")
    assert resp.status_code == 401
    assert resp.json()["login_url"] == "/login"


@pytest.mark.asyncio
async def test_employee_payroll_is_forbidden_without_rendering(employee_client: AsyncClient):
    """An employee hits the fixed Access Denied page, never the payroll list."""
    resp = await employee_client.get("/api/v1/payroll", headers=HTML)
    assert resp.status_code == 403
    assert "Access Denied" in resp.text
    assert "pay_period_start" not in resp.text

    resp = await employee_client.get("/api/v1/payroll")
    assert resp.status_code == 403
    assert resp.json() == {
        "detail": "Access Denied",
        "permission": "view_payroll",
        "success": False,
    }


# ── Guard dependencies on an arbitrary route ───────────────────────
def _guarded_app() -> tuple[FastAPI, list[str]]:
    """A bare app whose route needs a permission no built-in page uses."""
    guarded = FastAPI()
    register_exception_handlers(guarded)
    guarded.dependency_overrides[get_db] = _override_get_db
    rendered: list[str] = []

    @guarded.get("/activity-log")
    async def activity_log(_user=Depends(permission_required(Permission.VIEW_ACTIVITY_LOG))):
        rendered.append("activity-log")
        return {"ok": True}

    return guarded, rendered


@pytest.mark.asyncio
async def test_employee_activity_log_is_forbidden_without_rendering(
    employee_user: User,
    db_session: AsyncSession,
):
    """The handler body never runs when the permission is missing."""
    token, _current = await session_store.login(db_session, "alice", PASSWORD)
    guarded, rendered = _guarded_app()
    async with AsyncClient(
        transport=ASGITransport(app=guarded),
        base_url="http://test",
        cookies={"ems_session": token},
    ) as client:
        resp = await client.get("/activity-log", headers=HTML)
    assert resp.status_code == 403
    assert "Access Denied" in resp.text
    assert rendered == []


@pytest.mark.asyncio
async def test_admin_passes_the_same_guards(admin_client: AsyncClient, db_session: AsyncSession):
    """The admin role clears both the payroll and activity-log guards."""
    assert (await admin_client.get("/api/v1/payroll")).status_code == 200

    token, _current = await session_store.login(db_session, "admin", PASSWORD)
    guarded, rendered = _guarded_app()
    async with AsyncClient(
        transport=ASGITransport(app=guarded),
        base_url="http://test",
        cookies={"ems_session": token},
    ) as client:
        assert (await client.get("/activity-log")).status_code == 200
    assert rendered == ["activity-log"]


# ── Database unreachable ────────────────────────────────────────────
@pytest.mark.asyncio
async def test_login_with_database_down_is_a_plain_failure(client_factory, store_down):
    """A refused database connection reads as failed credentials, not a 500."""
    client = await client_factory()
    resp = await client.post(
        "/api/v1/auth/login",
        json={"username": "alice", "password": PASSWORD},
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid username or password"
    assert "ems_session" not in resp.cookies


@pytest.mark.asyncio
async def test_guarded_routes_fail_closed_with_database_down(client_factory, store_down):
    """Session lookups that cannot reach the database make the request anonymous."""
    client = await client_factory()
    client.cookies.set("ems_session", "token-from-before-the-outage")
    resp = await client.get("/api/v1/auth/me")
    assert resp.status_code == 401
    assert resp.json()["success"] is False

    resp = await client.get("/dashboard", headers=HTML)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/login"


@pytest.mark.asyncio
async def test_logout_clears_cookie_with_database_down(client_factory, store_down):
    """Both logout paths still expire the browser cookie when the delete fails."""
    client = await client_factory()
    client.cookies.set("ems_session", "token-from-before-the-outage")
    resp = await client.post("/api/v1/auth/logout")
    assert resp.status_code == 200
    assert 'ems_session=""' in resp.headers["set-cookie"]

    resp = await client.get("/logout", headers=HTML)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/login"
    assert 'ems_session=""' in resp.headers["set-cookie"]
