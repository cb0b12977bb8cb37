"""Tests for the holiday calendar."""

from datetime import date, timedelta

import pytest
from httpx import AsyncClient

from ems.api.v1.endpoints.holidays import is_holiday


@pytest.mark.asyncio
async def test_create_and_list_holidays(admin_client: AsyncClient, employee_client: AsyncClient):
    resp = await admin_client.post(
        "/api/v1/holidays",
        json={"name": "New Year", "holiday_date": "2025-01-01"},
    )
    assert resp.status_code == 201

    resp = await employee_client.get("/api/v1/holidays")
    assert resp.status_code == 200
    assert [h["name"] for h in resp.json()] == ["New Year"]


@pytest.mark.asyncio
async def test_upcoming_filter(admin_client: AsyncClient):
    past = (date.today() - timedelta(days=30)).isoformat()
    future = (date.today() + timedelta(days=30)).isoformat()
    await admin_client.post("/api/v1/holidays", json={"name": "Past", "holiday_date": past})
    await admin_client.post("/api/v1/holidays", json={"name": "Future", "holiday_date": future})

    resp = await admin_client.get("/api/v1/holidays?upcoming=true")
    assert [h["name"] for h in resp.json()] == ["Future"]
    resp = await admin_client.get("/api/v1/holidays")
    assert [h["name"] for h in resp.json()] == ["Past", "Future"]


@pytest.mark.asyncio
async def test_duplicate_date_rejected(admin_client: AsyncClient):
    body = {"name": "Founders Day", "holiday_date": "2025-06-01"}
    await admin_client.post("/api/v1/holidays", json=body)
    resp = await admin_client.post("/api/v1/holidays", json={**body, "name": "Other"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_employee_cannot_manage_holidays(employee_client: AsyncClient):
    resp = await employee_client.post(
        "/api/v1/holidays",
        json={"name": "Every Day", "holiday_date": "2025-06-02"},
    )
    assert resp.status_code == 403
    assert resp.json()["permission"] == "manage_holidays"


@pytest.mark.asyncio
async def test_delete_holiday(admin_client: AsyncClient, db_session):
    created = await admin_client.post(
        "/api/v1/holidays",
        json={"name": "Labour Day", "holiday_date": "2025-05-01"},
    )
    assert await is_holiday(db_session, date(2025, 5, 1))

    resp = await admin_client.delete(f"/api/v1/holidays/{created.json()['id']}")
    assert resp.status_code == 200
    assert not await is_holiday(db_session, date(2025, 5, 1))
    assert (await admin_client.delete(f"/api/v1/holidays/{created.json()['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_attendance_day_flags_holiday(admin_client: AsyncClient):
    await admin_client.post(
        "/api/v1/holidays",
        json={"name": "Independence Day", "holiday_date": "2025-08-14"},
    )
    assert (await admin_client.get("/api/v1/attendance?date=2025-08-14")).json()["is_holiday"] is True
    assert (await admin_client.get("/api/v1/attendance?date=2025-08-15")).json()["is_holiday"] is False
