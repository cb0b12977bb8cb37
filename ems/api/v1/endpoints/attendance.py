"""
Daily attendance.

Reading needs ``view_attendance`` and only shows the caller's own records
unless the role also holds ``view_all_attendance``.  Marking needs
``manage_attendance`` and is an upsert on (employee, date): the last write
for a day wins.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from ems.api.v1.deps import get_auth_context, get_db, permission_required
from ems.api.v1.endpoints.holidays import is_holiday
from ems.core.guard import AuthContext
from ems.core.permissions import Permission as P
from ems.core.session_store import CurrentUser
from ems.models.employee import Attendance, Department, Employee
from ems.schemas.attendance import (VALID_ATTENDANCE_STATUSES,
                                    AttendanceDayResponse, AttendanceMark,
                                    AttendanceRead)

router = APIRouter(prefix="/attendance", tags=["attendance"])
logger = logging.getLogger(__name__)


def _to_read(att: Attendance, emp: Employee, department_name: str | None) -> AttendanceRead:
    return AttendanceRead(
        id=att.id,
        employee_id=att.employee_id,
        employee_code=emp.employee_code,
        name=emp.full_name,
        department_name=department_name,
        date=att.work_date,
        clock_in=att.clock_in,
        clock_out=att.clock_out,
        status=att.status,
        notes=att.notes,
    )


@router.get("", response_model=AttendanceDayResponse)
async def list_attendance(
    day: date | None = Query(default=None, alias="date"),
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    user: CurrentUser = Depends(permission_required(P.VIEW_ATTENDANCE)),
) -> AttendanceDayResponse:
    """Attendance for one day (default today) with per-status counts."""
    day = day or date.today()
    query = (
        select(Attendance, Employee, Department.name)
        .join(Employee, Attendance.employee_id == Employee.id)
        .outerjoin(Department, Employee.department_id == Department.id)
        .where(Attendance.work_date == day)
    )
    if not ctx.has_permission(P.VIEW_ALL_ATTENDANCE):
        query = query.where(Employee.user_id == user.user_id)
    query = query.order_by(Employee.first_name, Employee.last_name)

    result = await db.execute(query)
    records = [_to_read(att, emp, dept) for att, emp, dept in result.all()]

    tally = Counter(r.status for r in records)
    counts = {s: tally.get(s, 0) for s in sorted(VALID_ATTENDANCE_STATUSES)}
    return AttendanceDayResponse(
        date=day,
        is_holiday=await is_holiday(db, day),
        counts=counts,
        records=records,
    )


def _insert_for(db: AsyncSession):
    """The dialect's INSERT construct, which carries ON CONFLICT support."""
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert


@router.post("", response_model=AttendanceRead)
async def mark_attendance(
    body: AttendanceMark,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.MANAGE_ATTENDANCE)),
) -> AttendanceRead:
    """Create or overwrite the attendance record for (employee, date)."""
    row = (
        await db.execute(
            select(Employee, Department.name)
            .outerjoin(Department, Employee.department_id == Department.id)
            .where(Employee.id == body.employee_id)
        )
    ).first()
    if row is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    employee, department_name = row

    # Single-statement upsert: concurrent marks for one day cannot collide
    table = Attendance.__table__
    fields = {
        "clock_in": body.clock_in,
        "clock_out": body.clock_out,
        "status": body.status,
        "notes": body.notes.strip() if body.notes else None,
    }
    stmt = _insert_for(db)(table).values(
        employee_id=body.employee_id,
        date=body.date,
        **fields,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.employee_id, table.c.date],
        set_={name: stmt.excluded[name] for name in fields},
    )
    await db.execute(stmt)
    await db.commit()

    att = (
        await db.execute(
            select(Attendance)
            .where(
                Attendance.employee_id == body.employee_id,
                Attendance.work_date == body.date,
            )
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    logger.info(
        "Marked %s %s for employee %d",
        body.status,
        body.date.isoformat(),
        body.employee_id,
    )
    return _to_read(att, employee, department_name)
