"""
Payroll records.

Listing needs ``view_payroll``; creating, changing the payment status and
deleting need ``create_payroll`` / ``edit_payroll`` / ``delete_payroll``.
Net salary is always derived as basic + bonuses - deductions.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ems.api.v1.deps import get_db, permission_required
from ems.api.v1.endpoints.employees import like_pattern
from ems.core.permissions import Permission as P
from ems.core.session_store import CurrentUser
from ems.models.employee import Department, Employee
from ems.models.payroll import PayrollRecord
from ems.schemas.common import DeleteResponse
from ems.schemas.payroll import (VALID_PAYMENT_STATUSES, PayrollCreate,
                                 PayrollRead, PayrollStatusUpdate)

router = APIRouter(prefix="/payroll", tags=["payroll"])
logger = logging.getLogger(__name__)


def _payroll_query():
    return (
        select(PayrollRecord, Employee, Department.name)
        .join(Employee, PayrollRecord.employee_id == Employee.id)
        .outerjoin(Department, Employee.department_id == Department.id)
    )


def _to_read(rec: PayrollRecord, emp: Employee, department_name: str | None) -> PayrollRead:
    return PayrollRead(
        id=rec.id,
        employee_id=rec.employee_id,
        employee_code=emp.employee_code,
        name=emp.full_name,
        department_name=department_name,
        pay_period_start=rec.pay_period_start,
        pay_period_end=rec.pay_period_end,
        basic_salary=rec.basic_salary,
        bonuses=rec.bonuses,
        deductions=rec.deductions,
        net_salary=rec.net_salary,
        payment_date=rec.payment_date,
        payment_status=rec.payment_status,
        created_at=rec.created_at,
    )


async def _load(db: AsyncSession, record_id: int) -> PayrollRead:
    row = (await db.execute(_payroll_query().where(PayrollRecord.id == record_id))).first()
    if row is None:
        raise HTTPException(status_code=404, detail="Payroll record not found")
    return _to_read(*row)


@router.get("", response_model=list[PayrollRead])
async def list_payroll(
    status: str | None = None,
    search: str | None = None,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.VIEW_PAYROLL)),
) -> list[PayrollRead]:
    """Newest first, optionally filtered by payment status and employee name/code."""
    query = _payroll_query()
    if status:
        if status not in VALID_PAYMENT_STATUSES:
            raise HTTPException(status_code=400, detail="Unknown payment status")
        query = query.where(PayrollRecord.payment_status == status)
    if search and search.strip():
        pattern = like_pattern(search)
        query = query.where(
            or_(
                Employee.first_name.ilike(pattern, escape="\\"),
                Employee.last_name.ilike(pattern, escape="\\"),
                Employee.employee_code.ilike(pattern, escape="\\"),
            )
        )
    query = query.order_by(PayrollRecord.created_at.desc(), PayrollRecord.id.desc())

    result = await db.execute(query)
    return [_to_read(*row) for row in result.all()]


@router.post("", response_model=PayrollRead, status_code=201)
async def create_payroll(
    body: PayrollCreate,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.CREATE_PAYROLL)),
) -> PayrollRead:
    if await db.get(Employee, body.employee_id) is None:
        raise HTTPException(status_code=404, detail="Employee not found")

    record = PayrollRecord(
        **body.model_dump(),
        net_salary=body.net_salary,
        payment_status="pending",
    )
    db.add(record)
    await db.commit()
    logger.info(
        "Payroll for employee %d, %s..%s: net %s",
        body.employee_id,
        body.pay_period_start.isoformat(),
        body.pay_period_end.isoformat(),
        body.net_salary,
    )
    return await _load(db, record.id)


@router.put("/{record_id}/status", response_model=PayrollRead)
async def update_payroll_status(
    record_id: int,
    body: PayrollStatusUpdate,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.EDIT_PAYROLL)),
) -> PayrollRead:
    """Marking a record paid stamps today's payment date; pending clears it."""
    record = await db.get(PayrollRecord, record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Payroll record not found")

    record.payment_status = body.payment_status
    record.payment_date = date.today() if body.payment_status == "paid" else None
    await db.commit()
    logger.info("Payroll %d marked %s", record_id, body.payment_status)
    return await _load(db, record_id)


@router.delete("/{record_id}", response_model=DeleteResponse)
async def delete_payroll(
    record_id: int,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.DELETE_PAYROLL)),
) -> DeleteResponse:
    record = await db.get(PayrollRecord, record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Payroll record not found")
    await db.delete(record)
    await db.commit()
    logger.info("Payroll %d deleted", record_id)
    return DeleteResponse(success=True, message="Payroll record deleted")
