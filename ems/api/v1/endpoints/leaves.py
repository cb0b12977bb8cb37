"""
Leave request workflow: submit → approve / reject.

Everyone with ``view_leaves`` can list and submit; the list is limited to
the caller's own requests unless the role holds ``view_all_leaves``.
Decisions need ``approve_leave`` / ``reject_leave`` and only apply to
pending requests.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from ems.api.v1.deps import get_auth_context, get_db, permission_required
from ems.core.guard import AuthContext
from ems.core.permissions import Permission as P
from ems.core.session_store import CurrentUser
from ems.models.employee import Employee
from ems.models.leave import LeaveRequest
from ems.models.user import User
from ems.schemas.leave import (LeaveDecision, LeaveListResponse,
                               LeaveRequestCreate, LeaveRequestRead)

router = APIRouter(prefix="/leaves", tags=["leaves"])
logger = logging.getLogger(__name__)

Approver = aliased(User)


def _leave_query():
    return (
        select(LeaveRequest, Employee, Approver.username)
        .join(Employee, LeaveRequest.employee_id == Employee.id)
        .outerjoin(Approver, LeaveRequest.approved_by == Approver.id)
    )


def _to_read(leave: LeaveRequest, emp: Employee, approver: str | None) -> LeaveRequestRead:
    return LeaveRequestRead(
        id=leave.id,
        employee_id=leave.employee_id,
        employee_code=emp.employee_code,
        name=emp.full_name,
        leave_type=leave.leave_type,
        start_date=leave.start_date,
        end_date=leave.end_date,
        days=leave.days,
        reason=leave.reason,
        status=leave.status,
        approved_by=leave.approved_by,
        approved_by_name=approver,
        approval_date=leave.approval_date,
        comments=leave.comments,
        created_at=leave.created_at,
    )


async def _load(db: AsyncSession, leave_id: int) -> LeaveRequestRead:
    row = (await db.execute(_leave_query().where(LeaveRequest.id == leave_id))).first()
    if row is None:
        raise HTTPException(status_code=404, detail="Leave request not found")
    return _to_read(*row)


@router.get("", response_model=LeaveListResponse)
async def list_leaves(
    status: str | None = None,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    user: CurrentUser = Depends(permission_required(P.VIEW_LEAVES)),
) -> LeaveListResponse:
    query = _leave_query()
    if not ctx.has_permission(P.VIEW_ALL_LEAVES):
        query = query.where(Employee.user_id == user.user_id)
    query = query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())

    result = await db.execute(query)
    requests = [_to_read(*row) for row in result.all()]

    # Counts cover the caller's whole visible set, before the status filter
    response = LeaveListResponse(
        pending=sum(1 for r in requests if r.status == "pending"),
        approved=sum(1 for r in requests if r.status == "approved"),
        rejected=sum(1 for r in requests if r.status == "rejected"),
        requests=requests,
    )
    if status:
        response.requests = [r for r in requests if r.status == status]
    return response


@router.post("", response_model=LeaveRequestRead, status_code=201)
async def request_leave(
    body: LeaveRequestCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(permission_required(P.VIEW_LEAVES)),
) -> LeaveRequestRead:
    """Submit a leave request for the caller's own employee profile."""
    if user.employee_id is None:
        raise HTTPException(status_code=400, detail="No employee profile linked to this account")

    leave = LeaveRequest(
        employee_id=user.employee_id,
        leave_type=body.leave_type,
        start_date=body.start_date,
        end_date=body.end_date,
        reason=body.reason.strip() if body.reason else None,
    )
    db.add(leave)
    await db.commit()
    logger.info(
        "Leave requested by employee %d: %s %s..%s",
        user.employee_id,
        body.leave_type,
        body.start_date.isoformat(),
        body.end_date.isoformat(),
    )
    return await _load(db, leave.id)


async def _decide(
    db: AsyncSession,
    leave_id: int,
    decision: str,
    body: LeaveDecision,
    user: CurrentUser,
) -> LeaveRequestRead:
    leave = await db.get(LeaveRequest, leave_id)
    if leave is None:
        raise HTTPException(status_code=404, detail="Leave request not found")
    if leave.status != "pending":
        raise HTTPException(status_code=400, detail=f"Leave request already {leave.status}")

    leave.status = decision
    leave.approved_by = user.user_id
    leave.approval_date = datetime.now(timezone.utc)
    leave.comments = body.comments.strip() if body.comments else None
    await db.commit()
    logger.info("Leave %d %s by %s", leave_id, decision, user.username)
    return await _load(db, leave_id)


@router.post("/{leave_id}/approve", response_model=LeaveRequestRead)
async def approve_leave(
    leave_id: int,
    body: LeaveDecision | None = None,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(permission_required(P.APPROVE_LEAVE)),
) -> LeaveRequestRead:
    return await _decide(db, leave_id, "approved", body or LeaveDecision(), user)


@router.post("/{leave_id}/reject", response_model=LeaveRequestRead)
async def reject_leave(
    leave_id: int,
    body: LeaveDecision | None = None,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(permission_required(P.REJECT_LEAVE)),
) -> LeaveRequestRead:
    return await _decide(db, leave_id, "rejected", body or LeaveDecision(), user)
