"""
Self-service profile: every signed-in user may read and edit their own
contact details and change their own password.  No catalog permission is
involved; the target is always the session's own account.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ems.api.v1.deps import get_db, login_required
from ems.core.security import get_password_hash, verify_password
from ems.core.session_store import CurrentUser
from ems.models.employee import Department, Employee
from ems.models.user import User
from ems.schemas.common import DeleteResponse
from ems.schemas.profile import PasswordChange, ProfileRead, ProfileUpdate

router = APIRouter(prefix="/profile", tags=["profile"])
logger = logging.getLogger(__name__)


async def _own_profile(db: AsyncSession, user: CurrentUser) -> tuple[Employee, str | None, User]:
    row = (
        await db.execute(
            select(Employee, Department.name, User)
            .join(User, Employee.user_id == User.id)
            .outerjoin(Department, Employee.department_id == Department.id)
            .where(Employee.user_id == user.user_id)
        )
    ).first()
    if row is None:
        raise HTTPException(status_code=404, detail="No employee profile linked to this account")
    return row[0], row[1], row[2]


def _to_read(emp: Employee, department_name: str | None, owner: User) -> ProfileRead:
    return ProfileRead(
        employee_id=emp.id,
        employee_code=emp.employee_code,
        username=owner.username,
        email=owner.email,
        first_name=emp.first_name,
        last_name=emp.last_name,
        department_name=department_name,
        position=emp.position,
        hire_date=emp.hire_date,
        phone=emp.phone,
        address=emp.address,
        city=emp.city,
        state=emp.state,
        country=emp.country,
    )


@router.get("", response_model=ProfileRead)
async def read_profile(
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(login_required),
) -> ProfileRead:
    return _to_read(*(await _own_profile(db, user)))


@router.put("", response_model=ProfileRead)
async def update_profile(
    body: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(login_required),
) -> ProfileRead:
    emp, department_name, owner = await _own_profile(db, user)
    changes = body.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(emp, field, value)
    await db.commit()
    logger.info("User %s updated profile fields %s", user.username, sorted(changes))
    return _to_read(emp, department_name, owner)


@router.post("/password", response_model=DeleteResponse)
async def change_password(
    body: PasswordChange,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(login_required),
) -> DeleteResponse:
    """Requires the current password; the open session stays valid."""
    owner = await db.get(User, user.user_id)
    if owner is None:
        raise HTTPException(status_code=404, detail="User not found")
    if not verify_password(body.current_password, owner.hashed_password):
        logger.info("Password change refused for %s: wrong current password", user.username)
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    owner.hashed_password = get_password_hash(body.new_password)
    await db.commit()
    logger.info("User %s changed their password", user.username)
    return DeleteResponse(success=True, message="Password changed successfully")
