"""
Department CRUD.  Read-only for employees; writes are admin permissions.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ems.api.v1.deps import get_db, permission_required
from ems.core.permissions import Permission as P
from ems.core.session_store import CurrentUser
from ems.models.employee import Department, Employee
from ems.schemas.common import DeleteResponse
from ems.schemas.employee import (DepartmentCreate, DepartmentRead,
                                  DepartmentUpdate)

router = APIRouter(prefix="/departments", tags=["departments"])
logger = logging.getLogger(__name__)


async def _get_or_404(db: AsyncSession, department_id: int) -> Department:
    dept = await db.get(Department, department_id)
    if dept is None:
        raise HTTPException(status_code=404, detail="Department not found")
    return dept


async def _ensure_name_free(db: AsyncSession, name: str, exclude_id: int | None = None) -> None:
    query = select(Department.id).where(Department.name == name)
    if exclude_id is not None:
        query = query.where(Department.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise HTTPException(status_code=400, detail=f"Department '{name}' already exists")


async def _read(db: AsyncSession, dept: Department) -> DepartmentRead:
    count = await db.scalar(
        select(func.count(Employee.id)).where(Employee.department_id == dept.id)
    )
    return DepartmentRead(
        id=dept.id,
        name=dept.name,
        description=dept.description,
        employee_count=count or 0,
    )


@router.get("", response_model=list[DepartmentRead])
async def list_departments(
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.VIEW_DEPARTMENTS)),
) -> list[DepartmentRead]:
    """All departments with their head-count, in one grouped query."""
    result = await db.execute(
        select(Department, func.count(Employee.id))
        .outerjoin(Employee, Employee.department_id == Department.id)
        .group_by(Department.id)
        .order_by(Department.name)
    )
    return [
        DepartmentRead(id=d.id, name=d.name, description=d.description, employee_count=n)
        for d, n in result.all()
    ]


@router.post("", response_model=DepartmentRead, status_code=201)
async def create_department(
    body: DepartmentCreate,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.CREATE_DEPARTMENT)),
) -> DepartmentRead:
    await _ensure_name_free(db, body.name)
    dept = Department(**body.model_dump())
    db.add(dept)
    await db.commit()
    await db.refresh(dept)
    logger.info("Created department %s", dept.name)
    return await _read(db, dept)


@router.put("/{department_id}", response_model=DepartmentRead)
async def update_department(
    department_id: int,
    body: DepartmentUpdate,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.EDIT_DEPARTMENT)),
) -> DepartmentRead:
    dept = await _get_or_404(db, department_id)
    changes = body.model_dump(exclude_unset=True)
    if changes.get("name"):
        changes["name"] = changes["name"].strip()
        await _ensure_name_free(db, changes["name"], exclude_id=dept.id)

    for field, value in changes.items():
        if value is not None:
            setattr(dept, field, value)

    await db.commit()
    await db.refresh(dept)
    logger.info("Updated department %d", department_id)
    return await _read(db, dept)


@router.delete("/{department_id}", response_model=DeleteResponse)
async def delete_department(
    department_id: int,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.DELETE_DEPARTMENT)),
) -> DeleteResponse:
    """Delete a department; its employees become unassigned."""
    dept = await _get_or_404(db, department_id)
    name = dept.name
    members = await db.execute(select(Employee).where(Employee.department_id == dept.id))
    for emp in members.scalars():
        emp.department_id = None
    await db.delete(dept)
    await db.commit()
    logger.info("Deleted department %d (%s)", department_id, name)
    return DeleteResponse(success=True, message=f"Department '{name}' deleted")
