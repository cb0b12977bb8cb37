"""
Employee directory + profile CRUD.

- GET /employees is the directory (``view_employees``), searchable and
  filterable by department.
- GET /employees/{id} is the full profile (``view_employee_details``).
- Writes need ``create_employee`` / ``edit_employee`` / ``delete_employee``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ems.api.v1.deps import get_db, permission_required
from ems.core.config import settings
from ems.core.permissions import Permission as P
from ems.core.security import get_password_hash
from ems.core.session_store import CurrentUser
from ems.models.employee import Department, Employee
from ems.models.user import User
from ems.schemas.common import DeleteResponse
from ems.schemas.employee import (EmployeeCreate, EmployeeDetail, EmployeeRead,
                                  EmployeeUpdate)

router = APIRouter(prefix="/employees", tags=["employees"])
logger = logging.getLogger(__name__)


def like_pattern(search: str) -> str:
    """Substring LIKE pattern; wildcards are backslash-escaped."""
    safe = search.strip().replace("\\", "\\\\").replace("%", r"\%").replace("_", r"\_")
    return f"%{safe}%"


def _employee_query():
    return (
        select(Employee, Department.name, User)
        .join(User, Employee.user_id == User.id)
        .outerjoin(Department, Employee.department_id == Department.id)
    )


def _to_read(emp: Employee, department_name: str | None, user: User) -> EmployeeRead:
    return EmployeeRead(
        id=emp.id,
        user_id=emp.user_id,
        employee_code=emp.employee_code,
        first_name=emp.first_name,
        last_name=emp.last_name,
        department_id=emp.department_id,
        department_name=department_name,
        position=emp.position,
        email=user.email,
    )


def _to_detail(emp: Employee, department_name: str | None, user: User) -> EmployeeDetail:
    return EmployeeDetail(
        **_to_read(emp, department_name, user).model_dump(),
        phone=emp.phone,
        address=emp.address,
        city=emp.city,
        state=emp.state,
        country=emp.country,
        hire_date=emp.hire_date,
        employment_type=emp.employment_type,
        salary=emp.salary,
        role=user.role,
        status=user.status,
        created_at=emp.created_at,
    )


async def _load(db: AsyncSession, employee_id: int) -> tuple[Employee, str | None, User]:
    row = (await db.execute(_employee_query().where(Employee.id == employee_id))).first()
    if row is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    return row[0], row[1], row[2]


async def _check_department(db: AsyncSession, department_id: int | None) -> None:
    if department_id is not None and await db.get(Department, department_id) is None:
        raise HTTPException(status_code=400, detail="Department not found")


@router.get("", response_model=list[EmployeeRead])
async def list_employees(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: str | None = None,
    department_id: int | None = None,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.VIEW_EMPLOYEES)),
) -> list[EmployeeRead]:
    query = _employee_query()
    if search and search.strip():
        pattern = like_pattern(search)
        query = query.where(
            or_(
                Employee.first_name.ilike(pattern, escape="\\"),
                Employee.last_name.ilike(pattern, escape="\\"),
                Employee.employee_code.ilike(pattern, escape="\\"),
            )
        )
    if department_id is not None:
        query = query.where(Employee.department_id == department_id)

    query = query.order_by(Employee.created_at.desc(), Employee.id.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return [_to_read(emp, dept, user) for emp, dept, user in result.all()]


@router.post("", response_model=EmployeeDetail, status_code=201)
async def create_employee(
    body: EmployeeCreate,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.CREATE_EMPLOYEE)),
) -> EmployeeDetail:
    """Create the login account and the linked employee profile in one step."""
    taken = await db.execute(
        select(User.id).where(
            or_(User.username == body.account.username, User.email == body.account.email)
        )
    )
    if taken.first() is not None:
        raise HTTPException(status_code=400, detail="Username or email already registered")
    code_taken = await db.execute(
        select(Employee.id).where(Employee.employee_code == body.employee_code)
    )
    if code_taken.first() is not None:
        raise HTTPException(
            status_code=400,
            detail=f"Employee code '{body.employee_code}' already registered",
        )
    await _check_department(db, body.department_id)

    user = User(
        username=body.account.username,
        email=body.account.email,
        hashed_password=get_password_hash(body.account.password),
        role=body.account.role,
        status=body.account.status,
    )
    db.add(user)
    await db.flush()

    employee = Employee(user_id=user.id, **body.model_dump(exclude={"account"}))
    db.add(employee)
    await db.commit()
    logger.info("Created employee %s (%s)", employee.employee_code, user.username)

    return _to_detail(*(await _load(db, employee.id)))


@router.get("/{employee_id}", response_model=EmployeeDetail)
async def get_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.VIEW_EMPLOYEE_DETAILS)),
) -> EmployeeDetail:
    return _to_detail(*(await _load(db, employee_id)))


@router.put("/{employee_id}", response_model=EmployeeDetail)
async def update_employee(
    employee_id: int,
    body: EmployeeUpdate,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.EDIT_EMPLOYEE)),
) -> EmployeeDetail:
    emp, _dept, _owner = await _load(db, employee_id)
    changes = body.model_dump(exclude_unset=True)
    if "department_id" in changes:
        await _check_department(db, changes["department_id"])

    for field, value in changes.items():
        setattr(emp, field, value)

    await db.commit()
    logger.info("Updated employee %d", employee_id)
    return _to_detail(*(await _load(db, employee_id)))


@router.delete("/{employee_id}", response_model=DeleteResponse)
async def delete_employee(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(permission_required(P.DELETE_EMPLOYEE)),
) -> DeleteResponse:
    """Delete the owning user account; the profile and its history go with it."""
    emp, _dept, owner = await _load(db, employee_id)
    if owner.id == current.user_id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    name = emp.full_name
    await db.delete(owner)
    await db.commit()
    logger.info("Deleted employee %d (%s)", employee_id, name)
    return DeleteResponse(success=True, message=f"Employee '{name}' deleted")
