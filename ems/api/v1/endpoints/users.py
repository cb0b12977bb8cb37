"""
User account management.

Listing needs ``view_users``; every write needs its own permission.
Changing a role additionally needs ``manage_roles``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ems.api.v1.deps import get_auth_context, get_db, permission_required
from ems.api.v1.endpoints.employees import like_pattern
from ems.core.config import settings
from ems.core.exceptions import PermissionDenied
from ems.core.guard import AuthContext
from ems.core.permissions import Permission as P
from ems.core.security import get_password_hash
from ems.core.session_store import CurrentUser
from ems.models.employee import Employee
from ems.models.user import User
from ems.schemas.common import DeleteResponse
from ems.schemas.user import PasswordReset, UserCreate, UserRead, UserUpdate

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def _ensure_unique(db: AsyncSession, username: str | None, email: str | None, exclude_id: int | None = None) -> None:
    clauses = []
    if username is not None:
        clauses.append(User.username == username)
    if email is not None:
        clauses.append(User.email == email)
    if not clauses:
        return
    query = select(User.id).where(or_(*clauses))
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise HTTPException(status_code=400, detail="Username or email already registered")


@router.get("", response_model=list[UserRead])
async def list_users(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    search: str | None = None,
    role: str | None = None,
    status: str | None = None,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.VIEW_USERS)),
) -> list[User]:
    query = select(User).outerjoin(Employee, Employee.user_id == User.id)
    if search:
        pattern = like_pattern(search)
        query = query.where(
            or_(
                User.username.ilike(pattern, escape="\\"),
                User.email.ilike(pattern, escape="\\"),
                Employee.first_name.ilike(pattern, escape="\\"),
                Employee.last_name.ilike(pattern, escape="\\"),
            )
        )
    if role:
        query = query.where(User.role == role)
    if status:
        query = query.where(User.status == status)

    query = query.order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("", response_model=UserRead, status_code=201)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.CREATE_USER)),
) -> User:
    """Create a login account (no employee profile)."""
    await _ensure_unique(db, body.username, body.email)

    user = User(
        username=body.username,
        email=body.email,
        hashed_password=get_password_hash(body.password),
        role=body.role,
        status=body.status,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Created user %s (%s)", user.username, user.role)
    return user


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.VIEW_USERS)),
) -> User:
    return await _get_user_or_404(db, user_id)


@router.put("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: int,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    _user: CurrentUser = Depends(permission_required(P.EDIT_USER)),
) -> User:
    """Update email, role or status.  The password is never touched here."""
    user = await _get_user_or_404(db, user_id)
    changes = body.model_dump(exclude_unset=True)

    if "role" in changes and changes["role"] != user.role and not ctx.has_permission(P.MANAGE_ROLES):
        raise PermissionDenied(P.MANAGE_ROLES.value)
    if changes.get("email"):
        await _ensure_unique(db, None, changes["email"], exclude_id=user.id)

    for field, value in changes.items():
        if value is not None:
            setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    logger.info("Updated user %d: %s", user_id, sorted(changes))
    return user


@router.post("/{user_id}/reset-password", response_model=DeleteResponse)
async def reset_password(
    user_id: int,
    body: PasswordReset,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.EDIT_USER)),
) -> DeleteResponse:
    user = await _get_user_or_404(db, user_id)
    user.hashed_password = get_password_hash(body.new_password)
    await db.commit()
    logger.info("Password reset for user %d", user_id)
    return DeleteResponse(success=True, message="Password reset successfully")


@router.delete("/{user_id}", response_model=DeleteResponse)
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    current: CurrentUser = Depends(permission_required(P.DELETE_USER)),
) -> DeleteResponse:
    """Hard delete.  Cascades to the linked employee profile and sessions."""
    if user_id == current.user_id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    user = await _get_user_or_404(db, user_id)
    username = user.username
    await db.delete(user)
    await db.commit()
    logger.info("Deleted user %d (%s)", user_id, username)
    return DeleteResponse(success=True, message=f"User '{username}' deleted")
