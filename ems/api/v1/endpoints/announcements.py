"""
Company announcements.

Everyone with ``view_announcements`` reads the unexpired notices addressed
to them: admins see every audience, other roles see ``all`` plus their own
role.  Publishing and removing need ``create_announcement`` /
``delete_announcement``.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ems.api.v1.deps import get_auth_context, get_db, permission_required
from ems.core.config import settings
from ems.core.guard import AuthContext
from ems.core.permissions import Permission as P
from ems.core.permissions import Role
from ems.core.session_store import CurrentUser
from ems.models.announcement import Announcement
from ems.models.user import User
from ems.schemas.announcement import (AnnouncementCreate, AnnouncementPage,
                                      AnnouncementRead)
from ems.schemas.common import DeleteResponse

router = APIRouter(prefix="/announcements", tags=["announcements"])
logger = logging.getLogger(__name__)


def _to_read(item: Announcement, author: str | None) -> AnnouncementRead:
    return AnnouncementRead(
        id=item.id,
        title=item.title,
        content=item.content,
        priority=item.priority,
        target_audience=item.target_audience,
        expire_date=item.expire_date,
        created_by=item.created_by,
        created_by_name=author,
        created_at=item.created_at,
    )


@router.get("", response_model=AnnouncementPage)
async def list_announcements(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=10, ge=1, le=settings.MAX_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(get_auth_context),
    user: CurrentUser = Depends(permission_required(P.VIEW_ANNOUNCEMENTS)),
) -> AnnouncementPage:
    """Unexpired announcements, newest first.  An item expires on its expire_date."""
    conditions = [
        or_(Announcement.expire_date.is_(None), Announcement.expire_date > date.today())
    ]
    if not ctx.has_role(Role.ADMIN):
        conditions.append(Announcement.target_audience.in_(["all", user.role]))

    total = await db.scalar(select(func.count(Announcement.id)).where(*conditions))
    result = await db.execute(
        select(Announcement, User.username)
        .outerjoin(User, Announcement.created_by == User.id)
        .where(*conditions)
        .order_by(Announcement.created_at.desc(), Announcement.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return AnnouncementPage(
        total=total or 0,
        page=page,
        per_page=per_page,
        announcements=[_to_read(item, author) for item, author in result.all()],
    )


@router.post("", response_model=AnnouncementRead, status_code=201)
async def create_announcement(
    body: AnnouncementCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(permission_required(P.CREATE_ANNOUNCEMENT)),
) -> AnnouncementRead:
    item = Announcement(**body.model_dump(), created_by=user.user_id)
    db.add(item)
    await db.commit()
    await db.refresh(item)
    logger.info("Announcement %d published by %s: %s", item.id, user.username, item.title)
    return _to_read(item, user.username)


@router.delete("/{announcement_id}", response_model=DeleteResponse)
async def delete_announcement(
    announcement_id: int,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.DELETE_ANNOUNCEMENT)),
) -> DeleteResponse:
    item = await db.get(Announcement, announcement_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Announcement not found")
    title = item.title
    await db.delete(item)
    await db.commit()
    logger.info("Announcement %d deleted", announcement_id)
    return DeleteResponse(success=True, message=f"Announcement '{title}' deleted")
