"""
Company holiday calendar.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ems.api.v1.deps import get_db, permission_required
from ems.core.permissions import Permission as P
from ems.core.session_store import CurrentUser
from ems.models.holiday import Holiday
from ems.schemas.common import DeleteResponse
from ems.schemas.holiday import HolidayCreate, HolidayRead

router = APIRouter(prefix="/holidays", tags=["holidays"])
logger = logging.getLogger(__name__)


async def is_holiday(db: AsyncSession, day: date) -> bool:
    """True when *day* is on the company calendar."""
    result = await db.execute(select(Holiday.id).where(Holiday.holiday_date == day))
    return result.first() is not None


@router.get("", response_model=list[HolidayRead])
async def list_holidays(
    upcoming: bool = False,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.VIEW_HOLIDAYS)),
) -> list[Holiday]:
    query = select(Holiday)
    if upcoming:
        query = query.where(Holiday.holiday_date >= date.today())
    result = await db.execute(query.order_by(Holiday.holiday_date))
    return list(result.scalars().all())


@router.post("", response_model=HolidayRead, status_code=201)
async def create_holiday(
    body: HolidayCreate,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.MANAGE_HOLIDAYS)),
) -> Holiday:
    if await is_holiday(db, body.holiday_date):
        raise HTTPException(
            status_code=400,
            detail=f"A holiday already exists on {body.holiday_date.isoformat()}",
        )
    holiday = Holiday(**body.model_dump())
    db.add(holiday)
    await db.commit()
    await db.refresh(holiday)
    logger.info("Holiday added: %s on %s", holiday.name, holiday.holiday_date.isoformat())
    return holiday


@router.delete("/{holiday_id}", response_model=DeleteResponse)
async def delete_holiday(
    holiday_id: int,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.MANAGE_HOLIDAYS)),
) -> DeleteResponse:
    holiday = await db.get(Holiday, holiday_id)
    if holiday is None:
        raise HTTPException(status_code=404, detail="Holiday not found")
    name = holiday.name
    await db.delete(holiday)
    await db.commit()
    logger.info("Holiday %d deleted", holiday_id)
    return DeleteResponse(success=True, message=f"Holiday '{name}' deleted")
