"""
Performance reviews.

Reading needs ``view_performance``.  Writing a review needs
``create_performance``; changing or removing one needs ``edit_performance``.
The reviewer is always the signed-in user.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ems.api.v1.deps import get_db, permission_required
from ems.api.v1.endpoints.employees import like_pattern
from ems.core.permissions import Permission as P
from ems.core.session_store import CurrentUser
from ems.models.employee import Department, Employee
from ems.models.performance import PerformanceReview
from ems.models.user import User
from ems.schemas.common import DeleteResponse
from ems.schemas.performance import (PerformanceReviewCreate,
                                     PerformanceReviewRead,
                                     PerformanceReviewUpdate)

router = APIRouter(prefix="/performance", tags=["performance"])
logger = logging.getLogger(__name__)


def _review_query():
    return (
        select(PerformanceReview, Employee, Department.name, User.username)
        .join(Employee, PerformanceReview.employee_id == Employee.id)
        .outerjoin(Department, Employee.department_id == Department.id)
        .outerjoin(User, PerformanceReview.reviewer_id == User.id)
    )


def _to_read(
    review: PerformanceReview,
    emp: Employee,
    department_name: str | None,
    reviewer: str | None,
) -> PerformanceReviewRead:
    return PerformanceReviewRead(
        id=review.id,
        employee_id=review.employee_id,
        employee_code=emp.employee_code,
        name=emp.full_name,
        position=emp.position,
        department_name=department_name,
        reviewer_id=review.reviewer_id,
        reviewer_name=reviewer,
        review_date=review.review_date,
        review_period_start=review.review_period_start,
        review_period_end=review.review_period_end,
        rating=review.rating,
        strengths=review.strengths,
        areas_for_improvement=review.areas_for_improvement,
        goals=review.goals,
        comments=review.comments,
    )


async def _load(db: AsyncSession, review_id: int) -> PerformanceReviewRead:
    row = (await db.execute(_review_query().where(PerformanceReview.id == review_id))).first()
    if row is None:
        raise HTTPException(status_code=404, detail="Performance review not found")
    return _to_read(*row)


def _clean(text: str | None) -> str | None:
    if text is None:
        return None
    return text.strip() or None


@router.get("", response_model=list[PerformanceReviewRead])
async def list_reviews(
    search: str | None = None,
    department_id: int | None = None,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.VIEW_PERFORMANCE)),
) -> list[PerformanceReviewRead]:
    query = _review_query()
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
    query = query.order_by(PerformanceReview.review_date.desc(), PerformanceReview.id.desc())

    result = await db.execute(query)
    return [_to_read(*row) for row in result.all()]


@router.post("", response_model=PerformanceReviewRead, status_code=201)
async def create_review(
    body: PerformanceReviewCreate,
    db: AsyncSession = Depends(get_db),
    user: CurrentUser = Depends(permission_required(P.CREATE_PERFORMANCE)),
) -> PerformanceReviewRead:
    if await db.get(Employee, body.employee_id) is None:
        raise HTTPException(status_code=404, detail="Employee not found")

    review = PerformanceReview(
        employee_id=body.employee_id,
        reviewer_id=user.user_id,
        review_date=body.review_date,
        review_period_start=body.review_period_start,
        review_period_end=body.review_period_end,
        rating=body.rating,
        strengths=_clean(body.strengths),
        areas_for_improvement=_clean(body.areas_for_improvement),
        goals=_clean(body.goals),
        comments=_clean(body.comments),
    )
    db.add(review)
    await db.commit()
    logger.info("Review for employee %d by %s: %d/5", body.employee_id, user.username, body.rating)
    return await _load(db, review.id)


@router.put("/{review_id}", response_model=PerformanceReviewRead)
async def update_review(
    review_id: int,
    body: PerformanceReviewUpdate,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.EDIT_PERFORMANCE)),
) -> PerformanceReviewRead:
    review = await db.get(PerformanceReview, review_id)
    if review is None:
        raise HTTPException(status_code=404, detail="Performance review not found")

    for field, value in body.model_dump(exclude_unset=True).items():
        if field == "rating":
            if value is None:
                raise HTTPException(status_code=400, detail="Rating must not be empty")
        else:
            value = _clean(value)
        setattr(review, field, value)

    await db.commit()
    logger.info("Updated review %d", review_id)
    return await _load(db, review_id)


@router.delete("/{review_id}", response_model=DeleteResponse)
async def delete_review(
    review_id: int,
    db: AsyncSession = Depends(get_db),
    _user: CurrentUser = Depends(permission_required(P.EDIT_PERFORMANCE)),
) -> DeleteResponse:
    review = await db.get(PerformanceReview, review_id)
    if review is None:
        raise HTTPException(status_code=404, detail="Performance review not found")
    await db.delete(review)
    await db.commit()
    logger.info("Deleted review %d", review_id)
    return DeleteResponse(success=True, message="Performance review deleted")
