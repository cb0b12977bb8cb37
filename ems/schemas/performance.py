"""Pydantic schemas for performance reviews."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field, model_validator


class PerformanceReviewCreate(BaseModel):
    employee_id: int
    review_date: date
    review_period_start: date
    review_period_end: date
    rating: int = Field(ge=1, le=5)
    strengths: str | None = None
    areas_for_improvement: str | None = None
    goals: str | None = None
    comments: str | None = None

    @model_validator(mode="after")
    def _period(self) -> "PerformanceReviewCreate":
        if self.review_period_end < self.review_period_start:
            raise ValueError("review_period_end must not be before review_period_start")
        return self


class PerformanceReviewUpdate(BaseModel):
    """Only the assessment can change; who, when and the period are fixed."""

    rating: int | None = Field(default=None, ge=1, le=5)
    strengths: str | None = None
    areas_for_improvement: str | None = None
    goals: str | None = None
    comments: str | None = None


class PerformanceReviewRead(BaseModel):
    id: int
    employee_id: int
    employee_code: str | None = None
    name: str | None = None
    position: str | None = None
    department_name: str | None = None
    reviewer_id: int | None
    reviewer_name: str | None = None
    review_date: date
    review_period_start: date
    review_period_end: date
    rating: int
    strengths: str | None
    areas_for_improvement: str | None
    goals: str | None
    comments: str | None
