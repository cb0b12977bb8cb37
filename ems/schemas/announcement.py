"""Pydantic schemas for announcements."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, field_validator

from ems.core.permissions import Role

VALID_PRIORITIES = {"normal", "medium", "high"}
VALID_AUDIENCES = {"all"} | {r.value for r in Role}


class AnnouncementCreate(BaseModel):
    title: str
    content: str
    priority: str = "normal"
    target_audience: str = "all"
    expire_date: date | None = None

    @field_validator("title", "content")
    @classmethod
    def _required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title and content are required")
        return v

    @field_validator("title")
    @classmethod
    def _title_length(cls, v: str) -> str:
        if len(v) > 200:
            raise ValueError("Title must not exceed 200 characters")
        return v

    @field_validator("priority")
    @classmethod
    def _priority(cls, v: str) -> str:
        v = v.lower()
        if v not in VALID_PRIORITIES:
            raise ValueError(f"Priority must be one of: {sorted(VALID_PRIORITIES)}")
        return v

    @field_validator("target_audience")
    @classmethod
    def _audience(cls, v: str) -> str:
        if v not in VALID_AUDIENCES:
            raise ValueError(f"Target audience must be one of: {sorted(VALID_AUDIENCES)}")
        return v


class AnnouncementRead(BaseModel):
    id: int
    title: str
    content: str
    priority: str
    target_audience: str
    expire_date: date | None
    created_by: int | None
    created_by_name: str | None = None
    created_at: datetime | None


class AnnouncementPage(BaseModel):
    total: int
    page: int
    per_page: int
    announcements: list[AnnouncementRead]
