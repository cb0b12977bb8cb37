"""Pydantic schemas for login, the session identity and its permissions."""

from __future__ import annotations

from pydantic import BaseModel, field_validator


class LoginRequest(BaseModel):
    username: str
    password: str

    @field_validator("username")
    @classmethod
    def _strip(cls, v: str) -> str:
        return v.strip()


class CurrentUserRead(BaseModel):
    user_id: int
    username: str
    email: str
    role: str
    role_display: str
    employee_id: int | None
    full_name: str
    csrf_token: str


class PermissionsRead(BaseModel):
    role: str
    permissions: dict[str, bool]


class LogoutResponse(BaseModel):
    success: bool = True
    message: str


class DashboardResponse(BaseModel):
    user: CurrentUserRead
    permissions: list[str]
    analytics: dict[str, int] | None = None
