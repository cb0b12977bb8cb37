"""Pydantic schemas for User CRUD."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, field_validator

from ems.core.permissions import available_roles

_VALID_ROLES = set(available_roles())
_VALID_STATUSES = {"active", "inactive"}
_USERNAME_RE = re.compile(r"^[A-Za-z0-9._-]{3,50}$")


def _check_email(v: str) -> str:
    v = v.strip().lower()
    if "@" not in v:
        raise ValueError("Invalid email address")
    return v


class UserCreate(BaseModel):
    username: str
    email: str
    password: str
    role: str = "employee"
    status: str = "active"

    @field_validator("username")
    @classmethod
    def _username(cls, v: str) -> str:
        v = v.strip()
        if not _USERNAME_RE.match(v):
            raise ValueError("Username must be 3-50 letters, digits, '.', '_' or '-'")
        return v

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str) -> str:
        if v not in _VALID_ROLES:
            raise ValueError(f"Role must be one of: {sorted(_VALID_ROLES)}")
        return v

    @field_validator("status")
    @classmethod
    def _validate_status(cls, v: str) -> str:
        if v not in _VALID_STATUSES:
            raise ValueError(f"Status must be one of: {sorted(_VALID_STATUSES)}")
        return v


class UserRead(BaseModel):
    id: int
    username: str
    email: str
    role: str
    status: str
    last_login: datetime | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


class UserUpdate(BaseModel):
    email: str | None = None
    role: str | None = None
    status: str | None = None

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str | None) -> str | None:
        return _check_email(v) if v is not None else v

    @field_validator("role")
    @classmethod
    def _validate_role(cls, v: str | None) -> str | None:
        if v is not None and v not in _VALID_ROLES:
            raise ValueError(f"Role must be one of: {sorted(_VALID_ROLES)}")
        return v

    @field_validator("status")
    @classmethod
    def _validate_status(cls, v: str | None) -> str | None:
        if v is not None and v not in _VALID_STATUSES:
            raise ValueError(f"Status must be one of: {sorted(_VALID_STATUSES)}")
        return v


class PasswordReset(BaseModel):
    new_password: str

    @field_validator("new_password")
    @classmethod
    def _password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v
