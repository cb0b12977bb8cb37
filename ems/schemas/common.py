"""Shared response envelopes."""

from __future__ import annotations

from pydantic import BaseModel


class DeleteResponse(BaseModel):
    success: bool
    message: str
