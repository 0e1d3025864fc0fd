"""Typed schemas for user IO."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserCreateRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    full_name: Optional[str] = Field(default=None, max_length=255)
    timezone: Optional[str] = Field(default=None, max_length=64)


class UserResponse(BaseModel):
    # Response should not re-validate persisted emails (demo domains, etc.)
    id: int
    email: str
    full_name: Optional[str] = None
    timezone: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
