"""Schemas for User resources (self view and admin management)."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import Field

from villagemarket.models.user import UserRole
from villagemarket.schemas.base import CamelModel


class UserSummary(CamelModel):
    """What a user sees about themselves (and what the session token carries)."""

    id: uuid.UUID
    name: str
    username: str | None = None
    house_number: str | None = None
    role: UserRole
    phone: str | None = None
    address: str | None = None
    email: str | None = None
    image: str | None = None
    profile_complete: bool = False


class UserOut(UserSummary):
    external_id: str | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class UserList(CamelModel):
    total: int
    items: list[UserOut]


class AdminUserCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    username: str = Field(..., min_length=3, max_length=100)
    house_number: str = Field(..., min_length=1, max_length=20)
    password: str = Field(..., min_length=6)
    phone: str | None = Field(default=None, max_length=30)
    address: str | None = None
    email: str | None = Field(default=None, max_length=255)
    role: UserRole = UserRole.CUSTOMER


class AdminUserUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    username: str | None = Field(default=None, min_length=3, max_length=100)
    house_number: str | None = Field(default=None, min_length=1, max_length=20)
    phone: str | None = Field(default=None, max_length=30)
    address: str | None = None
    role: UserRole | None = None
    is_active: bool | None = None
    password: str | None = Field(default=None, min_length=6)


class DeactivationOut(CamelModel):
    message: str
    user: UserOut
    shops_deactivated: int = 0
