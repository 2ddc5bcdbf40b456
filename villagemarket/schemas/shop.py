"""Schemas for Shop resources."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import Field

from villagemarket.schemas.base import CamelModel


class ShopOwnerOut(CamelModel):
    id: uuid.UUID
    name: str
    house_number: str | None = None


class ShopCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    house_number: str = Field(..., min_length=1, max_length=20)
    logo_url: str | None = Field(default=None, max_length=1000, pattern=r"^https?://")
    is_active: bool = True


class ShopUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    house_number: str | None = Field(default=None, min_length=1, max_length=20)
    logo_url: str | None = Field(default=None, max_length=1000, pattern=r"^https?://")
    is_active: bool | None = None


class ShopOut(CamelModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    name: str
    description: str | None
    house_number: str
    logo_url: str | None
    is_active: bool
    owner: ShopOwnerOut
    created_at: datetime
    updated_at: datetime


class ShopList(CamelModel):
    total: int
    items: list[ShopOut]
