"""Schemas for Product resources."""

from __future__ import annotations

import uuid
from datetime import datetime
from urllib.parse import urlparse

from pydantic import Field, field_validator

from villagemarket.schemas.base import CamelModel

MAX_IMAGES = 5


def _check_image_urls(urls: list[str] | None) -> list[str] | None:
    if urls is None:
        return urls
    for url in urls:
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid image URL: {url!r}")
    return urls


class ProductShopOut(CamelModel):
    id: uuid.UUID
    name: str
    owner_id: uuid.UUID
    is_active: bool


class ProductCreate(CamelModel):
    shop_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    price: float = Field(..., ge=0.01)
    stock: int = Field(..., ge=0)
    category: str | None = Field(default=None, max_length=100)
    image_urls: list[str] = Field(default_factory=list, max_length=MAX_IMAGES)
    is_available: bool = True

    @field_validator("image_urls")
    @classmethod
    def _validate_image_urls(cls, v: list[str]) -> list[str]:
        return _check_image_urls(v)


class ProductUpdate(CamelModel):
    shop_id: uuid.UUID | None = None
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    price: float | None = Field(default=None, ge=0.01)
    stock: int | None = Field(default=None, ge=0)
    category: str | None = Field(default=None, max_length=100)
    image_urls: list[str] | None = Field(default=None, max_length=MAX_IMAGES)
    is_available: bool | None = None

    @field_validator("image_urls")
    @classmethod
    def _validate_image_urls(cls, v: list[str] | None) -> list[str] | None:
        return _check_image_urls(v)


class ProductOut(CamelModel):
    id: uuid.UUID
    shop_id: uuid.UUID
    name: str
    description: str | None
    price: float
    stock: int
    category: str | None
    image_urls: list[str]
    is_available: bool
    shop: ProductShopOut
    created_at: datetime
    updated_at: datetime


class ProductList(CamelModel):
    total: int
    items: list[ProductOut]
