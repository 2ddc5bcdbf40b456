"""Schemas for Order resources."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import Field, field_validator

from villagemarket.models.order import OrderStatus
from villagemarket.schemas.base import CamelModel

MAX_ORDER_LINES = 50


class OrderItemCreate(CamelModel):
    product_id: uuid.UUID
    quantity: int = Field(..., ge=1, le=1000)


class OrderCreate(CamelModel):
    items: list[OrderItemCreate] = Field(..., min_length=1, max_length=MAX_ORDER_LINES)
    delivery_time: datetime | None = None
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("items")
    @classmethod
    def _unique_products(cls, v: list[OrderItemCreate]) -> list[OrderItemCreate]:
        ids = [item.product_id for item in v]
        if len(ids) != len(set(ids)):
            raise ValueError("Each product may appear only once per order")
        return v


class OrderItemStatusUpdate(CamelModel):
    status: OrderStatus


class OrderCustomerOut(CamelModel):
    id: uuid.UUID
    name: str
    house_number: str | None
    phone: str | None


class OrderShopOut(CamelModel):
    id: uuid.UUID
    name: str
    owner_id: uuid.UUID


class OrderItemOut(CamelModel):
    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID | None
    shop_id: uuid.UUID | None
    product_name: str
    quantity: int
    price: float
    status: OrderStatus
    shop: OrderShopOut | None = None


class OrderOut(CamelModel):
    id: uuid.UUID
    customer_id: uuid.UUID
    customer_house_number: str
    delivery_time: datetime | None
    total_amount: float
    notes: str | None
    status: OrderStatus
    customer: OrderCustomerOut
    items: list[OrderItemOut]
    created_at: datetime
    updated_at: datetime


class OrderList(CamelModel):
    total: int
    items: list[OrderOut]
