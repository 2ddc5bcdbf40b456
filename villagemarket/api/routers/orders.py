"""Orders API router.

Customers place and cancel their own orders. Each order line belongs to one
shop, and that shop's owner moves the line through its statuses. The order
status follows its lines.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Literal
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Query
from sqlalchemy import func, select, update
from sqlalchemy.orm import selectinload

from villagemarket.api.dependencies import ContextDep, CurrentDep, DbDep
from villagemarket.core import accounts
from villagemarket.core.config import get_settings
from villagemarket.core.errors import AuthorizationError, NotFoundError, ValidationError
from villagemarket.core.logging import get_logger
from villagemarket.core.permissions import (
    ADMIN_ROLES,
    ANY_ROLE,
    NOT_OWNER,
    VENDOR_ROLES,
    AuthContext,
    authorize,
    enforce,
)
from villagemarket.models.order import FINAL_STATUSES, Order, OrderItem, OrderStatus
from villagemarket.models.product import Product
from villagemarket.models.shop import Shop
from villagemarket.schemas.order import (
    OrderCreate,
    OrderItemOut,
    OrderItemStatusUpdate,
    OrderList,
    OrderOut,
)

router = APIRouter(prefix="/orders", tags=["orders"])
logger = get_logger(__name__)

_ORDER_OPTIONS = [
    selectinload(Order.customer),
    selectinload(Order.items).selectinload(OrderItem.shop),
]
_FINAL = {s.value for s in FINAL_STATUSES}


async def _load_order(db, order_id: uuid.UUID) -> Order:
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .options(*_ORDER_OPTIONS)
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if not order:
        raise NotFoundError("Order not found")
    return order


async def _load_item(db, order_id: uuid.UUID, item_id: uuid.UUID) -> OrderItem:
    result = await db.execute(
        select(OrderItem)
        .where(OrderItem.id == item_id, OrderItem.order_id == order_id)
        .options(
            selectinload(OrderItem.shop),
            selectinload(OrderItem.order).selectinload(Order.items),
        )
        .execution_options(populate_existing=True)
    )
    item = result.scalar_one_or_none()
    if not item:
        raise NotFoundError("Order item not found")
    return item


def _check_delivery_time(when: datetime) -> datetime:
    """Validate a requested delivery slot and return it in UTC.

    A naive value is read as market-local time.
    """
    settings = get_settings()
    tz = ZoneInfo(settings.market_timezone)
    if when.tzinfo is None:
        when = when.replace(tzinfo=tz)

    earliest = datetime.now(timezone.utc) + timedelta(hours=settings.delivery_lead_hours)
    if when < earliest:
        raise ValidationError(
            f"Delivery time must be at least {settings.delivery_lead_hours} hours from now"
        )
    hour = when.astimezone(tz).hour
    if not settings.delivery_open_hour <= hour < settings.delivery_close_hour:
        raise ValidationError(
            f"Delivery time must be between {settings.delivery_open_hour}:00 "
            f"and {settings.delivery_close_hour}:00"
        )
    return when.astimezone(timezone.utc)


async def _restock(db, item: OrderItem) -> None:
    if item.product_id is None:
        return
    await db.execute(
        update(Product)
        .where(Product.id == item.product_id)
        .values(stock=Product.stock + item.quantity)
    )


def _enforce_item_owner(context: AuthContext, item: OrderItem) -> None:
    """Only the owner of the line's shop, or an admin, may act on it."""
    if item.shop is None:
        # Shop deleted since checkout
        enforce(authorize(context, ADMIN_ROLES))
        return
    enforce(
        authorize(context, VENDOR_ROLES, resource_owner_id=item.shop.owner_id),
        owner_message="You do not own this shop",
    )


def _roll_up(order: Order, changed: OrderStatus) -> None:
    statuses = {i.status for i in order.items}
    if statuses == {OrderStatus.CANCELLED.value}:
        order.status = OrderStatus.CANCELLED.value
    elif statuses <= _FINAL:
        order.status = OrderStatus.DELIVERED.value
    elif changed == OrderStatus.CONFIRMED and order.status == OrderStatus.PENDING.value:
        order.status = OrderStatus.CONFIRMED.value


@router.get("", response_model=OrderList)
async def list_orders(
    db: DbDep,
    context: CurrentDep,
    scope: Literal["mine", "shop", "all"] = Query("mine"),
    status: OrderStatus | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
) -> OrderList:
    """``mine``: the caller's orders. ``shop``: orders touching the caller's shops. ``all``: admin."""
    if scope == "mine":
        filters = [Order.customer_id == context.user_id]
    elif scope == "shop":
        enforce(authorize(context, VENDOR_ROLES))
        own_lines = (
            select(OrderItem.order_id)
            .join(Shop, OrderItem.shop_id == Shop.id)
            .where(Shop.owner_id == context.user_id)
        )
        filters = [Order.id.in_(own_lines)]
    else:
        enforce(authorize(context, ADMIN_ROLES))
        filters = []
    if status is not None:
        filters.append(Order.status == status.value)

    total = (
        await db.execute(select(func.count()).select_from(Order).where(*filters))
    ).scalar_one()
    result = await db.execute(
        select(Order)
        .where(*filters)
        .options(*_ORDER_OPTIONS)
        .order_by(Order.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return OrderList(total=total, items=list(result.scalars().all()))


@router.post("", response_model=OrderOut)
async def create_order(payload: OrderCreate, db: DbDep, context: ContextDep) -> Order:
    """Place an order: prices are taken from the catalogue and stock is reserved."""
    enforce(authorize(context, ANY_ROLE))
    customer = await accounts.get_user(db, context.user_id)
    if customer is None or not customer.house_number:
        raise ValidationError("A house number is required to place an order")

    delivery_time = None
    if payload.delivery_time is not None:
        delivery_time = _check_delivery_time(payload.delivery_time)

    ids = [line.product_id for line in payload.items]
    result = await db.execute(
        select(Product)
        .where(Product.id.in_(ids))
        .options(selectinload(Product.shop).selectinload(Shop.owner))
    )
    products = {p.id: p for p in result.scalars().all()}

    order = Order(
        customer_id=customer.id,
        customer_house_number=customer.house_number,
        delivery_time=delivery_time,
        notes=payload.notes,
        status=OrderStatus.PENDING.value,
        total_amount=0,
    )
    total = 0.0
    for line in payload.items:
        product = products.get(line.product_id)
        if product is None:
            raise NotFoundError(f"Product {line.product_id} not found")
        if not (product.is_available and product.shop.is_active and product.shop.owner.is_active):
            raise ValidationError(f"Product {product.name} is not available")

        # Conditional decrement: two orders cannot both take the last units
        reserved = await db.execute(
            update(Product)
            .where(Product.id == product.id, Product.stock >= line.quantity)
            .values(stock=Product.stock - line.quantity)
        )
        if reserved.rowcount != 1:
            raise ValidationError(f"Insufficient stock for {product.name}")

        order.items.append(
            OrderItem(
                product_id=product.id,
                shop_id=product.shop_id,
                product_name=product.name,
                quantity=line.quantity,
                price=product.price,
                status=OrderStatus.PENDING.value,
            )
        )
        total += product.price * line.quantity

    order.total_amount = round(total, 2)
    db.add(order)
    await db.flush()
    logger.info(
        "Order placed",
        order_id=str(order.id),
        customer_id=str(customer.id),
        lines=len(order.items),
        total=order.total_amount,
    )
    return await _load_order(db, order.id)


@router.get("/{order_id}", response_model=OrderOut)
async def get_order(order_id: uuid.UUID, db: DbDep, context: CurrentDep) -> Order:
    """Visible to its customer, to owners of shops on it, and to admins."""
    order = await _load_order(db, order_id)
    if authorize(context, resource_owner_id=order.customer_id):
        return order
    shop_owners = {item.shop.owner_id for item in order.items if item.shop is not None}
    if context.user_id in shop_owners:
        enforce(authorize(context, VENDOR_ROLES))
        return order
    raise AuthorizationError("You can only view your own orders", reason=NOT_OWNER)


@router.post("/{order_id}/cancel", response_model=OrderOut)
async def cancel_order(order_id: uuid.UUID, db: DbDep, context: CurrentDep) -> Order:
    order = await _load_order(db, order_id)
    enforce(
        authorize(context, resource_owner_id=order.customer_id),
        owner_message="You can only cancel your own orders",
    )
    if order.status != OrderStatus.PENDING.value:
        raise ValidationError("Only pending orders can be cancelled")

    for item in order.items:
        if item.status != OrderStatus.CANCELLED.value:
            await _restock(db, item)
        item.status = OrderStatus.CANCELLED.value
    order.status = OrderStatus.CANCELLED.value
    await db.flush()
    logger.info("Order cancelled", order_id=str(order_id), by=str(context.user_id))
    return await _load_order(db, order_id)


@router.get("/{order_id}/items/{item_id}", response_model=OrderItemOut)
async def get_order_item(
    order_id: uuid.UUID, item_id: uuid.UUID, db: DbDep, context: CurrentDep
) -> OrderItem:
    item = await _load_item(db, order_id, item_id)
    if not authorize(context, resource_owner_id=item.order.customer_id):
        _enforce_item_owner(context, item)
    return item


@router.patch("/{order_id}/items/{item_id}", response_model=OrderItemOut)
async def update_order_item(
    order_id: uuid.UUID,
    item_id: uuid.UUID,
    payload: OrderItemStatusUpdate,
    db: DbDep,
    context: ContextDep,
) -> OrderItem:
    """Move one line to a new status; a cancelled line returns its stock."""
    item = await _load_item(db, order_id, item_id)
    _enforce_item_owner(context, item)

    if item.order.status == OrderStatus.CANCELLED.value:
        raise ValidationError("Order has been cancelled")
    if item.status == OrderStatus.CANCELLED.value and payload.status != OrderStatus.CANCELLED:
        raise ValidationError("Cancelled items cannot be reopened")

    if payload.status == OrderStatus.CANCELLED and item.status != OrderStatus.CANCELLED.value:
        await _restock(db, item)
    item.status = payload.status.value
    _roll_up(item.order, payload.status)
    await db.flush()
    logger.info(
        "Order item updated",
        order_id=str(order_id),
        item_id=str(item_id),
        status=item.status,
        order_status=item.order.status,
        by=str(context.user_id),
    )
    return await _load_item(db, order_id, item_id)
