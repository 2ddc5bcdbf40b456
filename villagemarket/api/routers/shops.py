"""Shops API router."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Query
from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from villagemarket.api.dependencies import ContextDep, DbDep, VendorDep
from villagemarket.core.accounts import flush_unique
from villagemarket.core.errors import NotFoundError, ValidationError
from villagemarket.core.logging import get_logger
from villagemarket.core.permissions import VENDOR_ROLES, authorize, enforce
from villagemarket.models.shop import Shop
from villagemarket.schemas.shop import ShopCreate, ShopList, ShopOut, ShopUpdate

router = APIRouter(prefix="/shops", tags=["shops"])
logger = get_logger(__name__)

_SHOP_OPTIONS = [selectinload(Shop.owner)]
_DUPLICATE_NAME = "You already have a shop with this name"


async def _load_shop(db, shop_id: uuid.UUID) -> Shop:
    result = await db.execute(
        select(Shop)
        .where(Shop.id == shop_id)
        .options(*_SHOP_OPTIONS)
        .execution_options(populate_existing=True)
    )
    shop = result.scalar_one_or_none()
    if not shop:
        raise NotFoundError("Shop not found")
    return shop


@router.get("", response_model=ShopList)
async def list_shops(
    db: DbDep,
    context: ContextDep,
    owner_id: str | None = Query(None, alias="ownerId"),
) -> ShopList:
    """All active shops, or one owner's shops (``ownerId=current`` for the caller's own)."""
    query = select(Shop).options(*_SHOP_OPTIONS)
    count_query = select(func.count()).select_from(Shop)

    if owner_id is None:
        query = query.where(Shop.is_active.is_(True))
        count_query = count_query.where(Shop.is_active.is_(True))
    else:
        if owner_id == "current":
            enforce(authorize(context))
            owner = context.user_id
        else:
            try:
                owner = uuid.UUID(owner_id)
            except ValueError:
                raise ValidationError(f"Invalid ownerId: {owner_id!r}")
        query = query.where(Shop.owner_id == owner)
        count_query = count_query.where(Shop.owner_id == owner)

    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(query.order_by(Shop.created_at.desc()))
    return ShopList(total=total, items=list(result.scalars().all()))


@router.get("/{shop_id}", response_model=ShopOut)
async def get_shop(shop_id: uuid.UUID, db: DbDep) -> Shop:
    return await _load_shop(db, shop_id)


@router.post("", response_model=ShopOut)
async def create_shop(payload: ShopCreate, db: DbDep, context: VendorDep) -> Shop:
    shop = Shop(owner_id=context.user_id, **payload.model_dump())
    db.add(shop)
    await flush_unique(db, _DUPLICATE_NAME)
    logger.info("Shop created", shop_id=str(shop.id), owner_id=str(context.user_id))
    return await _load_shop(db, shop.id)


@router.put("/{shop_id}", response_model=ShopOut)
async def update_shop(
    shop_id: uuid.UUID, payload: ShopUpdate, db: DbDep, context: ContextDep
) -> Shop:
    shop = await _load_shop(db, shop_id)
    enforce(
        authorize(context, VENDOR_ROLES, resource_owner_id=shop.owner_id),
        owner_message="You can only edit your own shops",
    )

    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field not in ("description", "logo_url"):
            continue
        setattr(shop, field, value)

    await flush_unique(db, _DUPLICATE_NAME)
    logger.info("Shop updated", shop_id=str(shop_id), by=str(context.user_id))
    return await _load_shop(db, shop_id)


@router.delete("/{shop_id}")
async def delete_shop(shop_id: uuid.UUID, db: DbDep, context: ContextDep) -> dict[str, bool]:
    shop = await _load_shop(db, shop_id)
    enforce(
        authorize(context, VENDOR_ROLES, resource_owner_id=shop.owner_id),
        owner_message="You can only delete your own shops",
    )
    await db.delete(shop)
    logger.info("Shop deleted", shop_id=str(shop_id), by=str(context.user_id))
    return {"success": True}
