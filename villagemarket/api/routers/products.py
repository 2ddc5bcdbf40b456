"""Products API router."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Query
from sqlalchemy import func, or_, select
from sqlalchemy.orm import selectinload

from villagemarket.api.dependencies import ContextDep, DbDep, VendorDep
from villagemarket.core.errors import NotFoundError
from villagemarket.core.logging import get_logger
from villagemarket.core.permissions import VENDOR_ROLES, AuthContext, authorize, enforce
from villagemarket.models.product import Product
from villagemarket.models.shop import Shop
from villagemarket.schemas.product import ProductCreate, ProductList, ProductOut, ProductUpdate

router = APIRouter(prefix="/products", tags=["products"])
logger = get_logger(__name__)

_PRODUCT_OPTIONS = [selectinload(Product.shop).selectinload(Shop.owner)]


async def _load_product(db, product_id: uuid.UUID) -> Product:
    result = await db.execute(
        select(Product)
        .where(Product.id == product_id)
        .options(*_PRODUCT_OPTIONS)
        .execution_options(populate_existing=True)
    )
    product = result.scalar_one_or_none()
    if not product:
        raise NotFoundError("Product not found")
    return product


async def _owned_shop(db, context: AuthContext, shop_id: uuid.UUID, message: str) -> Shop:
    """Load *shop_id* and check the caller may put products in it."""
    shop = (await db.execute(select(Shop).where(Shop.id == shop_id))).scalar_one_or_none()
    if not shop:
        raise NotFoundError("Shop not found")
    enforce(authorize(context, VENDOR_ROLES, resource_owner_id=shop.owner_id), owner_message=message)
    return shop


@router.get("", response_model=ProductList)
async def list_products(
    db: DbDep,
    shop_id: uuid.UUID | None = Query(None, alias="shopId"),
    category: str | None = Query(None),
    search: str | None = Query(None),
    available: bool = Query(False),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
) -> ProductList:
    filters = []
    if shop_id is not None:
        filters.append(Product.shop_id == shop_id)
    if category:
        filters.append(Product.category.ilike(f"%{category}%"))
    if search:
        pattern = f"%{search}%"
        filters.append(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
    if available:
        filters.append(Product.is_available.is_(True))
        filters.append(Product.stock > 0)

    total = (
        await db.execute(select(func.count()).select_from(Product).where(*filters))
    ).scalar_one()
    result = await db.execute(
        select(Product)
        .where(*filters)
        .options(*_PRODUCT_OPTIONS)
        .order_by(Product.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return ProductList(total=total, items=list(result.scalars().all()))


@router.get("/{product_id}", response_model=ProductOut)
async def get_product(product_id: uuid.UUID, db: DbDep) -> Product:
    """Public product page: hidden unless the product, its shop and the shop owner are all live."""
    product = await _load_product(db, product_id)
    if not (product.is_available and product.shop.is_active and product.shop.owner.is_active):
        raise NotFoundError("Product not available")
    return product


@router.post("", response_model=ProductOut)
async def create_product(payload: ProductCreate, db: DbDep, context: VendorDep) -> Product:
    await _owned_shop(db, context, payload.shop_id, "You do not own this shop")
    product = Product(**payload.model_dump())
    db.add(product)
    await db.flush()
    logger.info("Product created", product_id=str(product.id), shop_id=str(payload.shop_id))
    return await _load_product(db, product.id)


@router.put("/{product_id}", response_model=ProductOut)
async def update_product(
    product_id: uuid.UUID, payload: ProductUpdate, db: DbDep, context: ContextDep
) -> Product:
    product = await _load_product(db, product_id)
    enforce(
        authorize(context, VENDOR_ROLES, resource_owner_id=product.shop.owner_id),
        owner_message="You can only edit products from your own shops",
    )

    data = payload.model_dump(exclude_unset=True)
    new_shop_id = data.get("shop_id")
    if new_shop_id is not None and new_shop_id != product.shop_id:
        await _owned_shop(
            db, context, new_shop_id, "You can only assign products to your own shops"
        )

    for field, value in data.items():
        if value is None and field not in ("description", "category"):
            continue
        setattr(product, field, value)

    await db.flush()
    logger.info("Product updated", product_id=str(product_id), by=str(context.user_id))
    return await _load_product(db, product_id)


@router.delete("/{product_id}")
async def delete_product(
    product_id: uuid.UUID, db: DbDep, context: ContextDep
) -> dict[str, bool]:
    product = await _load_product(db, product_id)
    enforce(
        authorize(context, VENDOR_ROLES, resource_owner_id=product.shop.owner_id),
        owner_message="You can only delete products from your own shops",
    )
    await db.delete(product)
    logger.info("Product deleted", product_id=str(product_id), by=str(context.user_id))
    return {"success": True}
