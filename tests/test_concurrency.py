"""Concurrent writes against a file-backed SQLite database.

The shared in-memory engine funnels every session through one connection,
so these tests swap in a file database where each session gets its own.
"""

from __future__ import annotations

import asyncio

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import create_async_engine

from villagemarket.models.base import Base
from villagemarket.models.product import Product
from villagemarket.models.user import User, UserRole


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'market.db'}",
        connect_args={"timeout": 30},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.mark.asyncio
async def test_simultaneous_registrations_for_one_house(client, session_factory):
    first = {"name": "Somchai", "username": "12/3", "password": "secret1", "houseNumber": "12/3"}
    second = {**first, "name": "Somsak"}

    responses = await asyncio.gather(
        client.post("/api/auth/register", json=first),
        client.post("/api/auth/register", json=second),
    )

    assert sorted(r.status_code for r in responses) == [200, 400]
    loser = next(r for r in responses if r.status_code == 400)
    assert "already exists" in loser.json()["error"]
    async with session_factory() as s:
        count = (await s.execute(select(func.count()).select_from(User))).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_simultaneous_orders_cannot_oversell(
    client, session_factory, make_user, make_shop, auth_headers
):
    vendor = await make_user(role=UserRole.VENDOR)
    shop = await make_shop(vendor)
    async with session_factory() as s:
        product = Product(shop_id=shop.id, name="Durian", price=120, stock=1)
        s.add(product)
        await s.commit()

    buyers = [await make_user(), await make_user()]
    body = {"items": [{"productId": str(product.id), "quantity": 1}]}
    responses = await asyncio.gather(
        *(client.post("/api/orders", json=body, headers=auth_headers(b)) for b in buyers)
    )

    assert sorted(r.status_code for r in responses) == [200, 400]
    async with session_factory() as s:
        stock = (
            await s.execute(select(Product.stock).where(Product.id == product.id))
        ).scalar_one()
    assert stock == 0
