"""Admin user-management API tests."""

from __future__ import annotations

import pytest

from villagemarket.models.user import UserRole


@pytest.mark.asyncio
async def test_admin_routes_require_admin(client, make_user, auth_headers):
    assert (await client.get("/api/admin/users")).status_code == 401

    vendor = await make_user(role=UserRole.VENDOR)
    r = await client.get("/api/admin/users", headers=auth_headers(vendor))
    assert r.status_code == 403
    assert r.json()["error"] == "Insufficient role for this action"


@pytest.mark.asyncio
async def test_list_and_filter(client, make_user, auth_headers):
    admin = await make_user(role=UserRole.ADMIN)
    await make_user(role=UserRole.VENDOR)
    await make_user(role=UserRole.VENDOR, active=False)
    await make_user()

    r = await client.get("/api/admin/users", headers=auth_headers(admin))
    assert r.status_code == 200
    assert r.json()["total"] == 4

    r = await client.get(
        "/api/admin/users", params={"role": "VENDOR"}, headers=auth_headers(admin)
    )
    assert r.json()["total"] == 2
    assert all(u["role"] == "VENDOR" for u in r.json()["items"])

    r = await client.get(
        "/api/admin/users",
        params={"role": "VENDOR", "active": "true"},
        headers=auth_headers(admin),
    )
    assert r.json()["total"] == 1


@pytest.mark.asyncio
async def test_create_get_and_patch(client, make_user, auth_headers):
    admin = await make_user(role=UserRole.ADMIN)
    headers = auth_headers(admin)

    r = await client.post(
        "/api/admin/users",
        json={
            "name": "Malee",
            "username": "30/2",
            "houseNumber": "30/2",
            "password": "secret1",
            "role": "VENDOR",
        },
        headers=headers,
    )
    assert r.status_code == 201
    created = r.json()
    assert created["role"] == "VENDOR"
    assert created["isActive"] is True
    assert "passwordHash" not in created

    r = await client.get(f"/api/admin/users/{created['id']}", headers=headers)
    assert r.status_code == 200
    assert r.json()["username"] == "30/2"

    r = await client.patch(
        f"/api/admin/users/{created['id']}",
        json={"phone": "0899999999", "role": "CUSTOMER"},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["phone"] == "0899999999"
    assert r.json()["role"] == "CUSTOMER"


@pytest.mark.asyncio
async def test_patch_password_allows_login(client, make_user, auth_headers):
    admin = await make_user(role=UserRole.ADMIN)
    user = await make_user(house_number="8/8")
    r = await client.patch(
        f"/api/admin/users/{user.id}", json={"password": "n3w-pass"}, headers=auth_headers(admin)
    )
    assert r.status_code == 200

    login = await client.post("/api/auth/login", json={"username": "8/8", "password": "n3w-pass"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_create_duplicate_username(client, make_user, auth_headers):
    admin = await make_user(role=UserRole.ADMIN)
    await make_user(house_number="9/9")
    r = await client.post(
        "/api/admin/users",
        json={"name": "Dup", "username": "9/9", "houseNumber": "9/9", "password": "secret1"},
        headers=auth_headers(admin),
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_get_unknown_user(client, make_user, auth_headers):
    admin = await make_user(role=UserRole.ADMIN)
    r = await client.get(
        "/api/admin/users/00000000-0000-0000-0000-000000000000", headers=auth_headers(admin)
    )
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_delete_deactivates_vendor_and_shops(client, make_user, make_shop, auth_headers):
    admin = await make_user(role=UserRole.ADMIN)
    vendor = await make_user(role=UserRole.VENDOR)
    await make_shop(vendor, name="Noodles")
    await make_shop(vendor, name="Coffee")

    r = await client.delete(f"/api/admin/users/{vendor.id}", headers=auth_headers(admin))
    assert r.status_code == 200
    body = r.json()
    assert body["user"]["isActive"] is False
    assert body["shopsDeactivated"] == 2

    shops = await client.get("/api/shops")
    assert shops.json()["total"] == 0

    # The vendor's still-valid token no longer opens anything
    r = await client.get("/api/auth/me", headers=auth_headers(vendor))
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_cannot_delete_admin(client, make_user, auth_headers):
    admin = await make_user(role=UserRole.ADMIN)
    other = await make_user(role=UserRole.ADMIN)
    r = await client.delete(f"/api/admin/users/{other.id}", headers=auth_headers(admin))
    assert r.status_code == 400
    assert r.json()["error"] == "Cannot delete admin users"


@pytest.mark.asyncio
async def test_cannot_deactivate_self(client, make_user, auth_headers):
    admin = await make_user(role=UserRole.ADMIN)
    r = await client.patch(
        f"/api/admin/users/{admin.id}", json={"isActive": False}, headers=auth_headers(admin)
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_reactivate_restores_shops(client, make_user, make_shop, auth_headers):
    admin = await make_user(role=UserRole.ADMIN)
    vendor = await make_user(role=UserRole.VENDOR)
    await make_shop(vendor)
    headers = auth_headers(admin)

    await client.delete(f"/api/admin/users/{vendor.id}", headers=headers)
    r = await client.patch(
        f"/api/admin/users/{vendor.id}", json={"isActive": True}, headers=headers
    )
    assert r.status_code == 200
    assert r.json()["isActive"] is True
    assert (await client.get("/api/shops")).json()["total"] == 1


@pytest.mark.asyncio
async def test_demote_and_deactivate_in_one_patch_closes_shops(
    client, make_user, make_shop, auth_headers
):
    admin = await make_user(role=UserRole.ADMIN)
    vendor = await make_user(role=UserRole.VENDOR)
    await make_shop(vendor)

    r = await client.patch(
        f"/api/admin/users/{vendor.id}",
        json={"role": "CUSTOMER", "isActive": False},
        headers=auth_headers(admin),
    )
    assert r.status_code == 200
    assert r.json()["role"] == "CUSTOMER"
    assert r.json()["isActive"] is False
    assert (await client.get("/api/shops")).json()["total"] == 0


@pytest.mark.asyncio
async def test_role_change_applies_to_existing_token(client, make_user, auth_headers):
    admin = await make_user(role=UserRole.ADMIN)
    vendor = await make_user(role=UserRole.VENDOR)
    vendor_headers = auth_headers(vendor)
    other_admin = await make_user(role=UserRole.ADMIN)
    other_headers = auth_headers(other_admin)

    await client.patch(
        f"/api/admin/users/{vendor.id}", json={"role": "CUSTOMER"}, headers=auth_headers(admin)
    )
    shop = {"name": "Noodles", "houseNumber": vendor.house_number}
    r = await client.post("/api/shops", json=shop, headers=vendor_headers)
    assert r.status_code == 403

    await client.patch(
        f"/api/admin/users/{other_admin.id}", json={"role": "VENDOR"}, headers=auth_headers(admin)
    )
    r = await client.get("/api/admin/users", headers=other_headers)
    assert r.status_code == 403
