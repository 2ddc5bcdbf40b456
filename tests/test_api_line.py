"""LINE login flow tests against a mocked LINE platform (httpx.MockTransport)."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from sqlalchemy import func, select, update

from villagemarket.core.config import Settings
from villagemarket.core.line import LineOAuth, get_line_oauth
from villagemarket.models.user import User

SITE = "http://market.test"


class FakeLine:
    """Scriptable stand-in for the LINE token and profile endpoints."""

    def __init__(self) -> None:
        self.token_status = 200
        self.profile_status = 200
        self.profile = {
            "userId": "U4af4980629",
            "displayName": "Somsri",
            "pictureUrl": "https://profile.line-scdn.net/abc",
        }
        self.explode = False
        self.token_requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.explode:
            raise RuntimeError("unexpected failure")
        if request.url.path == "/oauth2/v2.1/token":
            self.token_requests.append(request)
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "line-at", "token_type": "Bearer"})
        if request.url.path == "/v2/profile":
            assert request.headers["Authorization"] == "Bearer line-at"
            if self.profile_status != 200:
                return httpx.Response(self.profile_status, text="boom")
            return httpx.Response(200, json=self.profile)
        return httpx.Response(404)


@pytest.fixture
def fake_line(app):
    fake = FakeLine()
    settings = Settings(
        line_client_id="1650000000",
        line_client_secret="channel-secret",
        public_base_url=SITE,
    )
    app.dependency_overrides[get_line_oauth] = lambda: LineOAuth(
        settings=settings, transport=httpx.MockTransport(fake.handler)
    )
    return fake


def _error_code(response: httpx.Response) -> str | None:
    location = response.headers["location"]
    assert location.startswith(f"{SITE}/auth/error")
    return parse_qs(urlparse(location).query)["error"][0]


async def _line_login(client, code: str = "auth-code") -> httpx.Response:
    start = await client.get("/api/auth/line/login")
    assert start.status_code == 307
    state = parse_qs(urlparse(start.headers["location"]).query)["state"][0]
    return await client.get("/api/auth/line/callback", params={"code": code, "state": state})


@pytest.mark.asyncio
async def test_login_redirects_to_line(client, fake_line):
    r = await client.get("/api/auth/line/login")
    assert r.status_code == 307
    url = urlparse(r.headers["location"])
    assert url.netloc == "access.line.me"
    query = parse_qs(url.query)
    assert query["client_id"] == ["1650000000"]
    assert query["redirect_uri"] == [f"{SITE}/api/auth/line/callback"]
    assert query["response_type"] == ["code"]
    assert "line-oauth-state" in r.cookies


@pytest.mark.asyncio
async def test_first_login_creates_pending_customer(client, fake_line, session_factory):
    r = await _line_login(client)
    assert r.status_code == 307
    assert r.headers["location"] == f"{SITE}/auth/complete-profile"
    assert "auth-token" in r.cookies

    me = (await client.get("/api/auth/me")).json()["user"]
    assert me["role"] == "CUSTOMER"
    assert me["profileComplete"] is False
    assert me["name"] == "Somsri"
    assert me["image"] == "https://profile.line-scdn.net/abc"

    token_form = parse_qs(fake_line.token_requests[0].content.decode())
    assert token_form["grant_type"] == ["authorization_code"]
    assert token_form["code"] == ["auth-code"]

    async with session_factory() as s:
        count = (await s.execute(select(func.count()).select_from(User))).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_repeat_login_reuses_user_and_keeps_role(client, fake_line, session_factory):
    await _line_login(client)
    first = (await client.get("/api/auth/me")).json()["user"]

    r = await client.post(
        "/api/auth/complete-profile",
        json={"houseNumber": "44/1", "phone": "0812345678", "role": "VENDOR"},
    )
    assert r.status_code == 200
    completed = r.json()["user"]
    assert completed["profileComplete"] is True
    assert completed["role"] == "VENDOR"
    assert completed["username"] == "44/1"

    # Fresh browser, same LINE account
    client.cookies.clear()
    fake_line.profile["displayName"] = "Somsri K."
    again = await _line_login(client)
    assert again.headers["location"] == f"{SITE}/"

    me = (await client.get("/api/auth/me")).json()["user"]
    assert me["id"] == first["id"]
    assert me["role"] == "VENDOR"
    assert me["profileComplete"] is True
    assert me["name"] == "Somsri K."

    async with session_factory() as s:
        count = (await s.execute(select(func.count()).select_from(User))).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_empty_display_name_gets_default(client, fake_line):
    fake_line.profile["displayName"] = ""
    await _line_login(client)
    me = (await client.get("/api/auth/me")).json()["user"]
    assert me["name"] == "LINE User"


@pytest.mark.asyncio
async def test_callback_without_code(client, fake_line):
    r = await client.get("/api/auth/line/callback")
    assert r.status_code == 307
    assert _error_code(r) == "no_code"


@pytest.mark.asyncio
async def test_callback_without_configuration(client, app):
    app.dependency_overrides[get_line_oauth] = lambda: LineOAuth(
        settings=Settings(line_client_id=None, line_client_secret=None)
    )
    r = await client.get("/api/auth/line/callback", params={"code": "x", "state": "y"})
    assert _error_code(r) == "config"

    r = await client.get("/api/auth/line/login")
    assert _error_code(r) == "config"


@pytest.mark.asyncio
async def test_callback_state_mismatch(client, fake_line):
    await client.get("/api/auth/line/login")
    r = await client.get(
        "/api/auth/line/callback", params={"code": "auth-code", "state": "forged"}
    )
    assert _error_code(r) == "invalid_state"
    assert fake_line.token_requests == []


@pytest.mark.asyncio
async def test_callback_without_state_cookie(client, fake_line):
    r = await client.get(
        "/api/auth/line/callback", params={"code": "auth-code", "state": "anything"}
    )
    assert _error_code(r) == "invalid_state"


@pytest.mark.asyncio
async def test_token_exchange_failure(client, fake_line):
    fake_line.token_status = 400
    r = await _line_login(client)
    assert _error_code(r) == "token_exchange"
    assert "auth-token" not in r.cookies


@pytest.mark.asyncio
async def test_profile_fetch_failure(client, fake_line):
    fake_line.profile_status = 500
    r = await _line_login(client)
    assert _error_code(r) == "profile_fetch"


@pytest.mark.asyncio
async def test_unexpected_failure(client, fake_line):
    fake_line.explode = True
    r = await _line_login(client)
    assert _error_code(r) == "callback_error"


@pytest.mark.asyncio
async def test_disabled_account_is_refused(client, fake_line, session_factory):
    await _line_login(client)
    async with session_factory() as s:
        await s.execute(update(User).values(is_active=False))
        await s.commit()

    client.cookies.clear()
    r = await _line_login(client)
    assert _error_code(r) == "account_disabled"
    assert "auth-token" not in r.cookies


@pytest.mark.asyncio
async def test_concurrent_first_login_reuses_winning_row(
    client, fake_line, session_factory, monkeypatch
):
    from villagemarket.core import accounts
    from villagemarket.core.errors import ConflictError

    async def lose_race(db, profile):
        async with session_factory() as other:
            other.add(User(name="Somsri", external_id=profile.user_id, role="CUSTOMER"))
            await other.commit()
        raise ConflictError("LINE account is already linked")

    monkeypatch.setattr(accounts, "find_or_create_line_user", lose_race)
    r = await _line_login(client)

    assert r.headers["location"] == f"{SITE}/auth/complete-profile"
    assert "auth-token" in r.cookies
    async with session_factory() as s:
        count = (await s.execute(select(func.count()).select_from(User))).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_conflict_without_existing_row_is_a_creation_error(
    client, fake_line, monkeypatch
):
    from villagemarket.core import accounts
    from villagemarket.core.errors import ConflictError

    async def conflict(db, profile):
        raise ConflictError("LINE account is already linked")

    monkeypatch.setattr(accounts, "find_or_create_line_user", conflict)
    r = await _line_login(client)
    assert _error_code(r) == "user_creation"
