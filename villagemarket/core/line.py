"""LINE Login (OAuth 2.1 authorization-code flow) client.

Setup:
    1. Create a LINE Login channel at https://developers.line.biz/console/
    2. Register the callback URL: <PUBLIC_BASE_URL>/api/auth/line/callback
    3. Set LINE_CLIENT_ID / LINE_CLIENT_SECRET (channel id / channel secret)

LINE is trusted for identity only. Role and activation live in our own
users table and are never derived from anything LINE returns.
"""

from __future__ import annotations

from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from villagemarket.core.config import Settings, get_settings
from villagemarket.core.errors import UpstreamError
from villagemarket.core.logging import get_logger

logger = get_logger(__name__)

# Error codes surfaced to the browser in /auth/error?error=<code>
NO_CODE = "no_code"
CONFIG = "config"
INVALID_STATE = "invalid_state"
TOKEN_EXCHANGE = "token_exchange"
PROFILE_FETCH = "profile_fetch"
USER_CREATION = "user_creation"
ACCOUNT_DISABLED = "account_disabled"
CALLBACK_ERROR = "callback_error"


class LineProfile(BaseModel):
    """Subset of https://api.line.me/v2/profile we care about."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", min_length=1)
    display_name: str | None = Field(default=None, alias="displayName")
    picture_url: str | None = Field(default=None, alias="pictureUrl")
    email: str | None = None


class LineOAuthError(UpstreamError):
    """A step of the LINE flow failed; ``code`` is the browser-facing error code."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        super().__init__(message)


class LineOAuth:
    AUTHORIZE_URL = "https://access.line.me/oauth2/v2.1/authorize"
    TOKEN_URL = "https://api.line.me/oauth2/v2.1/token"
    PROFILE_URL = "https://api.line.me/v2/profile"

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.settings = settings or get_settings()
        self._transport = transport
        self._timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.line_client_id and self.settings.line_client_secret)

    @property
    def redirect_uri(self) -> str:
        return self.settings.line_redirect_uri

    def authorize_url(self, state: str) -> str:
        if not self.is_configured:
            raise LineOAuthError(CONFIG, "LINE OAuth credentials not configured")
        params = {
            "response_type": "code",
            "client_id": self.settings.line_client_id,
            "redirect_uri": self.redirect_uri,
            "state": state,
            "scope": self.settings.line_scopes,
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(params)}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    async def exchange_code(self, code: str | None) -> str:
        """Trade an authorization code for an access token."""
        if not code:
            raise LineOAuthError(NO_CODE, "No authorization code received from LINE")
        if not self.is_configured:
            raise LineOAuthError(CONFIG, "LINE OAuth credentials not configured")

        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
            "client_id": self.settings.line_client_id,
            "client_secret": self.settings.line_client_secret,
        }
        try:
            async with self._client() as client:
                resp = await client.post(self.TOKEN_URL, data=data)
        except httpx.HTTPError as exc:
            raise LineOAuthError(TOKEN_EXCHANGE, f"Token request failed: {exc}") from exc

        if not resp.is_success:
            logger.warning(
                "LINE token exchange rejected", status=resp.status_code, body=resp.text[:500]
            )
            raise LineOAuthError(TOKEN_EXCHANGE, f"Token endpoint returned {resp.status_code}")

        try:
            access_token = resp.json().get("access_token")
        except ValueError as exc:
            raise LineOAuthError(TOKEN_EXCHANGE, "Token endpoint returned invalid JSON") from exc
        if not access_token:
            raise LineOAuthError(TOKEN_EXCHANGE, "Token response has no access_token")
        return access_token

    async def fetch_profile(self, access_token: str) -> LineProfile:
        try:
            async with self._client() as client:
                resp = await client.get(
                    self.PROFILE_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as exc:
            raise LineOAuthError(PROFILE_FETCH, f"Profile request failed: {exc}") from exc

        if not resp.is_success:
            logger.warning("LINE profile fetch rejected", status=resp.status_code)
            raise LineOAuthError(PROFILE_FETCH, f"Profile endpoint returned {resp.status_code}")

        try:
            return LineProfile.model_validate(resp.json())
        except (ValueError, PydanticValidationError) as exc:
            raise LineOAuthError(PROFILE_FETCH, "Profile response is malformed") from exc


def get_line_oauth() -> LineOAuth:
    """FastAPI dependency; tests override it with a mock transport."""
    return LineOAuth()
