"""LINE Login router: a browser redirect flow ending in the password-login cookie.

Every failure ends in a redirect to ``/auth/error?error=<code>``; provider
details only go to the log.
"""

from __future__ import annotations

from typing import Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from villagemarket.api.dependencies import DbDep
from villagemarket.api.routers.auth import set_auth_cookie
from villagemarket.core import accounts, line
from villagemarket.core.auth import issue_token
from villagemarket.core.config import get_settings
from villagemarket.core.crypto import new_state, state_matches
from villagemarket.core.errors import ConflictError
from villagemarket.core.line import LineOAuth, LineOAuthError, get_line_oauth
from villagemarket.core.logging import get_logger

router = APIRouter(prefix="/auth/line", tags=["auth"])
logger = get_logger(__name__)

LineDep = Annotated[LineOAuth, Depends(get_line_oauth)]

STATE_COOKIE = "line-oauth-state"
STATE_TTL_SECONDS = 600


def _site_url(path: str) -> str:
    return f"{get_settings().public_base_url.rstrip('/')}{path}"


def _error_redirect(code: str) -> RedirectResponse:
    response = RedirectResponse(_site_url(f"/auth/error?{urlencode({'error': code})}"))
    response.delete_cookie(STATE_COOKIE, path="/api/auth/line")
    return response


@router.get("/login", response_class=RedirectResponse)
async def line_login(oauth: LineDep) -> RedirectResponse:
    """Send the browser to LINE's consent screen."""
    if not oauth.is_configured:
        logger.error("LINE OAuth credentials not configured")
        return _error_redirect(line.CONFIG)

    state, sealed = new_state()
    response = RedirectResponse(oauth.authorize_url(state))
    response.set_cookie(
        STATE_COOKIE,
        sealed,
        max_age=STATE_TTL_SECONDS,
        path="/api/auth/line",
        httponly=True,
        secure=get_settings().cookie_secure,
        samesite="lax",
    )
    return response


@router.get("/callback", response_class=RedirectResponse)
async def line_callback(
    request: Request,
    db: DbDep,
    oauth: LineDep,
    code: str | None = None,
    state: str | None = None,
) -> RedirectResponse:
    """OAuth redirect target: code → access token → profile → local user → cookie."""
    if not code:
        logger.warning("No authorization code received from LINE")
        return _error_redirect(line.NO_CODE)
    if not oauth.is_configured:
        logger.error("LINE OAuth credentials not configured")
        return _error_redirect(line.CONFIG)
    if not state_matches(request.cookies.get(STATE_COOKIE), state, STATE_TTL_SECONDS):
        logger.warning("LINE callback state mismatch")
        return _error_redirect(line.INVALID_STATE)

    try:
        access_token = await oauth.exchange_code(code)
        profile = await oauth.fetch_profile(access_token)
    except LineOAuthError as exc:
        logger.warning("LINE login failed", error_code=exc.code, error=str(exc))
        return _error_redirect(exc.code)
    except Exception:
        logger.exception("LINE OAuth callback error")
        return _error_redirect(line.CALLBACK_ERROR)

    try:
        user = await accounts.find_or_create_line_user(db, profile)
    except ConflictError:
        # A concurrent first login for the same LINE id inserted the row first
        await db.rollback()
        user = await accounts.get_line_user(db, profile.user_id)
        if user is None:
            return _error_redirect(line.USER_CREATION)
        logger.info("Reusing LINE user created concurrently", user_id=str(user.id))
    except Exception:
        logger.exception("Failed to create or find LINE user", line_user_id=profile.user_id)
        await db.rollback()
        return _error_redirect(line.USER_CREATION)

    if not user.is_active:
        logger.info("LINE login refused for disabled account", user_id=str(user.id))
        return _error_redirect(line.ACCOUNT_DISABLED)

    target = "/" if user.profile_complete else "/auth/complete-profile"
    response = RedirectResponse(_site_url(target))
    set_auth_cookie(response, issue_token(user))
    response.delete_cookie(STATE_COOKIE, path="/api/auth/line")
    logger.info("LINE login succeeded", user_id=str(user.id), redirect=target)
    return response
