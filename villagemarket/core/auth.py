"""Authentication helpers: password hashing and the session token codec.

Session flow (password and LINE logins alike):
    1. The user authenticates (POST /api/auth/login, /register, or the LINE
       callback) and a token is issued carrying a snapshot of the user.
    2. The token travels in the httpOnly ``auth-token`` cookie (or an
       ``Authorization: Bearer`` header for scripts).
    3. Every request re-verifies it; nothing is stored server-side, so logout
       only clears the cookie.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
import jwt
from pydantic import ValidationError as PydanticValidationError

from villagemarket.core.config import get_settings
from villagemarket.core.logging import get_logger
from villagemarket.schemas.auth import TokenUser

logger = get_logger(__name__)

TOKEN_ISSUER = "villagemarket"


# ── Password helpers ─────────────────────────────────────────────────────────

def hash_password(plain: str) -> str:
    rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(plain.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode(), hashed.encode())
    except ValueError:
        # Unparseable stored hash
        logger.warning("Stored password hash is malformed")
        return False


# ── Token codec ──────────────────────────────────────────────────────────────

def token_max_age() -> int:
    """Token lifetime in seconds (also the cookie max-age)."""
    return get_settings().jwt_expire_days * 24 * 60 * 60


def issue_token(user: Any, issued_at: datetime | None = None) -> str:
    """Sign a token carrying a snapshot of *user* (a User row or a TokenUser)."""
    settings = get_settings()
    snapshot = TokenUser.model_validate(user)
    now = issued_at or datetime.now(timezone.utc)
    payload = {
        "sub": str(snapshot.id),
        "user": snapshot.model_dump(mode="json", by_alias=True),
        "iat": now,
        "exp": now + timedelta(days=settings.jwt_expire_days),
        "iss": TOKEN_ISSUER,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> TokenUser | None:
    """Return the embedded snapshot, or None when the token is unusable.

    Never raises: malformed, tampered and expired tokens all come back as
    None and the caller treats the request as unauthenticated.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp", "iat", "iss"]},
            issuer=TOKEN_ISSUER,
        )
    except jwt.ExpiredSignatureError:
        logger.info("Session token expired")
        return None
    except jwt.InvalidTokenError as exc:
        logger.info("Session token rejected", error=str(exc))
        return None

    try:
        snapshot = TokenUser.model_validate(payload.get("user") or {})
    except PydanticValidationError:
        logger.warning("Session token carries a malformed user snapshot")
        return None

    if str(snapshot.id) != payload["sub"]:
        logger.warning("Session token subject does not match snapshot", sub=payload["sub"])
        return None
    return snapshot
