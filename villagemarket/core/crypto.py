"""Sealed, short-lived browser state for the LINE OAuth round trip.

The random ``state`` sent to LINE is also stored in a cookie, encrypted with
Fernet under a key derived from ``SECRET_KEY``. Fernet tokens carry their
creation time, so a sealed value older than the TTL no longer opens.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets

from cryptography.fernet import Fernet, InvalidToken

from villagemarket.core.config import get_settings

# Keeps this key distinct from anything else derived from SECRET_KEY
_KEY_CONTEXT = b"villagemarket/oauth-state"


def _fernet() -> Fernet:
    digest = hmac.new(get_settings().secret_key.encode(), _KEY_CONTEXT, hashlib.sha256).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


def new_state() -> tuple[str, str]:
    """Return ``(state, sealed)``: the value for LINE and its cookie form."""
    state = secrets.token_urlsafe(24)
    return state, _fernet().encrypt(state.encode()).decode()


def state_matches(sealed: str | None, state: str | None, ttl: int) -> bool:
    """True when *sealed* opens within *ttl* seconds and holds *state*."""
    if not sealed or not state:
        return False
    try:
        expected = _fernet().decrypt(sealed.encode(), ttl=ttl).decode()
    except InvalidToken:
        return False
    return secrets.compare_digest(expected, state)
