"""Tests for the session token codec and password hashing (core/auth.py)."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import jwt

from villagemarket.core.auth import (
    TOKEN_ISSUER,
    hash_password,
    issue_token,
    token_max_age,
    verify_password,
    verify_token,
)
from villagemarket.core.config import get_settings
from villagemarket.models.user import UserRole
from villagemarket.schemas.auth import TokenUser


def _snapshot(**overrides) -> TokenUser:
    data = {
        "id": uuid.uuid4(),
        "name": "Somchai",
        "username": "12/3",
        "house_number": "12/3",
        "role": UserRole.VENDOR,
        "profile_complete": True,
    }
    data.update(overrides)
    return TokenUser(**data)


def test_password_roundtrip():
    hashed = hash_password("secret1")
    assert hashed != "secret1"
    assert verify_password("secret1", hashed)
    assert not verify_password("secret2", hashed)


def test_verify_password_with_garbage_hash():
    assert verify_password("secret1", "not-a-bcrypt-hash") is False


def test_token_carries_snapshot():
    user = _snapshot()
    decoded = verify_token(issue_token(user))
    assert decoded is not None
    assert decoded.id == user.id
    assert decoded.role == UserRole.VENDOR
    assert decoded.house_number == "12/3"


def test_token_payload_is_camel_case():
    user = _snapshot()
    settings = get_settings()
    payload = jwt.decode(
        issue_token(user), settings.jwt_secret_key, algorithms=[settings.jwt_algorithm],
        issuer=TOKEN_ISSUER,
    )
    assert payload["sub"] == str(user.id)
    assert payload["user"]["houseNumber"] == "12/3"
    assert payload["user"]["profileComplete"] is True
    assert payload["exp"] - payload["iat"] == token_max_age()


def test_token_accepted_six_days_later():
    issued = datetime.now(timezone.utc) - timedelta(days=6)
    assert verify_token(issue_token(_snapshot(), issued_at=issued)) is not None


def test_token_rejected_eight_days_later():
    issued = datetime.now(timezone.utc) - timedelta(days=8)
    assert verify_token(issue_token(_snapshot(), issued_at=issued)) is None


def test_tampered_signature_rejected():
    token = issue_token(_snapshot())
    header, payload, signature = token.split(".")
    first = "A" if signature[0] != "A" else "B"
    assert verify_token(f"{header}.{payload}.{first}{signature[1:]}") is None


def test_wrong_secret_rejected():
    user = _snapshot()
    now = datetime.now(timezone.utc)
    forged = jwt.encode(
        {
            "sub": str(user.id),
            "user": user.model_dump(mode="json", by_alias=True),
            "iat": now,
            "exp": now + timedelta(days=1),
            "iss": TOKEN_ISSUER,
        },
        "someone-elses-secret",
        algorithm="HS256",
    )
    assert verify_token(forged) is None


def test_subject_must_match_snapshot():
    user = _snapshot()
    settings = get_settings()
    now = datetime.now(timezone.utc)
    token = jwt.encode(
        {
            "sub": str(uuid.uuid4()),
            "user": user.model_dump(mode="json", by_alias=True),
            "iat": now,
            "exp": now + timedelta(days=1),
            "iss": TOKEN_ISSUER,
        },
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    assert verify_token(token) is None


def test_garbage_never_raises():
    assert verify_token("") is None
    assert verify_token("not.a.token") is None
