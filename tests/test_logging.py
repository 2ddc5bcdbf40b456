"""Tests for core/logging.py."""

from villagemarket.core.logging import REDACTED, redact_secrets


def test_credentials_are_masked():
    event = {"event": "Login failed", "username": "12/3", "password": "secret1", "token": "abc"}
    out = redact_secrets(None, "info", dict(event))
    assert out["password"] == REDACTED
    assert out["token"] == REDACTED
    assert out["username"] == "12/3"
    assert out["event"] == "Login failed"
