from __future__ import annotations

import pytest
from jose import jwt

from shortlet.core import security
from shortlet.core.config import Settings


def _use_settings(monkeypatch, **overrides):
    settings = Settings(_env_file=None, **overrides)
    monkeypatch.setattr(security, "get_settings", lambda: settings)


def test_user_from_unverified_token(monkeypatch):
    _use_settings(monkeypatch, jwt_secret=None)
    token = jwt.encode(
        {"userId": "u-1", "email": "guest@example.com", "firstName": "Ngozi", "lastName": "Eze"},
        "backend-secret",
    )

    user = security.user_from_token(token)

    assert user.id == "u-1"
    assert user.email == "guest@example.com"
    assert user.display_name == "Ngozi Eze"
    assert user.token == token


def test_display_name_falls_back_to_email(monkeypatch):
    _use_settings(monkeypatch, jwt_secret=None)
    token = jwt.encode({"sub": "u-1", "email": "guest@example.com"}, "backend-secret")

    assert security.user_from_token(token).display_name == "guest"


def test_signature_checked_when_secret_configured(monkeypatch):
    _use_settings(monkeypatch, jwt_secret="shared-secret")
    token = jwt.encode({"id": "u-1", "email": "guest@example.com"}, "other-secret")

    with pytest.raises(ValueError, match="Invalid access token"):
        security.user_from_token(token)


def test_token_without_email_is_rejected(monkeypatch):
    _use_settings(monkeypatch, jwt_secret=None)
    token = jwt.encode({"id": "u-1"}, "backend-secret")

    with pytest.raises(ValueError, match="missing user id or email"):
        security.user_from_token(token)


def test_garbage_token_is_rejected(monkeypatch):
    _use_settings(monkeypatch, jwt_secret=None)

    with pytest.raises(ValueError):
        security.user_from_token("not-a-jwt")
