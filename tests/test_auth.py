"""Tests for bearer-token authentication."""

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.core.auth import verify_token
from app.core.config import settings
from main import app


@pytest.fixture
def signing_key(monkeypatch) -> str:
    monkeypatch.setattr(settings, "SECRET_KEY", "test-secret")
    return "test-secret"


@pytest.fixture
def raw_client(fake_supabase):
    """Client without the authentication override."""
    with TestClient(app, base_url="http://test") as c:
        yield c


def _token(key: str, **claims) -> str:
    return jwt.encode(claims, key, algorithm=settings.ALGORITHM)


def test_verify_token(signing_key):
    payload = verify_token(_token(signing_key, sub="user-a", aud="authenticated"))
    assert payload["sub"] == "user-a"


def test_verify_token_rejects_wrong_key(signing_key):
    assert verify_token(_token("another-key", sub="user-a")) is None


def test_missing_header_is_401(raw_client, api_base):
    r = raw_client.get(f"{api_base}/challenges/")
    assert r.status_code == 401
    assert r.json()["detail"] == "Authorization header required"


def test_non_bearer_header_is_401(raw_client, api_base):
    r = raw_client.get(f"{api_base}/challenges/", headers={"Authorization": "Basic abc"})
    assert r.status_code == 401


def test_unknown_user_is_401(raw_client, api_base, signing_key):
    headers = {"Authorization": f"Bearer {_token(signing_key, sub='nobody')}"}
    r = raw_client.get(f"{api_base}/challenges/", headers=headers)
    assert r.status_code == 401
    assert r.json()["detail"] == "User not found"


def test_valid_token_resolves_user(raw_client, api_base, signing_key, fake_supabase):
    fake_supabase.seed("users", {"id": "user-a", "email": "a@example.com", "name": "Alice"})
    headers = {"Authorization": f"Bearer {_token(signing_key, user_id='user-a')}"}
    r = raw_client.get(f"{api_base}/challenges/", headers=headers)
    assert r.status_code == 200
    assert r.json() == []
