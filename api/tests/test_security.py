import pytest
from fastapi import HTTPException

from ghosty import config
from ghosty.auth.security import (
    create_access_token,
    create_activation_token,
    decode_access_token,
    hash_password,
    verify_password,
)


@pytest.fixture(autouse=True)
def _secret(monkeypatch):
    monkeypatch.setattr(config, "JWT_SECRET", "test-secret-key-for-testing-only")


def _token(**overrides):
    kwargs = {
        "user_id": "u1",
        "username": "ghost",
        "verification_status": "unverified",
        "is_admin": False,
        "registration_type": "simple",
    }
    kwargs.update(overrides)
    return create_access_token(**kwargs)


def test_password_hash_round_trip():
    hashed = hash_password("Passw0rd1")
    assert hashed != "Passw0rd1"
    assert verify_password("Passw0rd1", hashed)
    assert not verify_password("passw0rd1", hashed)
    assert not verify_password("Passw0rd1", "not-a-hash")


def test_token_claims():
    claims = decode_access_token(_token(is_admin=True))
    assert claims["sub"] == "u1"
    assert claims["userId"] == "u1"
    assert claims["isAdmin"] is True
    assert claims["verificationStatus"] == "unverified"


def test_expired_token_rejected():
    with pytest.raises(HTTPException) as exc:
        decode_access_token(_token(ttl_minutes=-1))
    assert exc.value.status_code == 401
    assert exc.value.detail == "Token expired"


def test_token_signed_with_other_secret_rejected(monkeypatch):
    token = _token()
    monkeypatch.setattr(config, "JWT_SECRET", "another-secret-key-for-testing-x")
    with pytest.raises(HTTPException) as exc:
        decode_access_token(token)
    assert exc.value.detail == "Invalid token"


def test_missing_secret_is_server_error(monkeypatch):
    monkeypatch.setattr(config, "JWT_SECRET", "")
    with pytest.raises(HTTPException) as exc:
        _token()
    assert exc.value.status_code == 500


def test_activation_tokens_are_unique():
    first, expires = create_activation_token()
    second, _ = create_activation_token()
    assert first != second
    assert len(first) == 36
    assert expires.tzinfo is not None
