"""Unit tests for auth/tokens.py -- JWT and bcrypt helpers."""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.tokens import create_access_token, decode_access_token, hash_password, verify_password
from core.config import get_settings


def test_hash_password_round_trip():
    hashed = hash_password("s3cret")
    assert hashed != "s3cret"
    assert hashed.startswith("$2")
    assert verify_password("s3cret", hashed) is True
    assert verify_password("wrong", hashed) is False


def test_hashes_are_salted():
    assert hash_password("same") != hash_password("same")


def test_verify_password_bad_input():
    assert verify_password(None, "$2b$12$abc") is False
    assert verify_password("pw", None) is False
    assert verify_password("pw", "not-a-bcrypt-hash") is False


def test_token_carries_subject_and_session():
    expires = datetime.now(timezone.utc) + timedelta(hours=1)
    payload = decode_access_token(create_access_token(42, "abc123", expires))
    assert payload["sub"] == "42"
    assert payload["jti"] == "abc123"


def test_expired_token_does_not_decode():
    expires = datetime.now(timezone.utc) - timedelta(seconds=5)
    assert decode_access_token(create_access_token(42, "abc123", expires)) is None


def test_foreign_signature_does_not_decode():
    expires = datetime.now(timezone.utc) + timedelta(hours=1)
    forged = jwt.encode({"sub": "42", "jti": "abc123", "exp": expires}, "x" * 40, algorithm="HS256")
    assert decode_access_token(forged) is None


def test_token_without_jti_does_not_decode():
    expires = datetime.now(timezone.utc) + timedelta(hours=1)
    token = jwt.encode({"sub": "42", "exp": expires}, get_settings().secret_key, algorithm="HS256")
    assert decode_access_token(token) is None


def test_empty_token():
    assert decode_access_token(None) is None
    assert decode_access_token("") is None


def test_hash_password_rejects_more_than_72_bytes():
    # 64 characters, 128 bytes in UTF-8: within the API's length cap.
    long_password = "é" * 64
    with pytest.raises(ValueError):
        hash_password(long_password)
    assert verify_password(long_password, hash_password("é" * 36)) is False


def test_hash_password_accepts_exactly_72_bytes():
    password = "é" * 36
    assert verify_password(password, hash_password(password)) is True
