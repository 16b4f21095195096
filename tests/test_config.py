"""Unit tests for core/config.py -- SECRET_KEY policy and env overrides."""

import pytest
from pydantic import ValidationError

from core.config import Settings


def test_debug_generates_key(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    settings = Settings(_env_file=None, debug=True)
    assert len(settings.secret_key) == 64


def test_production_requires_key(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    monkeypatch.delenv("DEBUG", raising=False)
    with pytest.raises(ValidationError, match="SECRET_KEY is not set"):
        Settings(_env_file=None)


def test_short_key_rejected(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "short")
    with pytest.raises(ValidationError, match="too short"):
        Settings(_env_file=None, debug=True)


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "k" * 32)
    monkeypatch.setenv("ADMIN_USERNAME", "root")
    monkeypatch.setenv("TOKEN_EXPIRE_SECONDS", "60")
    settings = Settings(_env_file=None)
    assert settings.admin_username == "root"
    assert settings.token_expire_seconds == 60
    assert settings.demo_username == "test"
