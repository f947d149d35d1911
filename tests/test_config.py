"""Tests for settings loading and validation."""

import pytest
from pydantic import ValidationError

from app.core.config import DEFAULT_OTP_API_URLS, Settings


def test_defaults():
    config = Settings(_env_file=None)

    assert config.OTP_API_URLS == DEFAULT_OTP_API_URLS
    assert config.OTP_POLL_INTERVAL_SECONDS == 5
    assert config.PAIRING_TIMEOUT_SECONDS == 60
    assert config.PAIR_CLIENT_DISPLAY_NAME == "Chrome (Linux)"


def test_otp_urls_from_environment(monkeypatch):
    monkeypatch.setenv("OTP_API_URLS", '["http://panel.test/a", "http://panel.test/b"]')

    config = Settings(_env_file=None)

    assert config.OTP_API_URLS == ["http://panel.test/a", "http://panel.test/b"]


def test_production_requires_gateway_token(monkeypatch):
    monkeypatch.delenv("WHATSAPP_GATEWAY_TOKEN", raising=False)

    with pytest.raises(ValidationError):
        Settings(_env_file=None, ENVIRONMENT="production")


def test_negative_ttl_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, SENT_HISTORY_TTL_DAYS=-1)
