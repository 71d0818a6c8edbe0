# tests/test_config.py
import pytest
from pydantic import ValidationError

from drive_auth.core.config import DRIVE_READONLY_SCOPE, Settings
from conftest import SERVICE_ACCOUNT_INFO, TEST_COOKIE_KEY, make_settings


def test_defaults():
    settings = make_settings()

    assert settings.COOKIE_SAMESITE == "lax"
    assert settings.SCOPES == [DRIVE_READONLY_SCOPE]
    assert not settings.is_production


def test_settings_are_immutable():
    settings = make_settings()

    with pytest.raises(ValidationError):
        settings.AUTH_VARIANT = "delegation"


def test_short_cookie_key_is_rejected():
    with pytest.raises(ValidationError):
        make_settings(COOKIE_ENCRYPTION_KEY="too-short")


def test_codeflow_requires_client_secret():
    with pytest.raises(ValidationError):
        make_settings(GOOGLE_CLIENT_SECRET=None)


def test_delegation_requires_service_account():
    with pytest.raises(ValidationError):
        make_settings(AUTH_VARIANT="delegation", GOOGLE_CLIENT_SECRET=None)


def test_delegation_reads_credentials_json_from_env(monkeypatch):
    import json

    monkeypatch.delenv("GOOGLE_CLIENT_ID", raising=False)
    monkeypatch.setenv("VITE_GOOGLE_CLIENT_ID", "env-client-id")
    monkeypatch.setenv("COOKIE_ENCRYPTION_KEY", TEST_COOKIE_KEY)
    monkeypatch.setenv("AUTH_VARIANT", "delegation")
    monkeypatch.setenv("CREDENTIALS", json.dumps(SERVICE_ACCOUNT_INFO))
    monkeypatch.setenv("COOKIE_SAMESITE", "none")

    settings = Settings(_env_file=None)

    assert settings.GOOGLE_CLIENT_ID == "env-client-id"
    assert settings.SERVICE_ACCOUNT_INFO["client_email"] == SERVICE_ACCOUNT_INFO["client_email"]
    assert settings.COOKIE_SAMESITE == "none"
