"""Tests for settings validation and cookie policy."""

import pytest
from pydantic import ValidationError

from core.config import DEFAULT_ACCESS_TOKEN_SECRET, Settings
from services.auth import cookie_policy

STRONG_ACCESS = "prod-access-secret-0123456789abcdefghijkl"
STRONG_REFRESH = "prod-refresh-secret-0123456789abcdefghijk"


def test_defaults_are_usable_locally():
    settings = Settings(_env_file=None)

    assert settings.is_production is False
    assert settings.access_token_secret == DEFAULT_ACCESS_TOKEN_SECRET


def test_production_rejects_default_secrets():
    with pytest.raises(ValidationError, match="ACCESS_TOKEN_SECRET"):
        Settings(_env_file=None, app_env="production", refresh_token_secret=STRONG_REFRESH)


def test_production_rejects_shared_secret():
    with pytest.raises(ValidationError, match="must differ"):
        Settings(
            _env_file=None,
            app_env="prod",
            access_token_secret=STRONG_ACCESS,
            refresh_token_secret=STRONG_ACCESS,
        )


def test_cors_origins_accept_comma_separated_env(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://a.test, https://b.test,")

    settings = Settings(_env_file=None)

    assert settings.cors_origins == ["https://a.test", "https://b.test"]


def test_media_folder_is_trimmed():
    assert Settings(_env_file=None, media_folder="/profiles/").media_folder == "profiles"


def test_cookie_policy_is_strict_in_production():
    settings = Settings(
        _env_file=None,
        app_env="production",
        access_token_secret=STRONG_ACCESS,
        refresh_token_secret=STRONG_REFRESH,
    )

    policy = cookie_policy(settings)

    assert policy.secure is True
    assert policy.samesite == "strict"
    assert policy.refresh_max_age == settings.refresh_token_expire_minutes * 60


def test_cookie_policy_can_allow_plain_http():
    settings = Settings(
        _env_file=None,
        app_env="production",
        access_token_secret=STRONG_ACCESS,
        refresh_token_secret=STRONG_REFRESH,
        allow_insecure_http_cookies=True,
    )

    policy = cookie_policy(settings)

    assert policy.secure is False
    assert policy.samesite == "lax"
