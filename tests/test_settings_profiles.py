from __future__ import annotations

from taskhub.core.config import Settings


def test_environment_profiles_apply_defaults() -> None:
    dev = Settings(environment="development")
    assert dev.environment == "development"
    assert dev.log_level == "DEBUG"
    assert dev.reload is True
    assert dev.rate_limit_enabled is True

    test_profile = Settings(environment="test")
    assert test_profile.environment == "test"
    assert test_profile.log_level == "WARNING"
    assert test_profile.reload is False
    assert test_profile.rate_limit_enabled is False

    production = Settings(environment="production")
    assert production.is_production
    assert production.log_level == "INFO"
    assert production.rate_limit_enabled is True


def test_environment_aliases_are_normalised() -> None:
    assert Settings(environment="DEV").environment == "development"
    assert Settings(environment="prod").environment == "production"
    assert Settings(environment="unknown").environment == "development"


def test_environment_profile_respects_explicit_overrides(monkeypatch) -> None:
    monkeypatch.setenv("TASKHUB_LOG_LEVEL", "error")
    overridden = Settings(environment="test")
    assert overridden.log_level == "ERROR"

    monkeypatch.delenv("TASKHUB_LOG_LEVEL", raising=False)
    monkeypatch.setenv("TASKHUB_RATE_LIMIT_ENABLED", "true")
    limited = Settings(environment="test")
    assert limited.rate_limit_enabled is True


def test_list_settings_accept_comma_separated_env(monkeypatch) -> None:
    monkeypatch.setenv("TASKHUB_CORS_ALLOW_ORIGINS", "https://a.example, https://b.example")

    settings = Settings(environment="test")

    assert settings.cors_allow_origins == ["https://a.example", "https://b.example"]


def test_numeric_limits_are_clamped() -> None:
    settings = Settings(environment="test", max_login_attempts=0, audit_ttl_seconds="bogus")

    assert settings.max_login_attempts == 1
    assert settings.audit_ttl_seconds == 90 * 24 * 60 * 60
