"""Settings resolution and redacted startup logging."""

import pytest
from pydantic import ValidationError

from payrelay.common.config import Settings
from payrelay.common.retry import RetryPolicy
from payrelay.common.startup import startup_config


def test_square_url_follows_environment():
    assert Settings(square_environment="sandbox").square_url == "https://connect.squareupsandbox.com"
    assert Settings(square_environment="production").square_url == "https://connect.squareup.com"
    assert Settings(square_base_url="http://localhost:9000/").square_url == "http://localhost:9000"


def test_unknown_environment_is_rejected_at_load(monkeypatch):
    """A typo in SQUARE_ENVIRONMENT fails when settings load, not on first use."""

    with pytest.raises(ValidationError):
        Settings(square_environment="staging")
    monkeypatch.setenv("SQUARE_ENVIRONMENT", "prod")
    with pytest.raises(ValidationError):
        Settings()


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("PAYMENT_CURRENCY", "CAD")
    settings = Settings()
    assert settings.retry_max_attempts == 5
    assert settings.payment_currency == "CAD"
    assert RetryPolicy.from_settings(settings).max_attempts == 5


def test_startup_config_redacts_credentials():
    """Secret-like settings are never written to logs."""

    settings = Settings(square_access_token="EAAA-secret", square_environment="production")
    config = startup_config(settings, ["square_access_token", "square_environment", "square_base_url"])
    assert config == {
        "service": "payrelay",
        "square_access_token": "<redacted>",
        "square_environment": "production",
        "square_base_url": "<unset>",
    }
