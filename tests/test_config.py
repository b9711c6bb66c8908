"""Tests for configuration helpers."""

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:  # pragma: no cover
    sys.path.insert(0, str(ROOT))

from nest_notifier import config  # noqa: E402
from nest_notifier.models import ConfigurationError  # noqa: E402

_OPTIONAL_VARS = (
    "AIRTABLE_WEBHOOK_SECRET",
    "AIRTABLE_BASE_ID",
    "AIRTABLE_TABLE_ID",
    "AIRTABLE_API_URL",
    "SIGNATURE_TOLERANCE_SECONDS",
    "SYNC_ALL_CHANNELS",
)


def _seed_env(monkeypatch):
    for var in _OPTIONAL_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("SLACK_BOT_TOKEN", "token")
    monkeypatch.setenv("SLACK_SIGNING_SECRET", "secret")
    monkeypatch.setenv("AIRTABLE_API_KEY", "key")
    config.get_settings.cache_clear()


def test_get_settings_parses_expected_fields(monkeypatch):
    _seed_env(monkeypatch)
    monkeypatch.setenv("AIRTABLE_WEBHOOK_SECRET", "hook-secret")
    monkeypatch.setenv("AIRTABLE_BASE_ID", "appBase")
    monkeypatch.setenv("AIRTABLE_TABLE_ID", "tblTable")
    monkeypatch.setenv("SYNC_ALL_CHANNELS", "true")
    monkeypatch.setenv("SIGNATURE_TOLERANCE_SECONDS", "120")

    settings = config.get_settings()

    assert settings.bot_token == "token"
    assert settings.signing_secret == "secret"
    assert settings.airtable_api_key == "key"
    assert settings.webhook_secret == "hook-secret"
    assert settings.airtable_base_id == "appBase"
    assert settings.airtable_table_id == "tblTable"
    assert settings.sync_all_channels is True
    assert settings.signature_tolerance == 120


def test_optional_settings_have_defaults(monkeypatch):
    _seed_env(monkeypatch)

    settings = config.get_settings()

    assert settings.webhook_secret is None
    assert settings.airtable_base_id is None
    assert settings.airtable_api_url == "https://api.airtable.com/v0"
    assert settings.signature_tolerance == 300
    assert settings.sync_all_channels is False


def test_blank_webhook_secret_is_treated_as_missing(monkeypatch):
    _seed_env(monkeypatch)
    monkeypatch.setenv("AIRTABLE_WEBHOOK_SECRET", "   ")

    assert config.get_settings().webhook_secret is None


def test_api_url_trailing_slash_is_stripped(monkeypatch):
    _seed_env(monkeypatch)
    monkeypatch.setenv("AIRTABLE_API_URL", "https://airtable.test/v0/")

    assert config.get_settings().airtable_api_url == "https://airtable.test/v0"


def test_missing_environment_variables_raise_runtime_error(monkeypatch):
    for var in ("SLACK_BOT_TOKEN", "SLACK_SIGNING_SECRET", "AIRTABLE_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    config.get_settings.cache_clear()

    with pytest.raises(RuntimeError) as err:
        config.get_settings()

    message = str(err.value)
    assert "SLACK_BOT_TOKEN" in message
    assert "SLACK_SIGNING_SECRET" in message
    assert "AIRTABLE_API_KEY" in message
    assert isinstance(err.value, ConfigurationError)


def test_non_positive_tolerance_is_rejected(monkeypatch):
    _seed_env(monkeypatch)
    monkeypatch.setenv("SIGNATURE_TOLERANCE_SECONDS", "0")

    with pytest.raises(ConfigurationError) as err:
        config.get_settings()

    assert "SIGNATURE_TOLERANCE_SECONDS" in str(err.value)
