"""Tests for settings loading."""

from pydantic import ValidationError
import pytest

from bizforge.config import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("DATABASE_URL", "LOG_LEVEL", "ADMIN_EMAILS", "REASONING_MODEL"):
        monkeypatch.delenv(name, raising=False)


def test_database_url_is_required():
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_defaults(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite://")

    settings = Settings(_env_file=None)

    assert settings.service_name == "bizforge"
    assert settings.generation_max_attempts == 3  # noqa: PLR2004
    assert settings.reasoning_rate_per_million == 3.5  # noqa: PLR2004
    assert settings.standard_rate_per_million == 0.075  # noqa: PLR2004
    assert settings.starting_token_balance == 10000  # noqa: PLR2004
    assert settings.deploy_region == "us-central1"


def test_log_level_is_normalised(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite://")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    assert Settings(_env_file=None).log_level == "DEBUG"


def test_invalid_log_level(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite://")
    monkeypatch.setenv("LOG_LEVEL", "LOUD")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_admin_email_list(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite://")
    monkeypatch.setenv("ADMIN_EMAILS", " Boss@Example.com, ,ops@example.com ")

    assert Settings(_env_file=None).admin_email_list == ["boss@example.com", "ops@example.com"]
