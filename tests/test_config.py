from __future__ import annotations

import os

import pytest

from smeta_admin.config import AppSettings, ConfigurationError

_VARS = (
    "SMETA_API_URL",
    "SMETA_LOGIN_PATH",
    "SMETA_REFRESH_PATH",
    "SMETA_PROFILE_PATH",
    "SMETA_PROJECTS_PATH",
    "SMETA_ADMIN_PATH",
    "SMETA_TIMEOUT_SECONDS",
    "SMETA_RETRY_ATTEMPTS",
    "SMETA_SESSION_STORE_PATH",
    "SMETA_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    # The .env loader writes straight into os.environ; give every test its own copy.
    monkeypatch.setattr(os, "environ", {k: v for k, v in os.environ.items() if k not in _VARS})
    monkeypatch.setenv("SMETA_ENV_FILE", str(tmp_path / "missing.env"))
    monkeypatch.chdir(tmp_path)


def test_defaults():
    settings = AppSettings.from_env()

    assert settings.api_url == "http://localhost:4001"
    assert settings.login_path == "/vendor/auth/login"
    assert settings.timeout_seconds == 30
    assert settings.retry_attempts == 2
    assert settings.log_level == "INFO"
    assert settings.session_store_path.endswith("session.bin")


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("SMETA_API_URL", "https://api.example.uz/")
    monkeypatch.setenv("SMETA_TIMEOUT_SECONDS", "5")
    monkeypatch.setenv("SMETA_LOG_LEVEL", "debug")

    settings = AppSettings.from_env()

    assert settings.api_url == "https://api.example.uz"
    assert settings.timeout_seconds == 5
    assert settings.log_level == "DEBUG"


def test_env_file_is_loaded_without_overriding_real_env(monkeypatch, tmp_path):
    env_file = tmp_path / "custom.env"
    env_file.write_text(
        "# comment\nSMETA_PROJECTS_PATH='/v2/projects'\nSMETA_RETRY_ATTEMPTS=1\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("SMETA_ENV_FILE", str(env_file))
    monkeypatch.setenv("SMETA_RETRY_ATTEMPTS", "4")

    settings = AppSettings.from_env()

    assert settings.projects_path == "/v2/projects"
    assert settings.retry_attempts == 4


@pytest.mark.parametrize(
    "name, value",
    [
        ("SMETA_API_URL", "ftp://api"),
        ("SMETA_LOGIN_PATH", "vendor/auth/login"),
        ("SMETA_TIMEOUT_SECONDS", "0"),
        ("SMETA_TIMEOUT_SECONDS", "soon"),
        ("SMETA_RETRY_ATTEMPTS", "-1"),
        ("SMETA_LOG_LEVEL", "CHATTY"),
    ],
)
def test_invalid_values_are_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        AppSettings.from_env()
