"""Settings loading from YAML and environment."""

import pytest

from eventthreads.utils.config import load_settings
from eventthreads.utils.exceptions import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "EVENTTHREADS_DATA_DIR",
        "ADMIN_USERNAME",
        "ADMIN_PASSWORD",
        "ADMIN_USER_ID",
        "PORT",
        "LOG_LEVEL",
        "CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)


def test_missing_file_uses_defaults(tmp_path):
    settings = load_settings(tmp_path / "absent.yaml")
    assert settings.server.port == 5000
    assert settings.server.api_prefix == "/api"
    assert settings.admin.user_id == "admin_001"
    assert settings.admin.username is None
    assert settings.auth.session_expiry_days == 7


def test_yaml_with_env_substitution(tmp_path, monkeypatch):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "server:\n"
        "  port: 7000\n"
        "admin:\n"
        "  username: ${ADMIN_USERNAME:}\n"
        "  password: ${ADMIN_PASSWORD:fallback}\n"
        "expiry:\n"
        "  sweep_interval_seconds: 5\n",
        encoding="utf-8",
    )
    settings = load_settings(path)
    assert settings.server.port == 7000
    assert settings.admin.username is None
    assert settings.admin.password == "fallback"
    assert settings.expiry.sweep_interval_seconds == 5

    monkeypatch.setenv("ADMIN_USERNAME", "boss")
    assert load_settings(path).admin.username == "boss"


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("EVENTTHREADS_DATA_DIR", "/srv/data")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
    settings = load_settings(tmp_path / "absent.yaml")
    assert settings.server.port == 8080
    assert settings.storage.data_dir == "/srv/data"
    assert settings.server.cors_origins == ["http://a.test", "http://b.test"]


def test_required_variable_missing(tmp_path, monkeypatch):
    monkeypatch.delenv("EVENTTHREADS_SECRET_THING", raising=False)
    path = tmp_path / "settings.yaml"
    path.write_text("admin:\n  password: ${EVENTTHREADS_SECRET_THING}\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="EVENTTHREADS_SECRET_THING"):
        load_settings(path)


def test_malformed_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings(path)
