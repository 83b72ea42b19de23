"""Tests for environment-driven settings."""

from __future__ import annotations

from vrsense.core.config.settings import get_settings


def test_defaults_bind_loopback(monkeypatch):
    monkeypatch.delenv("VRSENSE_HOST", raising=False)
    monkeypatch.delenv("VRSENSE_PORT", raising=False)
    monkeypatch.delenv("VRSENSE_CORS_ORIGINS", raising=False)
    settings = get_settings()
    assert settings.vrsense_host == "127.0.0.1"
    assert settings.vrsense_port == 3000
    assert settings.vrsense_allow_insecure_bind is False
    assert settings.vrsense_cors_origins == ["*"]


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("VRSENSE_PORT", "8080")
    monkeypatch.setenv("DATA_FILE", "/tmp/vrsense/sessions.json")
    monkeypatch.setenv("VRSENSE_ALLOW_INSECURE_BIND", "true")
    settings = get_settings()
    assert settings.vrsense_port == 8080
    assert settings.data_file == "/tmp/vrsense/sessions.json"
    assert settings.vrsense_allow_insecure_bind is True


def test_hermetic_test_env_uses_memory_store():
    settings = get_settings()
    assert settings.data_file == ":memory:"
    assert settings.store_encryption_key == ""


def test_cors_origins_from_json_list(monkeypatch):
    monkeypatch.setenv("VRSENSE_CORS_ORIGINS", '["https://clinic.example", "http://localhost:5173"]')
    assert get_settings().vrsense_cors_origins == ["https://clinic.example", "http://localhost:5173"]
