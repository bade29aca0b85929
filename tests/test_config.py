"""Tests for configuration resolution."""

import pytest

from imageproxy.config import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_POLL_MAX_ATTEMPTS,
    DEFAULT_PORT,
    DEFAULT_REQUEST_TIMEOUT,
    ProxyConfig,
    load_key,
)


ENV_NAMES = [
    "OPENROUTER_API_KEY",
    "VITE_OPENROUTER_API_KEY",
    "HUGGINGFACE_API_KEY",
    "VITE_HUGGINGFACE_API_KEY",
    "REPLICATE_API_KEY",
    "VITE_REPLICATE_API_KEY",
    "API_URL",
    "VITE_API_URL",
    "REPLICATE_POLL_INTERVAL",
    "REPLICATE_POLL_MAX_ATTEMPTS",
    "IMAGE_REQUEST_TIMEOUT",
    "PORT",
    "CORS_ORIGINS",
    "DEBUG",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_NAMES:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


def test_plain_name_wins_over_vite_alias(monkeypatch):
    monkeypatch.setenv("REPLICATE_API_KEY", "plain")
    monkeypatch.setenv("VITE_REPLICATE_API_KEY", "vite")
    assert load_key("replicate") == "plain"


def test_vite_alias(monkeypatch):
    monkeypatch.setenv("VITE_HUGGINGFACE_API_KEY", "  hf_123  ")
    assert load_key("huggingface") == "hf_123"


def test_key_file(tmp_path):
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "openrouter.key").write_text("sk-or-file\n")
    assert load_key("openrouter") == "sk-or-file"


def test_missing_and_blank_keys(monkeypatch):
    monkeypatch.setenv("HUGGINGFACE_API_KEY", "   ")
    assert load_key("huggingface") is None
    assert load_key("replicate") is None


def test_from_env(monkeypatch):
    monkeypatch.setenv("HUGGINGFACE_API_KEY", "hf")
    monkeypatch.setenv("VITE_API_URL", "https://proxy.example/")
    monkeypatch.setenv("REPLICATE_POLL_MAX_ATTEMPTS", "ten")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("DEBUG", "true")

    config = ProxyConfig.from_env(load_files=False)

    assert config.huggingface_api_key == "hf"
    assert config.replicate_api_key is None
    assert config.api_base_url == "https://proxy.example"
    assert config.poll_max_attempts == DEFAULT_POLL_MAX_ATTEMPTS
    assert config.cors_origins == ("http://a.test", "http://b.test")
    assert config.debug is True


def test_env_local_file_is_loaded(tmp_path):
    (tmp_path / ".env.local").write_text("REPLICATE_API_KEY=from-file\n")
    config = ProxyConfig.from_env()
    assert config.replicate_api_key == "from-file"


def test_out_of_range_numbers_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("REPLICATE_POLL_INTERVAL", "-1")
    monkeypatch.setenv("REPLICATE_POLL_MAX_ATTEMPTS", "0")
    monkeypatch.setenv("IMAGE_REQUEST_TIMEOUT", "0")
    monkeypatch.setenv("PORT", "-5")

    config = ProxyConfig.from_env(load_files=False)

    assert config.poll_interval == DEFAULT_POLL_INTERVAL
    assert config.poll_max_attempts == DEFAULT_POLL_MAX_ATTEMPTS
    assert config.request_timeout == DEFAULT_REQUEST_TIMEOUT
    assert config.port == DEFAULT_PORT


def test_zero_poll_interval_is_allowed(monkeypatch):
    monkeypatch.setenv("REPLICATE_POLL_INTERVAL", "0")
    monkeypatch.setenv("REPLICATE_POLL_MAX_ATTEMPTS", "1")

    config = ProxyConfig.from_env(load_files=False)

    assert config.poll_interval == 0.0
    assert config.poll_max_attempts == 1
