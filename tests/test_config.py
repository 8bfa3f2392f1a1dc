"""Tests for configuration loading."""
import pytest

from redirect_ctl.config import BUNDLED_TEMPLATES_DIR, DEFAULT_API_URL, load_config
from redirect_ctl.models import ConfigError


def test_defaults(mock_env_vars):
    config = load_config()

    assert config.api_token == "test-token"
    assert config.api_url == DEFAULT_API_URL
    assert config.redirects_dir == mock_env_vars.resolve()
    assert config.templates_dir == BUNDLED_TEMPLATES_DIR.resolve()
    assert config.apex_address == "192.0.2.1"
    assert config.strict_requirements is False
    assert config.request_timeout == 20
    assert config.log_level == "INFO"


def test_overrides(mock_env_vars, monkeypatch):
    monkeypatch.setenv("CLOUDFLARE_API_URL", "https://api.example.test/v4/")
    monkeypatch.setenv("APEX_ADDRESS", "192.0.2.10")
    monkeypatch.setenv("STRICT_REQUIREMENTS", "yes")
    monkeypatch.setenv("REQUEST_TIMEOUT", "2.5")

    config = load_config()

    assert config.api_url == "https://api.example.test/v4"
    assert config.apex_address == "192.0.2.10"
    assert config.strict_requirements is True
    assert config.request_timeout == 2.5


def test_token_is_required(mock_env_vars, monkeypatch):
    monkeypatch.setenv("CLOUDFLARE_API_TOKEN", "  ")
    with pytest.raises(ConfigError):
        load_config()


@pytest.mark.parametrize(
    "name, value",
    [
        ("APEX_ADDRESS", "not-an-ip"),
        ("APEX_ADDRESS", "2001:db8::1"),
        ("REQUEST_TIMEOUT", "soon"),
        ("REQUEST_TIMEOUT", "0"),
        ("REDIRECTS_DIR", "/does/not/exist"),
    ],
)
def test_invalid_values(mock_env_vars, monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError):
        load_config()
