"""Environment-driven configuration loader."""

from __future__ import annotations

import ipaddress
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .models import ConfigError

DEFAULT_API_URL = "https://api.cloudflare.com/client/v4"
BUNDLED_TEMPLATES_DIR = Path(__file__).parent / "templates"


@dataclass(frozen=True)
class AppConfig:
    """Application-wide configuration values."""

    api_token: str
    api_url: str
    redirects_dir: Path
    cache_path: Path
    templates_dir: Path
    apex_address: str
    strict_requirements: bool
    request_timeout: float
    log_level: str


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Return a boolean parsed from a string."""
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _parse_float(name: str, value: str) -> float:
    try:
        parsed = float(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got '{value}'.") from exc
    if parsed <= 0:
        raise ConfigError(f"{name} must be positive.")
    return parsed


def _parse_ipv4(name: str, value: str) -> str:
    try:
        return str(ipaddress.IPv4Address(value.strip()))
    except ValueError as exc:
        raise ConfigError(f"{name} must be an IPv4 address, got '{value}'.") from exc


def load_config() -> AppConfig:
    """Load configuration values from the environment (and .env)."""
    load_dotenv()
    api_token = os.getenv("CLOUDFLARE_API_TOKEN", "").strip()
    if not api_token:
        raise ConfigError("CLOUDFLARE_API_TOKEN is required.")

    redirects_dir = Path(os.getenv("REDIRECTS_DIR", ".")).resolve()
    if not redirects_dir.is_dir():
        raise ConfigError(f"REDIRECTS_DIR {redirects_dir} is not a directory.")

    return AppConfig(
        api_token=api_token,
        api_url=os.getenv("CLOUDFLARE_API_URL", DEFAULT_API_URL).rstrip("/"),
        redirects_dir=redirects_dir,
        cache_path=Path(os.getenv("CACHE_PATH", ".cache-db.json")).resolve(),
        templates_dir=Path(os.getenv("TEMPLATES_DIR", str(BUNDLED_TEMPLATES_DIR))).resolve(),
        apex_address=_parse_ipv4("APEX_ADDRESS", os.getenv("APEX_ADDRESS", "192.0.2.1")),
        strict_requirements=_parse_bool(os.getenv("STRICT_REQUIREMENTS"), default=False),
        request_timeout=_parse_float("REQUEST_TIMEOUT", os.getenv("REQUEST_TIMEOUT", "20")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
