"""
Shopbell Configuration — loads and merges config from multiple sources.

Precedence (highest to lowest):
1. Explicit overrides (passed in code)
2. Environment variables (SHOPBELL_*)
3. Project config (./shopbell.toml)
4. User config (~/.shopbell/config.toml)
5. Defaults (hardcoded)

Environment variable mapping:
    SHOPBELL_SERVER_BASE_URL → server.base_url
    SHOPBELL_SERVER_TIMEZONE → server.timezone
    SHOPBELL_POLLER_INTERVAL → poller.interval
    SHOPBELL_PRINTER_URL → printer.url
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from shopbell.core.errors import ConfigError

# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Config Sub-Models
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class ServerConfig(BaseModel):
    """Shop server connection."""

    base_url: str = "http://localhost:8080"
    timezone: str = "Asia/Seoul"
    request_timeout: float = 10.0
    cookie: str = ""  # session cookie forwarded on every request


class FeedConfig(BaseModel):
    """Live server-push feed and reconnect policy."""

    stream_path: str = "/api/admin/deliveries/stream"
    event_names: list[str] = Field(
        default_factory=lambda: ["order_paid", "delivery_paid"]
    )
    backoff_base: float = 1.0   # seconds
    backoff_cap: float = 30.0   # seconds
    watchdog_interval: float = 10.0
    stale_after: float = 75.0   # no bytes for this long = silently dead


class PollerConfig(BaseModel):
    """Fallback polling while the live feed is unhealthy."""

    interval: float = 15.0
    lookahead_minutes: int = 60
    alignment_cron: str = "*/30 * * * *"


class PrinterConfig(BaseModel):
    """Local receipt printer bridge."""

    enabled: bool = True
    url: str = "http://127.0.0.1:18181"
    timeout: float = 3.0


class AlertsConfig(BaseModel):
    """Audible alarm behaviour."""

    default_volume: float = 1.0
    min_volume: float = 0.0
    max_volume: float = 10.0
    bell_interval: float = 2.0  # seconds between rings while sounding


class StoreConfig(BaseModel):
    """Durable client-local key/value store."""

    db_path: str = "~/.shopbell/state.db"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Main Config
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class ShopbellConfig(BaseModel):
    """Root configuration for Shopbell."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    poller: PollerConfig = Field(default_factory=PollerConfig)
    printer: PrinterConfig = Field(default_factory=PrinterConfig)
    alerts: AlertsConfig = Field(default_factory=AlertsConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)

    @staticmethod
    def load(
        overrides: dict[str, Any] | None = None,
        project_path: Path | None = None,
        user_path: Path | None = None,
    ) -> ShopbellConfig:
        """
        Load configuration from all sources and merge.

        Precedence: overrides > env vars > project toml > user toml > defaults
        """
        merged: dict[str, Any] = {}

        # Layer 1: User config (~/.shopbell/config.toml)
        user_config_path = user_path or Path.home() / ".shopbell" / "config.toml"
        if user_config_path.exists():
            _deep_merge(merged, _load_toml(user_config_path))

        # Layer 2: Project config (./shopbell.toml)
        project_config_path = project_path or Path.cwd() / "shopbell.toml"
        if project_config_path.exists():
            _deep_merge(merged, _load_toml(project_config_path))

        # Layer 3: Environment variables
        _deep_merge(merged, _load_from_env())

        # Layer 4: Explicit overrides
        if overrides:
            _deep_merge(merged, overrides)

        _substitute_env_vars(merged)

        try:
            return ShopbellConfig(**merged)
        except Exception as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def get_home(self) -> Path:
        """Directory holding the state database, logs and notice log."""
        return Path(self.store.db_path).expanduser().parent


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Internal Helpers
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def _load_toml(path: Path) -> dict[str, Any]:
    """Load a TOML file."""
    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # type: ignore[no-redef]

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e


def _load_from_env() -> dict[str, Any]:
    """Load configuration from SHOPBELL_* environment variables."""
    result: dict[str, Any] = {}

    env_mapping = {
        "SHOPBELL_SERVER_BASE_URL": ("server", "base_url"),
        "SHOPBELL_SERVER_TIMEZONE": ("server", "timezone"),
        "SHOPBELL_SERVER_COOKIE": ("server", "cookie"),
        "SHOPBELL_FEED_BACKOFF_CAP": ("feed", "backoff_cap"),
        "SHOPBELL_FEED_WATCHDOG_INTERVAL": ("feed", "watchdog_interval"),
        "SHOPBELL_POLLER_INTERVAL": ("poller", "interval"),
        "SHOPBELL_POLLER_LOOKAHEAD_MINUTES": ("poller", "lookahead_minutes"),
        "SHOPBELL_PRINTER_ENABLED": ("printer", "enabled"),
        "SHOPBELL_PRINTER_URL": ("printer", "url"),
        "SHOPBELL_STORE_DB_PATH": ("store", "db_path"),
    }

    for env_var, (section, key) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            if section not in result:
                result[section] = {}
            result[section][key] = _convert_value(value)

    return result


def _convert_value(value: str) -> Any:
    """Convert string value to appropriate type."""
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def _deep_merge(base: dict, override: dict) -> None:
    """Deep merge override into base (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


def _substitute_env_vars(data: dict) -> None:
    """Recursively substitute ${ENV_VAR} patterns in string values."""
    pattern = re.compile(r"\$\{([^}]+)\}")

    def _sub(text: str) -> str:
        for var_name in pattern.findall(text):
            text = text.replace(f"${{{var_name}}}", os.environ.get(var_name, ""))
        return text

    for key, value in data.items():
        if isinstance(value, dict):
            _substitute_env_vars(value)
        elif isinstance(value, str):
            data[key] = _sub(value)
        elif isinstance(value, list):
            data[key] = [_sub(item) if isinstance(item, str) else item for item in value]
