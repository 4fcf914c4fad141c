"""Configuration loading for stockfolio.

Settings live in a TOML file, by default ``~/.config/stockfolio/config.toml``::

    [database]
    path = "~/.config/stockfolio/stockfolio.db"

    [portfolio]
    default_name = "default"
    full_position = 50000.0

    [portfolio.full_positions]
    growth = 80000.0

    [portfolio.instrument_full_positions.growth]
    sh600519 = 120000.0

    [quotes]
    source = "live"   # or "mock"
    timeout = 5.0

A missing file means built-in defaults. ``STOCKFOLIO_CONFIG`` and
``STOCKFOLIO_DB`` override the config and database locations.
"""

import os
from pathlib import Path
from typing import Optional

import pydantic
import toml

from stockfolio.errors import ConfigurationError
from stockfolio.ledger.aggregator import DEFAULT_FULL_POSITION, PositionSizing
from stockfolio.models import DEFAULT_PORTFOLIO

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "stockfolio"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "config.toml"
DEFAULT_DB_PATH = DEFAULT_CONFIG_DIR / "stockfolio.db"

CONFIG_ENV_VAR = "STOCKFOLIO_CONFIG"
DB_ENV_VAR = "STOCKFOLIO_DB"

QUOTE_SOURCES = ("live", "mock")


def get_config_path(path: Optional[Path] = None) -> Path:
    """Resolve the config file location: argument, then env var, then default."""
    if path is not None:
        return Path(path).expanduser()
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def load_config(path: Optional[Path] = None) -> dict:
    """Load configuration from TOML.

    Args:
        path: Explicit config file. Falls back to ``get_config_path()``.

    Returns:
        The parsed config, or an empty dict when the file does not exist.

    Raises:
        ConfigurationError: If the file exists but cannot be read or parsed.
    """
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    try:
        return toml.load(config_path)
    except (OSError, toml.TomlDecodeError) as e:
        raise ConfigurationError(f"Cannot read config {config_path}: {e}") from e


def get_db_path(config: dict) -> Path:
    """Get the database path: env var, then config, then default."""
    env_path = os.environ.get(DB_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    configured = config.get("database", {}).get("path")
    if configured:
        return Path(configured).expanduser()
    return DEFAULT_DB_PATH


def get_default_portfolio(config: dict) -> str:
    """Get the portfolio name used when a buy does not name one."""
    return config.get("portfolio", {}).get("default_name") or DEFAULT_PORTFOLIO


def get_sizing(config: dict) -> PositionSizing:
    """Build the full-position sizing from the ``[portfolio]`` table.

    Raises:
        ConfigurationError: If any amount is not a non-negative number.
    """
    portfolio_config = config.get("portfolio", {})
    try:
        return PositionSizing(
            default_full_position=portfolio_config.get("full_position", DEFAULT_FULL_POSITION),
            portfolios=portfolio_config.get("full_positions", {}),
            instruments=portfolio_config.get("instrument_full_positions", {}),
        )
    except pydantic.ValidationError as e:
        raise ConfigurationError(f"Invalid full position settings: {e}") from e


def get_quote_source(config: dict) -> str:
    """Get the configured quote source, ``"live"`` or ``"mock"``.

    Raises:
        ConfigurationError: If the configured source is unknown.
    """
    source = config.get("quotes", {}).get("source", "live")
    if source not in QUOTE_SOURCES:
        raise ConfigurationError(
            f"Unknown quote source {source!r}; expected one of {', '.join(QUOTE_SOURCES)}"
        )
    return source


def get_quote_timeout(config: dict) -> Optional[float]:
    """Get the quote lookup timeout in seconds, if configured.

    Raises:
        ConfigurationError: If the timeout is not a positive number.
    """
    timeout = config.get("quotes", {}).get("timeout")
    if timeout is None:
        return None
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigurationError(f"quotes.timeout must be a positive number, got {timeout!r}")
    return float(timeout)
