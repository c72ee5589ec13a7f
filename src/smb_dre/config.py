# SMB DRE - Income statement & forecasting engine for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for SMB DRE.

This module is responsible for:
- loading the application configuration from a TOML file,
- exposing typed dataclasses used by the CLI and the storage layer.

The engine and forecasting modules never read configuration themselves:
values are passed to them explicitly by the caller.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .db import DatabaseConfig

DISPLAY_MODES = ("table", "json", "csv")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ForecastConfig:
    """Defaults for the forecasting commands."""

    horizon: int
    moving_average_window: int


@dataclass(frozen=True)
class DisplayConfig:
    """Presentation options (the engine itself never rounds)."""

    mode: str
    decimals: int
    currency: str


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for SMB DRE.

    This aggregates:
    - the database configuration (where transactions are stored),
    - forecasting defaults,
    - display options,
    - the logging level.
    """

    database: DatabaseConfig
    forecast: ForecastConfig
    display: DisplayConfig
    log_level: str


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def _positive_int(section: Mapping[str, Any], key: str, default: int, where: str) -> int:
    raw = section.get(key, default)
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid value for '{where}.{key}' in the configuration. "
            "Expected an integer."
        ) from exc
    if value < 1:
        raise ValueError(f"'{where}.{key}' must be a positive integer, got {value}.")
    return value


def default_app_config(base_dir: Optional[Path] = None) -> AppConfig:
    """Configuration used when no TOML file is available."""
    base = base_dir or Path.cwd()
    return AppConfig(
        database=DatabaseConfig(
            engine="sqlite", path=(base / "data/db/smb_dre.sqlite").resolve()
        ),
        forecast=ForecastConfig(horizon=3, moving_average_window=3),
        display=DisplayConfig(mode="table", decimals=2, currency="BRL"),
        log_level="WARNING",
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the SMB DRE application configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [database]
        ``engine`` (only "sqlite") and ``path`` of the SQLite file.

    [forecast]
        ``horizon`` (months to project, default 3) and
        ``moving_average_window`` (default 3).

    [display]
        ``mode`` ("table" | "json" | "csv"), ``decimals`` (default 2) and
        ``currency`` (default "BRL").

    [logging]
        ``level`` (default "WARNING").

    All sections are optional. File paths are resolved relative to the
    directory of the TOML file itself.

    Parameters
    ----------
    config_path :
        Path to the TOML configuration file. Defaults to
        ``smb_dre_config.toml`` in the current directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path("smb_dre_config.toml").resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent
    defaults = default_app_config(base_dir)

    # 1) Database section
    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or defaults.database.engine)
    db_path_raw = database_section.get("path")
    db_path = (
        (base_dir / str(db_path_raw)).resolve()
        if db_path_raw
        else defaults.database.path
    )

    # 2) Forecast section
    forecast_section = _section(raw, "forecast")
    forecast = ForecastConfig(
        horizon=_positive_int(
            forecast_section, "horizon", defaults.forecast.horizon, "forecast"
        ),
        moving_average_window=_positive_int(
            forecast_section,
            "moving_average_window",
            defaults.forecast.moving_average_window,
            "forecast",
        ),
    )

    # 3) Display section
    display_section = _section(raw, "display")
    mode = str(display_section.get("mode", defaults.display.mode))
    if mode not in DISPLAY_MODES:
        raise ValueError(
            f"Invalid display mode {mode!r}, expected one of: {', '.join(DISPLAY_MODES)}."
        )
    try:
        decimals = int(display_section.get("decimals", defaults.display.decimals))
    except (TypeError, ValueError):
        decimals = defaults.display.decimals
    currency = str(display_section.get("currency") or defaults.display.currency)

    # 4) Logging section
    logging_section = _section(raw, "logging")
    log_level = str(logging_section.get("level", defaults.log_level)).upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"Invalid logging level {log_level!r}.")

    return AppConfig(
        database=DatabaseConfig(engine=db_engine, path=db_path),
        forecast=forecast,
        display=DisplayConfig(mode=mode, decimals=decimals, currency=currency),
        log_level=log_level,
    )
